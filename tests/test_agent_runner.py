"""Tests for the primary tool-calling path."""

import asyncio

import pytest
from pydantic_ai.exceptions import UsageLimitExceeded
from pydantic_ai.messages import (
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models.function import AgentInfo, FunctionModel

from coach.core.agent import (
    AgentRunner,
    extract_tool_trace,
    to_model_messages,
)
from coach.core.types import AgentConfig
from coach.tools import default_tools

HEALTH_ARGS = {"weight_kg": 70, "height_cm": 175, "age": 30, "gender": "male"}


# ============ AgentRunner Tests ============

@pytest.mark.asyncio
async def test_tool_call_recorded_in_trace(tool_calling_model, recorder):
    """Invoked tools appear in the trace and in metrics."""
    config = AgentConfig(model=tool_calling_model, tools=tuple(default_tools()), user_id="u1")
    runner = AgentRunner(config, metrics=recorder)

    result = await runner.execute("You are a coach.", [], "What is my BMI?")

    assert result.output == "Your BMI is in the normal range."
    assert result.degraded is False
    assert result.tools_used == ["calculate_health_metrics"]
    assert result.tool_trace[0].input == HEALTH_ARGS
    assert "BMI: 22.9" in result.tool_trace[0].output

    snapshot = recorder.snapshot()
    assert snapshot.total_requests == 1
    assert snapshot.successful_requests == 1
    assert snapshot.tool_usage_frequency == {"calculate_health_metrics": 1}


@pytest.mark.asyncio
async def test_no_tool_call_gives_empty_trace(recorder):
    model = FunctionModel(lambda messages, info: ModelResponse(parts=[TextPart(content="Hi!")]))
    runner = AgentRunner(AgentConfig(model=model, tools=tuple(default_tools())), metrics=recorder)

    result = await runner.execute("You are a coach.", [], "hello")

    assert result.output == "Hi!"
    assert result.tool_trace == []
    assert recorder.snapshot().tool_usage_frequency == {}


@pytest.mark.asyncio
async def test_empty_tool_list_is_plain_call(recorder):
    """No tools is not an error: the model simply sees none."""
    seen = {}

    def respond(messages, info: AgentInfo):
        seen["tools"] = list(info.function_tools)
        seen["instructions"] = info.instructions
        return ModelResponse(parts=[TextPart(content="Plain answer")])

    runner = AgentRunner(AgentConfig(model=FunctionModel(respond)), metrics=recorder)
    result = await runner.execute("You are a coach.", None, "hello")

    assert result.output == "Plain answer"
    assert seen["tools"] == []
    assert "Available tools" not in seen["instructions"]


@pytest.mark.asyncio
async def test_instructions_include_manifest(recorder):
    seen = {}

    def respond(messages, info: AgentInfo):
        seen["instructions"] = info.instructions
        return ModelResponse(parts=[TextPart(content="ok")])

    config = AgentConfig(model=FunctionModel(respond), tools=tuple(default_tools()))
    await AgentRunner(config, metrics=recorder).execute("You are a coach.", [], "hi")

    assert seen["instructions"].startswith("You are a coach.")
    assert "Tool names: calculate_health_metrics" in seen["instructions"]


@pytest.mark.asyncio
async def test_history_is_passed_to_model(recorder):
    seen = {}

    def respond(messages, info: AgentInfo):
        seen["user_prompts"] = [
            part.content
            for message in messages
            if isinstance(message, ModelRequest)
            for part in message.parts
            if isinstance(part, UserPromptPart)
        ]
        return ModelResponse(parts=[TextPart(content="ok")])

    history = [
        {"role": "user", "content": "I want to lose weight"},
        {"role": "assistant", "content": "Great goal!"},
    ]
    runner = AgentRunner(AgentConfig(model=FunctionModel(respond)), metrics=recorder)
    await runner.execute("You are a coach.", history, "What should I eat?")

    assert seen["user_prompts"] == ["I want to lose weight", "What should I eat?"]


@pytest.mark.asyncio
async def test_failure_propagates_and_is_recorded(broken_tools_model, recorder):
    """Errors are not retried or swallowed."""
    runner = AgentRunner(
        AgentConfig(model=broken_tools_model, tools=tuple(default_tools())),
        metrics=recorder,
    )

    with pytest.raises(RuntimeError, match="tool execution failed"):
        await runner.execute("You are a coach.", [], "What is my BMI?")

    snapshot = recorder.snapshot()
    assert snapshot.total_requests == 1
    assert snapshot.successful_requests == 0


@pytest.mark.asyncio
async def test_iterations_are_capped(recorder):
    """A model that never stops calling tools is cut off."""
    calls = []

    def respond(messages, info: AgentInfo):
        calls.append(1)
        return ModelResponse(
            parts=[ToolCallPart(tool_name="calculate_health_metrics", args=dict(HEALTH_ARGS))]
        )

    config = AgentConfig(model=FunctionModel(respond), tools=tuple(default_tools()))
    runner = AgentRunner(config, metrics=recorder, max_iterations=3)

    with pytest.raises(UsageLimitExceeded):
        await runner.execute("You are a coach.", [], "loop forever")

    assert 1 <= len(calls) <= 3
    assert recorder.snapshot().successful_requests == 0


@pytest.mark.asyncio
async def test_cancellation_records_failure(recorder):
    """An abandoned turn still counts as a failed request."""
    started = asyncio.Event()

    async def respond(messages, info: AgentInfo):
        started.set()
        await asyncio.sleep(10)
        return ModelResponse(parts=[TextPart(content="too late")])

    runner = AgentRunner(AgentConfig(model=FunctionModel(respond)), metrics=recorder)
    task = asyncio.create_task(runner.execute("You are a coach.", [], "hi"))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    snapshot = recorder.snapshot()
    assert snapshot.total_requests == 1
    assert snapshot.successful_requests == 0


# ============ Helper Tests ============

def test_to_model_messages_skips_unknown_roles_and_empty():
    messages = to_model_messages(
        [
            {"role": "system", "content": "ignored"},
            {"role": "user", "content": ""},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ]
    )

    assert len(messages) == 2
    assert isinstance(messages[0], ModelRequest)
    assert isinstance(messages[1], ModelResponse)
    assert to_model_messages(None) == []


def test_extract_tool_trace_skips_unanswered_calls():
    call = ToolCallPart(tool_name="a", args={"x": 1}, tool_call_id="c1")
    orphan = ToolCallPart(tool_name="b", args={}, tool_call_id="c2")
    messages = [
        ModelRequest(parts=[SystemPromptPart(content="s"), UserPromptPart(content="u")]),
        ModelResponse(parts=[call, orphan]),
        ModelRequest(parts=[ToolReturnPart(tool_name="a", content="done", tool_call_id="c1")]),
    ]

    trace = extract_tool_trace(messages)

    assert [(e.tool_name, e.input, e.output) for e in trace] == [("a", {"x": 1}, "done")]
