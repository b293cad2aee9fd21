"""Tests for turn orchestration (primary path, classification, fallback)."""

import pytest
from pydantic_ai.messages import ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from coach.context import ContextBundle
from coach.core.runner import run_turn
from coach.core.types import AgentConfig
from coach.healing import ErrorKind
from coach.tools import default_tools


def _config(model):
    return AgentConfig(model=model, tools=tuple(default_tools()), user_id="u1")


@pytest.mark.asyncio
async def test_primary_success(tool_calling_model, recorder):
    response = await run_turn(
        _config(tool_calling_model),
        "You are a coach.",
        "What is my BMI?",
        metrics=recorder,
    )

    assert response.ok
    assert not response.degraded
    assert response.error_kind is None
    assert response.output == "Your BMI is in the normal range."
    assert response.result.tools_used == ["calculate_health_metrics"]
    assert recorder.snapshot().fallback_invocations == 0


@pytest.mark.asyncio
async def test_tool_failure_degrades_to_fallback(broken_tools_model, recorder):
    """Tool failure -> fallback answer without tools -> fallback counted."""
    response = await run_turn(
        _config(broken_tools_model),
        "You are a coach.",
        "What leg exercises should I do?",
        context=ContextBundle(profile="goal: strength", workout="leg day squats"),
        metrics=recorder,
        retry_base_delay_ms=0,
    )

    assert response.ok
    assert response.degraded
    assert response.error_kind == ErrorKind.TOOL_CALLING_ERROR
    assert response.output == "Try squats and lunges today."
    assert response.result.tool_trace == []

    snapshot = recorder.snapshot()
    assert snapshot.fallback_rate > 0
    assert snapshot.total_requests == 2
    assert snapshot.successful_requests == 1


@pytest.mark.asyncio
async def test_non_retryable_error_skips_fallback(recorder):
    def respond(messages, info: AgentInfo):
        raise RuntimeError("Invalid API key provided")

    response = await run_turn(
        _config(FunctionModel(respond)),
        "You are a coach.",
        "hi",
        metrics=recorder,
        retry_base_delay_ms=0,
    )

    assert not response.ok
    assert response.error_kind == ErrorKind.AUTHENTICATION_ERROR
    assert response.error.http_status == 401
    assert response.error.retryable is False
    assert response.output == response.error.user_message
    assert recorder.snapshot().fallback_invocations == 0


@pytest.mark.asyncio
async def test_fallback_failure_maps_to_user_error(recorder):
    """Both paths fail: the fallback's error decides the response."""
    calls = {"fallback": 0}

    def respond(messages, info: AgentInfo):
        if info.function_tools:
            raise RuntimeError("function call malformed")
        calls["fallback"] += 1
        raise RuntimeError("socket timeout")

    response = await run_turn(
        _config(FunctionModel(respond)),
        "You are a coach.",
        "hi",
        metrics=recorder,
        fallback_retries=2,
        retry_base_delay_ms=0,
    )

    assert not response.ok
    assert response.error_kind == ErrorKind.TIMEOUT_ERROR
    assert response.error.http_status == 408
    assert calls["fallback"] == 2

    snapshot = recorder.snapshot()
    assert snapshot.fallback_invocations == 2
    assert snapshot.successful_requests == 0


@pytest.mark.asyncio
async def test_fallback_retry_recovers(recorder):
    calls = {"fallback": 0}

    def respond(messages, info: AgentInfo):
        if info.function_tools:
            raise RuntimeError("context length exceeded")
        calls["fallback"] += 1
        if calls["fallback"] == 1:
            raise RuntimeError("upstream hiccup")
        return ModelResponse(parts=[TextPart(content="Short answer.")])

    response = await run_turn(
        _config(FunctionModel(respond)),
        "You are a coach.",
        "hi",
        metrics=recorder,
        fallback_retries=2,
        retry_base_delay_ms=0,
    )

    assert response.ok
    assert response.degraded
    assert response.error_kind == ErrorKind.CONTEXT_OVERFLOW
    assert response.output == "Short answer."


@pytest.mark.asyncio
async def test_primary_prompt_carries_ranked_context(recorder):
    seen = {}

    def respond(messages, info: AgentInfo):
        seen["instructions"] = info.instructions
        return ModelResponse(parts=[TextPart(content="ok")])

    await run_turn(
        _config(FunctionModel(respond)),
        "You are a coach.",
        "what leg exercises should I do",
        context=ContextBundle(profile="goal: weight loss", workout="leg day squats"),
        knowledge="Squats train the quadriceps.",
        metrics=recorder,
    )

    instructions = seen["instructions"]
    assert "User context:\nleg day squats\n\ngoal: weight loss" in instructions
    assert "Relevant knowledge:\nSquats train the quadriceps." in instructions


@pytest.mark.asyncio
async def test_non_retryable_fallback_error_is_not_retried(recorder):
    """A rate-limited fallback ends the turn after a single attempt."""
    calls = {"fallback": 0}

    def respond(messages, info: AgentInfo):
        if info.function_tools:
            raise RuntimeError("tool execution failed")
        calls["fallback"] += 1
        raise RuntimeError("rate limit exceeded")

    response = await run_turn(
        _config(FunctionModel(respond)),
        "You are a coach.",
        "hi",
        metrics=recorder,
        fallback_retries=3,
        retry_base_delay_ms=0,
    )

    assert not response.ok
    assert response.error_kind == ErrorKind.API_RATE_LIMIT
    assert response.error.http_status == 429
    assert calls["fallback"] == 1
    assert recorder.snapshot().fallback_invocations == 1
