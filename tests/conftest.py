"""Shared fixtures: isolated metrics and scripted Pydantic AI models."""

import pytest
from pydantic_ai.messages import ModelResponse, TextPart, ToolCallPart, ToolReturnPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from coach.metrics import MetricsRecorder

HEALTH_ARGS = {"weight_kg": 70, "height_cm": 175, "age": 30, "gender": "male"}


@pytest.fixture
def recorder():
    """Fresh recorder so tests never touch the process-wide one."""
    return MetricsRecorder()


def _has_tool_return(messages) -> bool:
    return any(isinstance(part, ToolReturnPart) for part in messages[-1].parts)


@pytest.fixture
def tool_calling_model():
    """Calls calculate_health_metrics once, then answers with text."""

    def respond(messages, info: AgentInfo) -> ModelResponse:
        if _has_tool_return(messages):
            return ModelResponse(parts=[TextPart(content="Your BMI is in the normal range.")])
        return ModelResponse(
            parts=[ToolCallPart(tool_name="calculate_health_metrics", args=dict(HEALTH_ARGS))]
        )

    return FunctionModel(respond)


@pytest.fixture
def broken_tools_model():
    """Fails whenever tools are offered, answers plainly otherwise."""

    def respond(messages, info: AgentInfo) -> ModelResponse:
        if info.function_tools:
            raise RuntimeError("tool execution failed: calculate_health_metrics")
        return ModelResponse(parts=[TextPart(content="Try squats and lunges today.")])

    return FunctionModel(respond)
