"""Tool-calling agent construction and primary-path execution.

This module provides the model builders and the AgentRunner, which wraps a
Pydantic AI agent with bounded reasoning iterations, tool tracing and
metrics recording.

Supports two providers:
- vLLM: Local OpenAI-compatible API
- OpenRouter: Cloud API with many models
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any, Sequence

from pydantic_ai import Agent, Tool
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.models.openrouter import OpenRouterModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.providers.openrouter import OpenRouterProvider
from pydantic_ai.usage import UsageLimits

from coach.config import (
    MAX_AGENT_ITERATIONS,
    OPENROUTER_API_KEY,
    OPENROUTER_MODEL_NAME,
    PROVIDER_DEFAULT,
    VLLM_API_KEY,
    VLLM_BASE_URL,
    VLLM_MODEL_NAME,
)
from coach.core.prompts import build_agent_instructions
from coach.core.types import AgentConfig, ExecutionResult, ToolSpec, ToolTraceEntry
from coach.metrics import MetricsRecorder, metrics as default_metrics

logger = logging.getLogger(__name__)


def build_vllm_model(
    model_name: str | None = None,
    base_url: str | None = None,
    api_key: str | None = None,
) -> OpenAIChatModel:
    """Build vLLM model instance (OpenAI-compatible local API).

    Args:
        model_name: Model identifier (e.g., 'openai/gpt-oss-120b')
        base_url: vLLM API base URL
        api_key: API key (usually not needed for vLLM)

    Returns:
        Configured OpenAIChatModel instance for vLLM

    """
    provider = OpenAIProvider(
        base_url=base_url or VLLM_BASE_URL,
        api_key=api_key or VLLM_API_KEY,
    )
    return OpenAIChatModel(
        model_name=model_name or VLLM_MODEL_NAME,
        provider=provider,
    )


def build_openrouter_model(
    model_name: str | None = None,
    api_key: str | None = None,
) -> OpenRouterModel:
    """Build OpenRouter model instance."""
    return OpenRouterModel(
        model_name=model_name or OPENROUTER_MODEL_NAME,
        provider=OpenRouterProvider(api_key=api_key or OPENROUTER_API_KEY),
    )


def build_model(
    model_name: str | None = None,
    api_key: str | None = None,
    provider: str | None = None,
) -> OpenAIChatModel | OpenRouterModel:
    """Build model instance based on provider.

    Args:
        model_name: Model identifier
        api_key: API key (provider-specific)
        provider: 'vllm' or 'openrouter' (default: from config)

    Returns:
        Configured model instance

    """
    provider = provider or PROVIDER_DEFAULT
    if provider == "openrouter" and not (api_key or OPENROUTER_API_KEY):
        logger.warning("OpenRouter requested but OPENROUTER_API_KEY is not set; using vLLM")
        provider = "vllm"

    if provider == "openrouter":
        logger.info("Building OpenRouter model: %s", model_name or OPENROUTER_MODEL_NAME)
        return build_openrouter_model(model_name, api_key)
    logger.info("Building vLLM model: %s", model_name or VLLM_MODEL_NAME)
    return build_vllm_model(model_name, api_key=api_key)


def to_model_messages(history: Sequence[dict[str, Any]] | None) -> list[ModelMessage]:
    """Convert role/content dicts into Pydantic AI message history.

    Only user and assistant turns are kept; system prompts are supplied
    separately by each runner.
    """
    messages: list[ModelMessage] = []
    for turn in history or ():
        content = str(turn.get("content", "") or "")
        if not content:
            continue
        role = turn.get("role")
        if role == "user":
            messages.append(ModelRequest(parts=[UserPromptPart(content=content)]))
        elif role == "assistant":
            messages.append(ModelResponse(parts=[TextPart(content=content)]))
    return messages


def extract_tool_trace(messages: Sequence[ModelMessage]) -> list[ToolTraceEntry]:
    """Pair tool calls with their returns, in call order."""
    calls: dict[str, ToolCallPart] = {}
    order: list[str] = []
    returns: dict[str, ToolReturnPart] = {}
    for message in messages:
        for part in message.parts:
            if isinstance(part, ToolCallPart):
                calls[part.tool_call_id] = part
                order.append(part.tool_call_id)
            elif isinstance(part, ToolReturnPart):
                returns[part.tool_call_id] = part

    trace = []
    for call_id in order:
        if call_id not in returns:
            continue
        call = calls[call_id]
        trace.append(
            ToolTraceEntry(
                tool_name=call.tool_name,
                input=call.args_as_dict(),
                output=returns[call_id].content,
            )
        )
    return trace


def to_pydantic_tool(spec: ToolSpec) -> Tool:
    return Tool(spec.invoke, takes_ctx=False, name=spec.name, description=spec.description)


def build_agent(
    model: Any,
    system_prompt: str,
    tools: Sequence[ToolSpec] = (),
) -> Agent:
    """Build a tool-calling agent.

    Args:
        model: Pydantic AI model (or model name string)
        system_prompt: Caller's coaching prompt
        tools: Tools to register; empty makes a plain LLM agent

    Returns:
        Configured Pydantic AI Agent

    """
    return Agent(
        model=model,
        instructions=build_agent_instructions(system_prompt, tools),
        tools=[to_pydantic_tool(spec) for spec in tools],
    )


def new_turn_id() -> str:
    return uuid.uuid4().hex[:12]


class AgentRunner:
    """Primary path: one tool-calling agent run per turn.

    Never retries and never swallows errors; the caller classifies failures
    and decides whether to fall back.

    Example:
        runner = AgentRunner(AgentConfig(model=model, tools=tuple(default_tools())))
        result = await runner.execute(prompt, history, "what should I eat today?")

    """

    def __init__(
        self,
        config: AgentConfig,
        metrics: MetricsRecorder | None = None,
        max_iterations: int = MAX_AGENT_ITERATIONS,
    ):
        self.config = config
        self.metrics = metrics or default_metrics
        self.max_iterations = max_iterations

    async def execute(
        self,
        system_prompt: str,
        history: Sequence[dict[str, Any]] | None,
        user_input: str,
        turn_id: str | None = None,
    ) -> ExecutionResult:
        """Run the agent for one turn.

        Args:
            system_prompt: Coaching prompt (context already included)
            history: Prior turns as role/content dicts
            user_input: Current user message
            turn_id: Correlation id for logs

        Returns:
            ExecutionResult with degraded=False

        """
        turn_id = turn_id or new_turn_id()
        tools = self.config.tools
        logger.info(
            "turn=%s agent start user=%s tools=[%s] history=%d",
            turn_id,
            self.config.user_id or "-",
            ", ".join(t.name for t in tools),
            len(history or ()),
        )

        agent = build_agent(self.config.model, system_prompt, tools)
        started = time.perf_counter()
        try:
            run = await agent.run(
                user_input,
                message_history=to_model_messages(history) or None,
                usage_limits=UsageLimits(request_limit=self.max_iterations),
            )
        except (Exception, asyncio.CancelledError) as e:
            elapsed = (time.perf_counter() - started) * 1000
            self.metrics.record_outcome(False, elapsed)
            if isinstance(e, asyncio.CancelledError):
                logger.warning("turn=%s agent cancelled after %.0fms", turn_id, elapsed)
            else:
                logger.warning("turn=%s agent failed after %.0fms: %s", turn_id, elapsed, e)
            raise

        elapsed = (time.perf_counter() - started) * 1000
        result = ExecutionResult(
            output=str(run.output),
            tool_trace=extract_tool_trace(run.new_messages()),
            degraded=False,
        )
        self.metrics.record_outcome(True, elapsed, result.tool_trace)
        logger.info(
            "turn=%s agent completed in %.0fms tools_used=[%s]",
            turn_id,
            elapsed,
            ", ".join(result.tools_used),
        )
        return result
