"""Turn orchestration: primary agent, classification, degraded fallback.

This module is the entry point a chat-route handler calls once per user
message. It owns the routing decisions that the runners deliberately leave
to their caller:

- Rank user context by relevance to the message
- Run the tool-calling agent (primary path)
- Classify a primary failure; non-retryable kinds end the turn
- Otherwise run the fallback (degraded path), retrying only retryable kinds
- Map a terminal failure to a short user-facing error
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from coach.config import MAX_RETRIES, RETRY_BASE_DELAY_MS
from coach.context import ContextBundle, rank_context
from coach.core.agent import AgentRunner, new_turn_id
from coach.core.prompts import build_context_prompt
from coach.core.types import AgentConfig, ExecutionResult
from coach.healing import ErrorClassifier, ErrorKind, ErrorResponse, FallbackRunner, RetryExecutor
from coach.metrics import MetricsRecorder

logger = logging.getLogger(__name__)


@dataclass
class TurnResponse:
    """Caller-facing outcome of one turn.

    Attributes:
        turn_id: Correlation id used in logs
        result: Execution result when either path answered
        error: User-facing error when the turn failed
        error_kind: Kind of the error that ended the turn (or triggered fallback)

    """

    turn_id: str
    result: ExecutionResult | None = None
    error: ErrorResponse | None = None
    error_kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @property
    def output(self) -> str:
        if self.result is not None:
            return self.result.output
        return self.error.user_message if self.error else ""

    @property
    def degraded(self) -> bool:
        return bool(self.result and self.result.degraded)


async def run_turn(
    config: AgentConfig,
    system_prompt: str,
    user_input: str,
    history: Sequence[dict[str, Any]] | None = None,
    context: ContextBundle | None = None,
    knowledge: str | None = None,
    metrics: MetricsRecorder | None = None,
    fallback_retries: int = MAX_RETRIES,
    retry_base_delay_ms: int = RETRY_BASE_DELAY_MS,
    turn_id: str | None = None,
) -> TurnResponse:
    """Answer one user message, degrading gracefully on failure.

    Args:
        config: Model, tools and user for this turn
        system_prompt: Opaque coaching prompt
        user_input: Current user message
        history: Prior turns as role/content dicts
        context: User context blocks
        knowledge: Retrieved background knowledge
        metrics: Recorder override (default: process-wide recorder)
        fallback_retries: Attempts for the degraded path (at least 1)
        retry_base_delay_ms: Backoff before the second fallback attempt
        turn_id: Correlation id (generated if not provided)

    Returns:
        TurnResponse carrying either a result or a user-facing error

    """
    turn_id = turn_id or new_turn_id()
    classifier = ErrorClassifier()

    ranked = rank_context(context, user_input)
    primary_prompt = build_context_prompt(system_prompt, ranked, knowledge)

    agent_runner = AgentRunner(config, metrics=metrics)
    try:
        result = await agent_runner.execute(primary_prompt, history, user_input, turn_id=turn_id)
        return TurnResponse(turn_id=turn_id, result=result)
    except Exception as e:
        classified = classifier.classify(e)
        logger.warning(
            "turn=%s primary path failed (%s): %s",
            turn_id,
            classified.kind.value,
            classified.message,
        )
        if not classified.is_retryable:
            return TurnResponse(
                turn_id=turn_id,
                error=classifier.handle_error(e, turn_id=turn_id),
                error_kind=classified.kind,
            )
        primary_kind = classified.kind

    fallback = FallbackRunner(config.model, metrics=metrics)
    executor = RetryExecutor(
        max_retries=fallback_retries,
        base_delay_ms=retry_base_delay_ms,
        retry_on=lambda e: classifier.classify(e).is_retryable,
    )
    try:
        result = await executor.run(
            lambda: fallback.execute(
                user_input,
                history,
                system_prompt,
                context=context,
                knowledge=knowledge,
                turn_id=turn_id,
            )
        )
    except Exception as e:
        error = classifier.handle_error(e, turn_id=turn_id)
        return TurnResponse(turn_id=turn_id, error=error, error_kind=classifier.categorize(e))

    logger.info("turn=%s answered by fallback after %s", turn_id, primary_kind.value)
    return TurnResponse(turn_id=turn_id, result=result, error_kind=primary_kind)
