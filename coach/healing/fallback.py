"""Degraded-mode execution when the tool-calling agent fails.

Issues one direct model request without tools:
- Each user context block is compressed independently (primary budget)
- Retrieved knowledge gets a smaller secondary budget
- Compressed blocks form a reduced system prompt
- Errors propagate: there is no further fallback level
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Sequence

from pydantic_ai.direct import model_request
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)

from coach.config import PRIMARY_CONTEXT_BUDGET, SECONDARY_CONTEXT_BUDGET
from coach.context import ContextBundle, ContextRelevanceRanker
from coach.core.agent import new_turn_id, to_model_messages
from coach.core.prompts import build_fallback_prompt
from coach.core.types import ExecutionResult
from coach.healing.compressor import ContextCompressor
from coach.metrics import MetricsRecorder, metrics as default_metrics

logger = logging.getLogger(__name__)


class FallbackRunner:
    """Best-effort answer without tool access.

    Example:
        fallback = FallbackRunner(model)
        result = await fallback.execute(user_input, history, system_prompt, bundle)
        assert result.degraded

    """

    def __init__(
        self,
        model: Any,
        metrics: MetricsRecorder | None = None,
        primary_budget: int = PRIMARY_CONTEXT_BUDGET,
        secondary_budget: int = SECONDARY_CONTEXT_BUDGET,
        compressor: ContextCompressor | None = None,
        ranker: ContextRelevanceRanker | None = None,
    ):
        """Initialize fallback runner.

        Args:
            model: Pydantic AI model used for the direct request
            metrics: Recorder to update (default: process-wide recorder)
            primary_budget: Character budget per user context block
            secondary_budget: Character budget for retrieved knowledge
            compressor: Compressor override
            ranker: Ranker override

        """
        self.model = model
        self.metrics = metrics or default_metrics
        self.primary_budget = primary_budget
        self.secondary_budget = secondary_budget
        self.compressor = compressor or ContextCompressor()
        self.ranker = ranker or ContextRelevanceRanker()

    def build_prompt(
        self,
        system_prompt: str,
        context: ContextBundle | None,
        user_input: str,
        knowledge: str | None = None,
    ) -> str:
        """Reduced system prompt from compressed context blocks."""
        blocks = []
        for name, text in self.ranker.rank_blocks(context, user_input):
            compressed = self.compressor.compress_with_stats(text, self.primary_budget)
            if compressed.truncated:
                logger.info(
                    "Fallback context block %s compressed %.1fx (%d -> %d chars)",
                    name,
                    compressed.compression_ratio,
                    compressed.original_length,
                    len(compressed.text),
                )
            blocks.append(compressed.text)
        compressed_knowledge = (
            self.compressor.compress(knowledge, self.secondary_budget) if knowledge else None
        )
        return build_fallback_prompt(system_prompt, blocks, compressed_knowledge)

    def build_messages(
        self,
        prompt: str,
        history: Sequence[dict[str, Any]] | None,
        user_input: str,
    ) -> list[ModelMessage]:
        """System prompt, history and user input as one message list.

        The system part joins the first request so providers that require
        alternating roles accept the sequence.
        """
        messages = [
            *to_model_messages(history),
            ModelRequest(parts=[UserPromptPart(content=user_input)]),
        ]
        system = SystemPromptPart(content=prompt)
        first = messages[0]
        if isinstance(first, ModelRequest):
            messages[0] = ModelRequest(parts=[system, *first.parts])
        else:
            messages.insert(0, ModelRequest(parts=[system]))
        return messages

    async def execute(
        self,
        user_input: str,
        history: Sequence[dict[str, Any]] | None,
        system_prompt: str,
        context: ContextBundle | None = None,
        knowledge: str | None = None,
        turn_id: str | None = None,
    ) -> ExecutionResult:
        """Run the degraded path once.

        Args:
            user_input: Current user message
            history: Prior turns as role/content dicts
            system_prompt: Full coaching prompt (without context)
            context: Raw user context blocks
            knowledge: Retrieved background knowledge, if any
            turn_id: Correlation id for logs

        Returns:
            ExecutionResult with degraded=True and an empty trace

        """
        turn_id = turn_id or new_turn_id()
        self.metrics.record_fallback()

        prompt = self.build_prompt(system_prompt, context, user_input, knowledge)
        messages = self.build_messages(prompt, history, user_input)
        logger.info(
            "turn=%s fallback start prompt_chars=%d messages=%d",
            turn_id,
            len(prompt),
            len(messages),
        )

        started = time.perf_counter()
        try:
            response = await model_request(self.model, messages)
        except (Exception, asyncio.CancelledError) as e:
            elapsed = (time.perf_counter() - started) * 1000
            self.metrics.record_outcome(False, elapsed)
            logger.error("turn=%s fallback failed after %.0fms: %s", turn_id, elapsed, e)
            raise

        elapsed = (time.perf_counter() - started) * 1000
        output = "".join(part.content for part in response.parts if isinstance(part, TextPart))
        self.metrics.record_outcome(True, elapsed)
        logger.info("turn=%s fallback completed in %.0fms", turn_id, elapsed)
        return ExecutionResult(output=output, tool_trace=[], degraded=True)
