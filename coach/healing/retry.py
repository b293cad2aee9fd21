"""Bounded retry with exponential backoff.

Generic: knows nothing about error kinds. Callers pass a ``retry_on``
predicate to decide which errors are worth another attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000


class RetryExecutor:
    """Retries an async operation, sleeping base_delay * 2^attempt between tries.

    Example:
        executor = RetryExecutor(max_retries=3, base_delay_ms=500)
        result = await executor.run(lambda: client.fetch(url))

    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        retry_on: Callable[[Exception], bool] | None = None,
    ):
        """Initialize executor.

        Args:
            max_retries: Total number of attempts (at least 1)
            base_delay_ms: Delay before the second attempt, doubled each time
            retry_on: Predicate deciding whether an error is worth another
                attempt (default: retry every error)

        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.retry_on = retry_on

    def delay_ms(self, attempt: int) -> int:
        """Backoff before the attempt following ``attempt`` (0-indexed)."""
        return self.base_delay_ms * (2**attempt)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run operation until it succeeds or attempts are exhausted.

        Args:
            operation: Zero-argument callable returning an awaitable

        Returns:
            The operation's result

        Raises:
            The error of the final attempt, or the first error rejected by
            ``retry_on``

        """
        for attempt in range(self.max_retries):
            try:
                return await operation()
            except Exception as e:
                if attempt == self.max_retries - 1:
                    raise
                if self.retry_on is not None and not self.retry_on(e):
                    logger.info("Not retrying non-retryable error: %s", e)
                    raise
                delay = self.delay_ms(attempt)
                logger.warning(
                    "Retry %d/%d after %dms delay: %s",
                    attempt + 1,
                    self.max_retries,
                    delay,
                    e,
                )
                await asyncio.sleep(delay / 1000)
        # Unreachable: the loop either returns or raises
        raise RuntimeError("RetryExecutor exhausted without result")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
) -> T:
    """Convenience wrapper around RetryExecutor.run."""
    return await RetryExecutor(max_retries=max_retries, base_delay_ms=base_delay_ms).run(operation)
