"""Running performance metrics for the agent and fallback paths.

Counters and an incremental mean only, so memory stays constant no matter
how many turns are recorded. One recorder is shared by every concurrent
turn; all mutation happens under a single lock.

Usage:
    from coach.metrics import metrics
    metrics.record_outcome(True, 412.0, result.tool_trace)
    metrics.snapshot().success_rate
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only view of the recorder at one point in time."""

    total_requests: int = 0
    successful_requests: int = 0
    fallback_invocations: int = 0
    average_response_time_ms: float = 0.0
    tool_usage_frequency: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.successful_requests / self.total_requests

    @property
    def fallback_rate(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.fallback_invocations / self.total_requests

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "fallback_invocations": self.fallback_invocations,
            "success_rate": self.success_rate,
            "fallback_rate": self.fallback_rate,
            "average_response_time_ms": round(self.average_response_time_ms),
            "tool_usage_frequency": dict(self.tool_usage_frequency),
        }


class MetricsRecorder:
    """Thread-safe accumulator of request outcomes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reset_unlocked()

    def _reset_unlocked(self) -> None:
        self._total_requests = 0
        self._successful_requests = 0
        self._fallback_invocations = 0
        self._average_response_time_ms = 0.0
        self._tool_usage_frequency: dict[str, int] = {}

    def record_outcome(
        self,
        success: bool,
        response_time_ms: float,
        tool_trace: Iterable[Any] | None = None,
    ) -> None:
        """Record one terminal outcome of the agent or fallback path.

        Args:
            success: Whether the call produced a response
            response_time_ms: Wall-clock duration of the call
            tool_trace: Trace entries (objects with ``tool_name`` or dicts
                with a ``tool_name`` key) whose tools were invoked

        """
        elapsed = max(0.0, float(response_time_ms))
        tool_names = [_tool_name(entry) for entry in tool_trace or ()]

        with self._lock:
            self._total_requests += 1
            self._average_response_time_ms += (
                elapsed - self._average_response_time_ms
            ) / self._total_requests
            if success:
                self._successful_requests += 1
            for name in tool_names:
                if name:
                    self._tool_usage_frequency[name] = self._tool_usage_frequency.get(name, 0) + 1

        logger.debug(
            "Recorded %s outcome in %.0fms (tools: %s)",
            "successful" if success else "failed",
            elapsed,
            ", ".join(n for n in tool_names if n) or "none",
        )

    def record_fallback(self) -> None:
        """Count one invocation of the degraded path."""
        with self._lock:
            self._fallback_invocations += 1

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                total_requests=self._total_requests,
                successful_requests=self._successful_requests,
                fallback_invocations=self._fallback_invocations,
                average_response_time_ms=self._average_response_time_ms,
                tool_usage_frequency=dict(self._tool_usage_frequency),
            )

    def reset(self) -> None:
        """Zero all counters (between benchmarking sessions, not between turns)."""
        with self._lock:
            self._reset_unlocked()
        logger.info("Metrics reset")


def _tool_name(entry: Any) -> str | None:
    if isinstance(entry, dict):
        return entry.get("tool_name")
    return getattr(entry, "tool_name", None)


# Process-wide recorder shared by every turn
metrics = MetricsRecorder()
