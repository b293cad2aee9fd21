"""Resilience layer for agent execution.

This module provides:
- Error classification (fixed user message, status and retry policy per kind)
- Context compression (head + tail truncation under a character budget)
- Degraded-mode fallback (direct model call without tools)
- Bounded retry with exponential backoff

Architecture:
    ErrorClassifier → decides whether a failure is worth another attempt
    ContextCompressor → shrinks context for the degraded prompt
    FallbackRunner → answers without tools
    RetryExecutor → repeats an operation the caller chose to retry
"""

from coach.healing.classifier import (
    ClassifiedError,
    ErrorClassifier,
    ErrorKind,
    ErrorResponse,
    categorize_error,
)
from coach.healing.compressor import TRUNCATION_MARKER, ContextCompressor, compress_context
from coach.healing.fallback import FallbackRunner
from coach.healing.retry import RetryExecutor, retry_with_backoff

__all__ = [
    "ErrorClassifier",
    "ErrorKind",
    "ErrorResponse",
    "ClassifiedError",
    "categorize_error",
    "ContextCompressor",
    "TRUNCATION_MARKER",
    "compress_context",
    "FallbackRunner",
    "RetryExecutor",
    "retry_with_backoff",
]
