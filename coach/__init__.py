"""Fitness coach agent: execution and resilience layer.

This package features:
- Tool-calling agent execution on Pydantic AI with bounded iterations
- Degraded-mode fallback with compressed context when tool-calling fails
- Keyword error classification driving user messaging and retry policy
- Relevance-ranked context and running performance metrics
"""

from coach.config import VERSION

__all__ = ["VERSION"]
