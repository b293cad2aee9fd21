"""Context compression for oversized prompt blocks.

Head + tail truncation:
1. Keep the first 70% of the budget (headers, definitions, goals)
2. Keep the last 30% of the budget (most recent, most specific facts)
3. Join them with an explicit truncation marker

Content-agnostic and deterministic: no summarization.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n...[Context truncated for length]...\n"

HEAD_RATIO = 0.7
TAIL_RATIO = 0.3


@dataclass
class CompressionResult:
    """Result of compressing one context block.

    Attributes:
        text: Compressed text
        original_length: Length of the input in characters
        truncated: Whether anything was removed

    """

    text: str
    original_length: int
    truncated: bool

    @property
    def compression_ratio(self) -> float:
        if not self.text:
            return 1.0
        return self.original_length / len(self.text)


class ContextCompressor:
    """Fits a text block into a character budget, preserving both ends.

    Example:
        compressor = ContextCompressor()
        short = compressor.compress(profile_text, 1500)

    """

    def __init__(self, marker: str = TRUNCATION_MARKER):
        self.marker = marker

    def compress(self, text: str | None, max_length: int) -> str:
        """Compress text to at most ``max_length`` characters plus the marker.

        Args:
            text: Text to compress (None is treated as empty)
            max_length: Character budget, must be positive

        Returns:
            The unchanged text if it fits, otherwise head + marker + tail

        """
        return self.compress_with_stats(text, max_length).text

    def compress_with_stats(self, text: str | None, max_length: int) -> CompressionResult:
        if max_length <= 0:
            raise ValueError(f"max_length must be positive, got {max_length}")

        text = text or ""
        if self.fits(text, max_length):
            return CompressionResult(text=text, original_length=len(text), truncated=False)

        head_len = math.floor(max_length * HEAD_RATIO)
        tail_len = math.floor(max_length * TAIL_RATIO)
        head = text[:head_len]
        tail = text[len(text) - tail_len :] if tail_len else ""

        compressed = f"{head}{self.marker}{tail}"
        logger.debug(
            "Compressed context block %d -> %d chars (budget %d)",
            len(text),
            len(compressed),
            max_length,
        )
        return CompressionResult(text=compressed, original_length=len(text), truncated=True)

    def fits(self, text: str, max_length: int) -> bool:
        """Check whether text needs no further compression.

        Already-compressed text is allowed the marker on top of the budget,
        so compressing twice gives the same result as compressing once.
        """
        if len(text) <= max_length:
            return True
        return self.marker in text and len(text) <= max_length + len(self.marker)


_default_compressor = ContextCompressor()


def compress_context(text: str | None, max_length: int) -> str:
    """Compress text with the default marker."""
    return _default_compressor.compress(text, max_length)
