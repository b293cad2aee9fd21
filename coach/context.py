"""User context blocks and query relevance ranking.

A turn's background information comes in four free-text blocks (profile,
diet, workout, progress). The ranker orders them by how well they match
the user's query so the most relevant block leads the prompt.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

BLOCK_ORDER = ("profile", "diet", "workout", "progress")

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
        "with", "by", "is", "are", "was", "were", "be", "been", "have", "has", "had",
        "do", "does", "did", "will", "would", "could", "should", "may", "might", "can",
        "this", "that", "these", "those", "i", "you", "he", "she", "it", "we", "they",
        "me", "him", "her", "us", "them",
    }
)

MIN_KEYWORD_LENGTH = 3

_NON_WORD = re.compile(r"[^\w]")


@dataclass(frozen=True)
class ContextBundle:
    """Per-turn user context, each block optional."""

    profile: str | None = None
    diet: str | None = None
    workout: str | None = None
    progress: str | None = None

    def blocks(self) -> list[tuple[str, str]]:
        """Blocks in canonical order, including empty ones."""
        return [(name, getattr(self, name) or "") for name in BLOCK_ORDER]

    def is_empty(self) -> bool:
        return not any(text for _, text in self.blocks())


class ContextRelevanceRanker:
    """Scores context blocks against query keywords.

    Score = sum over keywords of (occurrences in block * keyword length),
    so longer, more specific matches weigh more.

    Example:
        ranker = ContextRelevanceRanker()
        prompt_context = ranker.rank(bundle, "what leg exercises should I do")

    """

    def __init__(self, stop_words: frozenset[str] = STOP_WORDS):
        self.stop_words = stop_words

    def extract_keywords(self, query: str | None) -> list[str]:
        if not query:
            return []
        keywords = []
        for word in query.lower().split():
            token = _NON_WORD.sub("", word)
            if len(token) >= MIN_KEYWORD_LENGTH and token not in self.stop_words:
                keywords.append(token)
        return keywords

    def score(self, text: str | None, keywords: list[str]) -> int:
        if not text or not keywords:
            return 0
        lowered = text.lower()
        return sum(lowered.count(keyword) * len(keyword) for keyword in keywords)

    def rank_blocks(
        self,
        bundle: ContextBundle | None,
        query: str | None,
    ) -> list[tuple[str, str]]:
        """Non-empty blocks ordered by descending relevance.

        Ties (including the all-zero case of an empty or all-stop-word
        query) keep the canonical profile, diet, workout, progress order.
        """
        if bundle is None or bundle.is_empty():
            return []
        blocks = [(name, text) for name, text in bundle.blocks() if text]
        keywords = self.extract_keywords(query)
        if not keywords:
            return blocks

        scores = {name: self.score(text, keywords) for name, text in blocks}
        ranked = sorted(blocks, key=lambda block: scores[block[0]], reverse=True)
        logger.debug("Context relevance scores: %s", scores)
        return ranked

    def rank(self, bundle: ContextBundle | None, query: str | None) -> str:
        """Concatenate non-empty blocks in ranked order, blank-line separated."""
        return "\n\n".join(text for _, text in self.rank_blocks(bundle, query))


_default_ranker = ContextRelevanceRanker()


def rank_context(bundle: ContextBundle | None, query: str | None) -> str:
    """Rank with the default stop-word set."""
    return _default_ranker.rank(bundle, query)
