"""Cosine-similarity ranking of cached section embeddings."""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from pagewise.config import RANKER_MAX_RESULTS, RANKER_MIN_SIMILARITY, RANKER_TOP_SECTIONS
from pagewise.core.exceptions import ProviderError
from pagewise.core.types import RelevanceLabel, SearchResult, Section
from pagewise.research.embeddings import EmbeddingCache

logger = logging.getLogger(__name__)

LABEL_THRESHOLDS: Tuple[Tuple[float, RelevanceLabel], ...] = (
    (0.8, RelevanceLabel.VERY_HIGH),
    (0.6, RelevanceLabel.HIGH),
    (0.4, RelevanceLabel.MEDIUM),
    (0.2, RelevanceLabel.LOW),
)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def relevance_label(similarity: float) -> RelevanceLabel:
    """Map a similarity to its bucket; thresholds are exclusive lower bounds."""
    for threshold, label in LABEL_THRESHOLDS:
        if similarity > threshold:
            return label
    return RelevanceLabel.VERY_LOW


class SimilarityRanker:
    """Ranks sections against free-text queries.

    Results are memoized per ``(query, number of candidate sections)`` for the
    lifetime of the ranker. That key does not notice content changes that keep
    the count the same; ``clear_query_cache`` drops everything.
    """

    def __init__(
        self,
        cache: EmbeddingCache,
        max_results: int = RANKER_MAX_RESULTS,
        min_similarity: float = RANKER_MIN_SIMILARITY,
        top_sections: int = RANKER_TOP_SECTIONS,
    ) -> None:
        self.cache = cache
        self.max_results = max_results
        self.min_similarity = min_similarity
        self.top_sections = top_sections
        self._query_cache: Dict[Tuple[str, int], List[SearchResult]] = {}

    def clear_query_cache(self) -> None:
        self._query_cache.clear()

    def score(self, query_vector: Sequence[float], section: Section) -> Optional[SearchResult]:
        vector = self.cache.get(section.id)
        if vector is None:
            return None
        similarity = cosine_similarity(query_vector, vector)
        return SearchResult(
            section=section,
            similarity=similarity,
            relevance_label=relevance_label(similarity),
        )

    def rank(
        self, query: str, sections: Sequence[Section], k: Optional[int] = None
    ) -> List[SearchResult]:
        """Top ``k`` sections for ``query``; sections without a vector are unranked."""
        limit = self.max_results if k is None else k
        key = (query, len(sections))
        cached = self._query_cache.get(key)
        if cached is not None:
            logger.debug("Query cache hit for %r (%d sections)", query, len(sections))
            return list(cached[:limit])

        try:
            query_vector = self.cache.embed_query(query)
        except ProviderError as exc:
            logger.warning("Could not embed query %r: %s", query, exc)
            return []

        results = []
        for section in sections:
            result = self.score(query_vector, section)
            if result is not None and result.similarity > self.min_similarity:
                results.append(result)
        results.sort(key=lambda item: item.similarity, reverse=True)

        self._query_cache[key] = results
        return results[:limit]

    def find_most_relevant(
        self, terms: Sequence[str], sections: Sequence[Section]
    ) -> List[SearchResult]:
        """Rank every term, keep each section's best score, return the global top."""
        best: Dict[str, SearchResult] = {}
        for term in terms:
            for result in self.rank(term, sections):
                seen = best.get(result.section.id)
                if seen is None or result.similarity > seen.similarity:
                    best[result.section.id] = result

        ranked = sorted(best.values(), key=lambda item: item.similarity, reverse=True)
        return ranked[: self.top_sections]
