"""Per-page session state: sections, caches and current result sets."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from pagewise.config import CLEAR_QUERY_CACHE_ON_READ, FIND_SECTIONS_LIMIT
from pagewise.core.exceptions import SessionBusy
from pagewise.core.types import SearchResult, Section, SectionType
from pagewise.page.accessor import DomAccessor
from pagewise.page.dom import Document
from pagewise.page.extraction import find_text_matches
from pagewise.page.segmenter import SegmenterSettings, segment_document
from pagewise.research.embeddings import EmbeddingCache, EmbeddingProvider
from pagewise.research.query_extraction import extract_search_terms
from pagewise.research.ranker import SimilarityRanker
from pagewise.transport import Message, Messenger

logger = logging.getLogger(__name__)

PLAIN_RESULTS = "plain"
SEMANTIC_RESULTS = "semantic"
PANEL_CONTEXT = "panel"


class PageSession:
    """Owns everything that lives for one page: sections, vectors, results.

    Each ``read_page`` pass starts from scratch: cached vectors and both
    result sets are dropped before the new sections are embedded. One
    "current" result set is kept per kind and every new search overwrites
    its kind; ``last_kind`` remembers which kind was produced most recently.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        *,
        messenger: Optional[Messenger] = None,
        settings: Optional[SegmenterSettings] = None,
        ranker: Optional[SimilarityRanker] = None,
        clear_query_cache_on_read: bool = CLEAR_QUERY_CACHE_ON_READ,
    ) -> None:
        self.cache = EmbeddingCache(provider)
        self.ranker = ranker or SimilarityRanker(self.cache)
        self.messenger = messenger
        self.settings = settings or SegmenterSettings()
        self.clear_query_cache_on_read = clear_query_cache_on_read

        self.url: str = ""
        self.sections: List[Section] = []
        self.indexed_sections: List[Section] = []
        self.results: Dict[str, List[Any]] = {PLAIN_RESULTS: [], SEMANTIC_RESULTS: []}
        self.last_kind: Optional[str] = None
        self._reading = threading.Lock()

    @property
    def has_page(self) -> bool:
        return bool(self.sections)

    def read_page(self, dom: DomAccessor) -> List[Section]:
        """Segment the current document and embed its sections."""
        if not self._reading.acquire(blocking=False):
            raise SessionBusy("A page read is already in progress")
        try:
            document = dom.document()
            self.cache.clear()
            if self.clear_query_cache_on_read:
                self.ranker.clear_query_cache()
            self.clear_results()

            self.url = document.url
            self.sections = segment_document(document, self.settings)
            dom.apply_section_ids(self.sections)
            self.indexed_sections = self.cache.process_sections(self.sections)
            logger.info(
                "Read %s: %d sections, %d embedded",
                self.url or "page",
                len(self.sections),
                len(self.indexed_sections),
            )
        finally:
            self._reading.release()

        if self.messenger is not None:
            self.messenger.notify(
                PANEL_CONTEXT,
                Message(
                    "page_read",
                    {
                        "url": self.url,
                        "title": document.title,
                        "sections": len(self.sections),
                        "embedded": len(self.indexed_sections),
                    },
                ),
            )
        return self.sections

    def ensure_read(self, dom: DomAccessor) -> None:
        if not self.has_page:
            self.read_page(dom)

    def invalidate(self) -> None:
        """Forget the current page; the next semantic action reads it again."""
        self.sections = []
        self.indexed_sections = []
        self.clear_results()

    def clear_results(self) -> None:
        self.results = {PLAIN_RESULTS: [], SEMANTIC_RESULTS: []}
        self.last_kind = None

    def store_results(self, kind: str, items: Sequence[Any]) -> None:
        self.results[kind] = list(items)
        self.last_kind = kind

    def current_results(self, kind: Optional[str] = None) -> List[Any]:
        kind = kind or self.last_kind
        if kind is None:
            return []
        return self.results.get(kind, [])

    def result_at(self, number: int) -> Optional[Any]:
        """1-based item of the most recently produced result set."""
        items = self.current_results()
        if number < 1 or number > len(items):
            return None
        return items[number - 1]

    def semantic_search(self, query: str, k: Optional[int] = None) -> List[SearchResult]:
        results = self.ranker.rank(query, self.indexed_sections, k)
        self.store_results(SEMANTIC_RESULTS, results)
        return results

    def most_relevant(self, utterance: str) -> List[SearchResult]:
        """Rank every phrase derived from ``utterance`` and keep the best sections."""
        terms = extract_search_terms(utterance)
        logger.debug("Search terms for %r: %s", utterance, terms)
        results = self.ranker.find_most_relevant(terms, self.indexed_sections)
        self.store_results(SEMANTIC_RESULTS, results)
        return results

    def find_sections(
        self, document: Document, query: str = "", limit: int = FIND_SECTIONS_LIMIT
    ) -> List[Any]:
        """Plain text matches for ``query``, or the heading sections without one."""
        items: List[Any]
        if query.strip():
            items = find_text_matches(document, query, limit=limit)
        else:
            items = [
                section
                for section in self.sections
                if section.type is SectionType.HEADING_SECTION
            ]
        self.store_results(PLAIN_RESULTS, items)
        return items

    def get_usage_stats(self) -> Dict[str, Any]:
        stats = self.cache.get_usage_stats()
        stats["sections"] = len(self.sections)
        stats["indexed_sections"] = len(self.indexed_sections)
        return stats
