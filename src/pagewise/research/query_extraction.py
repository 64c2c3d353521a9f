"""Derive ranking phrases from a raw utterance."""

import re
from typing import List

SCROLL_ABOUT_PATTERN = re.compile(
    r"scroll\s+(?:to\s+)?(?:a\s+)?(?:section\s+)?(?:that\s+)?"
    r"(?:mentions?|about|regarding|concerning)?\s*[\"']?(.+?)[\"']?$",
    re.IGNORECASE,
)
FIND_CONTENT_PATTERN = re.compile(
    r"find\s+(?:content|section|text)?\s*(?:about|regarding|concerning)?"
    r"\s*[\"']?(.+?)[\"']?$",
    re.IGNORECASE,
)
TERM_PATTERNS = (SCROLL_ABOUT_PATTERN, FIND_CONTENT_PATTERN)


def extract_search_terms(utterance: str) -> List[str]:
    """Return an ordered, non-empty list of search phrases.

    The scroll/about pattern is tried before the find-content one; both can
    contribute. Without any match the whole utterance is the only term.
    """
    terms: List[str] = []
    for pattern in TERM_PATTERNS:
        match = pattern.search(utterance)
        if not match:
            continue
        term = match.group(1).strip()
        if term and term not in terms:
            terms.append(term)

    if not terms:
        terms.append(utterance)
    return terms
