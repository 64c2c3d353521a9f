"""Split a rendered document into non-overlapping semantic sections."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from pagewise.config import (
    MIN_EMBEDDING_CHARS,
    SEMANTIC_BLOCK_MIN_CHARS,
    TEXT_BLOCK_MAX_CHARS,
    TEXT_BLOCK_MIN_CHARS,
    TEXT_BLOCK_MIN_WORDS,
)
from pagewise.core.types import Link, Section, SectionType
from pagewise.page.dom import Document, Element, collapse_whitespace, element_selector
from pagewise.page.selectors import select

logger = logging.getLogger(__name__)

HEADING_SELECTOR = "h1, h2, h3, h4, h5, h6"
SEMANTIC_BLOCK_SELECTORS = (
    "article",
    "section",
    ".content",
    ".post",
    ".entry",
    '[role="article"]',
    '[role="main"]',
    ".description",
    ".info",
    ".details",
    ".summary",
)
TEXT_BLOCK_SELECTOR = "p, .paragraph, .text"
BLOCK_TITLE_SELECTORS = (
    HEADING_SELECTOR,
    ".title, .headline, .subject",
    "[aria-label]",
    "title",
)
SECTION_ID_PREFIX = "semantic-section-"
FIRST_SENTENCE_PATTERN = re.compile(r"^[^.!?]+[.!?]")


@dataclass(frozen=True)
class SegmenterSettings:
    semantic_block_min_chars: int = SEMANTIC_BLOCK_MIN_CHARS
    text_block_min_chars: int = TEXT_BLOCK_MIN_CHARS
    text_block_max_chars: int = TEXT_BLOCK_MAX_CHARS
    text_block_min_words: int = TEXT_BLOCK_MIN_WORDS


@dataclass
class ContentBlock:
    """Intermediate block; ``elements[0]`` is the root used for ids and selectors."""

    type: SectionType
    heading: Optional[str]
    content: str
    elements: List[Element]
    level: int = 0
    links: List[Link] = field(default_factory=list)

    @property
    def root(self) -> Element:
        return self.elements[0]


class _ClaimSet:
    """Elements already owned by a block; ownership covers whole subtrees."""

    def __init__(self) -> None:
        self._claimed: set[int] = set()

    def claim(self, elements: Iterable[Element]) -> None:
        for element in elements:
            self._claimed.add(id(element))

    def is_claimed(self, element: Element) -> bool:
        if id(element) in self._claimed:
            return True
        return any(id(ancestor) in self._claimed for ancestor in element.iter_ancestors())

    def overlaps(self, element: Element) -> bool:
        if self.is_claimed(element):
            return True
        return any(id(child) in self._claimed for child in element.iter_descendants())


def _collect_links(elements: Sequence[Element]) -> List[Link]:
    links: List[Link] = []
    for element in elements:
        anchors = [element] if element.tag == "a" else []
        anchors.extend(select(element, "a"))
        for anchor in anchors:
            links.append(Link(text=anchor.inner_text.strip(), href=anchor.get("href")))
    return links


def _heading_block(heading: Element) -> ContentBlock:
    body: List[Element] = []
    # Deeper headings stay in the body as subsections.
    for sibling in heading.following_siblings():
        if sibling.heading_level and sibling.heading_level <= heading.heading_level:
            break
        body.append(sibling)

    content = "\n".join(element.inner_text for element in body).strip()
    return ContentBlock(
        type=SectionType.HEADING_SECTION,
        heading=heading.inner_text.strip(),
        content=content,
        elements=[heading, *body],
        level=heading.heading_level,
        links=_collect_links(body),
    )


def block_title(element: Element) -> Optional[str]:
    """Best-effort title for a block that has no leading heading."""
    for selector in BLOCK_TITLE_SELECTORS:
        for candidate in select(element, selector):
            text = candidate.inner_text.strip()
            if text:
                return text
            break

    for attribute in ("aria-label", "title"):
        value = element.get(attribute).strip()
        if value:
            return value
    if element.id and not element.id.startswith(SECTION_ID_PREFIX):
        return re.sub(r"[-_]", " ", element.id)

    match = FIRST_SENTENCE_PATTERN.match(element.inner_text.strip())
    if match:
        return match.group(0).strip()
    return None


def identify_content_blocks(
    document: Document, settings: Optional[SegmenterSettings] = None
) -> List[ContentBlock]:
    """Collect heading sections, then semantic blocks, then loose text blocks."""
    settings = settings or SegmenterSettings()
    claims = _ClaimSet()
    blocks: List[ContentBlock] = []

    for heading in document.query_selector_all(HEADING_SELECTOR):
        if claims.is_claimed(heading):
            continue
        block = _heading_block(heading)
        blocks.append(block)
        claims.claim(block.elements)

    for selector in SEMANTIC_BLOCK_SELECTORS:
        for element in document.query_selector_all(selector):
            if claims.overlaps(element):
                continue
            text = element.inner_text.strip()
            if len(text) <= settings.semantic_block_min_chars:
                continue
            blocks.append(
                ContentBlock(
                    type=SectionType.SEMANTIC_BLOCK,
                    heading=block_title(element),
                    content=text,
                    elements=[element],
                    links=_collect_links([element]),
                )
            )
            claims.claim([element])

    for element in document.query_selector_all(TEXT_BLOCK_SELECTOR):
        if claims.overlaps(element):
            continue
        text = element.inner_text.strip()
        if not settings.text_block_min_chars < len(text) < settings.text_block_max_chars:
            continue
        if len(text.split()) <= settings.text_block_min_words:
            continue
        blocks.append(
            ContentBlock(
                type=SectionType.TEXT_BLOCK,
                heading=None,
                content=text,
                elements=[element],
            )
        )
        claims.claim([element])

    return blocks


def build_embedding_content(
    heading: Optional[str], body: str, links: Sequence[Link]
) -> str:
    """Heading, body and link texts as one whitespace-collapsed string."""
    parts: List[str] = []
    if heading:
        parts.append(heading)
    if body:
        parts.append(body)
    parts.extend(link.text for link in links)
    return collapse_whitespace(" ".join(parts))


def segment_document(
    document: Document, settings: Optional[SegmenterSettings] = None
) -> List[Section]:
    """Segment ``document`` into ordered sections.

    Root elements without an id receive the section id, so later passes and
    live pages can address them with ``#semantic-section-<n>``.
    """
    blocks = identify_content_blocks(document, settings)
    sections: List[Section] = []
    for index, block in enumerate(blocks):
        section_id = f"{SECTION_ID_PREFIX}{index}"
        root = block.root
        selector = element_selector(root)
        if not root.id:
            root.id = section_id

        sections.append(
            Section(
                id=section_id,
                heading=block.heading,
                text=block.content,
                content=build_embedding_content(block.heading, block.content, block.links),
                selector=selector,
                type=block.type,
                level=block.level,
                links=list(block.links),
                rect=root.rect,
            )
        )

    logger.debug(
        "Segmented %s into %d sections (%d heading, %d semantic, %d text)",
        document.url or "document",
        len(sections),
        sum(1 for item in sections if item.type is SectionType.HEADING_SECTION),
        sum(1 for item in sections if item.type is SectionType.SEMANTIC_BLOCK),
        sum(1 for item in sections if item.type is SectionType.TEXT_BLOCK),
    )
    return sections


def embeddable_sections(
    sections: Iterable[Section], min_chars: int = MIN_EMBEDDING_CHARS
) -> List[Section]:
    """Drop sections whose content is too short to be worth embedding."""
    return [section for section in sections if len(section.content) > min_chars]
