"""Shared data records for sections, search results and commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class Rect:
    """Element box in document coordinates."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Link:
    text: str
    href: str

    def to_dict(self) -> Dict[str, str]:
        return {"text": self.text, "href": self.href}


class SectionType(str, Enum):
    HEADING_SECTION = "heading-section"
    SEMANTIC_BLOCK = "semantic-block"
    TEXT_BLOCK = "text-block"


@dataclass(frozen=True)
class Section:
    """One addressable unit of page content produced by a segmentation pass."""

    id: str
    heading: Optional[str]
    text: str
    content: str
    selector: str
    type: SectionType
    level: int = 0
    links: List[Link] = field(default_factory=list)
    rect: Rect = field(default_factory=Rect)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "heading": self.heading,
            "text": self.text,
            "content": self.content,
            "selector": self.selector,
            "type": self.type.value,
            "level": self.level,
            "links": [link.to_dict() for link in self.links],
            "rect": self.rect.to_dict(),
        }


class RelevanceLabel(Enum):
    VERY_HIGH = "Very High"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    VERY_LOW = "Very Low"

    @property
    def rank(self) -> int:
        """Ordinal position, 4 for VERY_HIGH down to 0 for VERY_LOW."""
        return _LABEL_RANKS[self]


_LABEL_RANKS = {
    RelevanceLabel.VERY_LOW: 0,
    RelevanceLabel.LOW: 1,
    RelevanceLabel.MEDIUM: 2,
    RelevanceLabel.HIGH: 3,
    RelevanceLabel.VERY_HIGH: 4,
}


@dataclass(frozen=True)
class SearchResult:
    section: Section
    similarity: float
    relevance_label: RelevanceLabel

    @property
    def selector(self) -> str:
        return self.section.selector

    def to_dict(self) -> Dict[str, Any]:
        payload = self.section.to_dict()
        payload["relevance_score"] = self.similarity
        payload["relevance_label"] = self.relevance_label.value
        return payload


@dataclass(frozen=True)
class PageMatch:
    """Element whose rendered text contains a plain-text query."""

    text: str
    selector: str
    tag: str
    rect: Rect = field(default_factory=Rect)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "selector": self.selector,
            "tag": self.tag,
            "rect": self.rect.to_dict(),
        }


class Action(str, Enum):
    EXTRACT_STRUCTURED_DATA = "extract_structured_data"
    SEMANTIC_SEARCH = "semantic_search"
    FIND_SECTIONS = "find_sections"
    SEMANTIC_SCROLL = "semantic_scroll"
    SCROLL_TO_SECTION = "scroll_to_section"
    SCROLL_TO_SECTION_BY_NUMBER = "scroll_to_section_by_number"
    GET_ALL_LINKS = "get_all_links"
    NAVIGATE = "navigate"
    CLICK = "click"
    EXTRACT_FORM_FIELDS = "extract_form_fields"
    # Page actions reachable through dispatch only.
    WAIT_FOR_ELEMENT = "wait_for_element"
    GET_COMPUTED_STYLE = "get_computed_style"
    HIGHLIGHT_ELEMENT = "highlight_element"
    GET_PAGE_CONTENT = "get_page_content"


@dataclass(frozen=True)
class Command:
    action: Action
    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def query(self) -> str:
        return str(self.params.get("query", "") or "")


@dataclass(frozen=True)
class ActionResult:
    action: Action
    data: Any = None
    summary: str = ""


@dataclass(frozen=True)
class WaitResult:
    found: bool
    selector: str
    timed_out: bool = False
    element: Optional[Dict[str, Any]] = None
