"""Core types and errors shared across pagewise."""

from pagewise.core.exceptions import (
    ActionError,
    ActionFailed,
    ElementNotFound,
    InvalidActionParams,
    PagewiseError,
    ProviderError,
    SessionBusy,
    TransportFailure,
)
from pagewise.core.types import (
    Action,
    ActionResult,
    Command,
    Link,
    PageMatch,
    Rect,
    RelevanceLabel,
    SearchResult,
    Section,
    SectionType,
    WaitResult,
)

__all__ = [
    "Action",
    "ActionError",
    "ActionFailed",
    "ActionResult",
    "Command",
    "ElementNotFound",
    "InvalidActionParams",
    "Link",
    "PageMatch",
    "PagewiseError",
    "ProviderError",
    "Rect",
    "RelevanceLabel",
    "SearchResult",
    "Section",
    "SectionType",
    "SessionBusy",
    "TransportFailure",
    "WaitResult",
]
