"""Read/scroll access to the current document."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from pagewise.core.types import Section
from pagewise.page.dom import Document, Element
from pagewise.page.extraction import inline_styles

logger = logging.getLogger(__name__)

HIGHLIGHT_STYLES = {"border": "2px solid #ff0000", "background-color": "#ffff00"}


class DomAccessor(ABC):
    """Page-local operations the dispatcher and session rely on."""

    @abstractmethod
    def document(self) -> Document:
        """Return a fresh snapshot of the current document."""

    @abstractmethod
    def scroll_into_view(self, selector: str, behavior: str = "smooth") -> bool:
        """Scroll the first match into view; False when nothing matches."""

    @abstractmethod
    def scroll_to(self, x: float, y: float, behavior: str = "smooth") -> None:
        pass

    @abstractmethod
    def highlight(self, selector: str, duration_ms: int) -> bool:
        """Apply the highlight style and revert it after ``duration_ms``."""

    @abstractmethod
    def wait_for_element(self, selector: str, timeout_ms: int) -> Optional[Element]:
        """Return the element once it exists, or None after the timeout."""

    @abstractmethod
    def computed_style(self, selector: str) -> Optional[Dict[str, str]]:
        """Return style properties of the first match, or None if absent."""

    def apply_section_ids(self, sections: Sequence[Section]) -> None:
        """Push synthetic section ids into the live document (no-op for snapshots)."""


class SnapshotDomAccessor(DomAccessor):
    """Accessor over an in-memory ``Document``.

    Scrolls are recorded rather than performed. ``update_document`` and
    ``notify_mutation`` wake up pending ``wait_for_element`` calls.
    """

    def __init__(self, document: Document) -> None:
        self._document = document
        self._changed = threading.Condition()
        self.scroll_position: Tuple[float, float] = (0.0, 0.0)
        self.scrolled_selectors: List[str] = []
        self.highlighted: Dict[str, Dict[str, Optional[str]]] = {}
        self._highlight_lock = threading.Lock()
        self._pending_highlights: Dict[int, Tuple[Optional[str], threading.Timer]] = {}

    def document(self) -> Document:
        return self._document

    def update_document(self, document: Document) -> None:
        with self._changed:
            self._document = document
            self._changed.notify_all()

    def notify_mutation(self) -> None:
        with self._changed:
            self._changed.notify_all()

    def scroll_into_view(self, selector: str, behavior: str = "smooth") -> bool:
        element = self._document.query_selector(selector)
        if element is None:
            return False
        self.scrolled_selectors.append(selector)
        self.scroll_position = (element.rect.x, element.rect.y)
        logger.debug("Scrolled %s into view (behavior=%s)", selector, behavior)
        return True

    def scroll_to(self, x: float, y: float, behavior: str = "smooth") -> None:
        self.scroll_position = (float(x), float(y))

    def highlight(self, selector: str, duration_ms: int) -> bool:
        element = self._document.query_selector(selector)
        if element is None:
            return False

        with self._highlight_lock:
            pending = self._pending_highlights.pop(id(element), None)
            if pending is None:
                previous_style = element.attrs.get("style")
            else:
                # Restore to the style from before the first overlapping highlight.
                previous_style, earlier_timer = pending
                earlier_timer.cancel()
            self.highlighted[selector] = {"style": previous_style}
            style = "; ".join(f"{name}: {value}" for name, value in HIGHLIGHT_STYLES.items())
            element.attrs["style"] = style

            def _revert() -> None:
                with self._highlight_lock:
                    current = self._pending_highlights.get(id(element))
                    if current is None or current[1] is not timer:
                        return
                    del self._pending_highlights[id(element)]
                    if previous_style is None:
                        element.attrs.pop("style", None)
                    else:
                        element.attrs["style"] = previous_style
                    self.highlighted.pop(selector, None)

            timer = threading.Timer(max(duration_ms, 0) / 1000, _revert)
            timer.daemon = True
            self._pending_highlights[id(element)] = (previous_style, timer)
            timer.start()
        return True

    def wait_for_element(self, selector: str, timeout_ms: int) -> Optional[Element]:
        deadline = time.monotonic() + max(timeout_ms, 0) / 1000
        with self._changed:
            while True:
                element = self._document.query_selector(selector)
                if element is not None:
                    return element
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._changed.wait(remaining)

    def computed_style(self, selector: str) -> Optional[Dict[str, str]]:
        element = self._document.query_selector(selector)
        if element is None:
            return None
        return inline_styles(element)
