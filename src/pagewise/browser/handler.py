"""Browser-context receivers for navigate and click requests."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

from pagewise.browser.fetch import fetch_document
from pagewise.browser.manager import PlaywrightBrowserManager
from pagewise.page.accessor import SnapshotDomAccessor
from pagewise.page.dom import Document, Element
from pagewise.page.selectors import SelectorSyntaxError
from pagewise.transport import LocalTransport, Message

logger = logging.getLogger(__name__)

NAVIGATE = "browser_navigate"
CLICK = "browser_click"


class BrowserContextHandler:
    """Handles browser messages with a live Playwright page."""

    def __init__(self, manager: PlaywrightBrowserManager) -> None:
        self.manager = manager

    def __call__(self, message: Message) -> Dict[str, Any]:
        if message.action == NAVIGATE:
            return self.manager.navigate(str(message.params["url"]))
        if message.action == CLICK:
            return self.manager.click(str(message.params["target"]))
        raise ValueError(f"Unsupported browser action: {message.action}")

    def register(self, transport: LocalTransport, name: str = "browser") -> None:
        transport.register(name, self)


def _enclosing_link(element: Element) -> Optional[Element]:
    for ancestor in element.iter_ancestors():
        if ancestor.tag == "a":
            return ancestor
    return None


class SnapshotBrowserHandler:
    """Browser receiver for static snapshots: navigation re-fetches over HTTP.

    Clicking only follows links, since nothing runs scripts.
    """

    def __init__(
        self,
        accessor: SnapshotDomAccessor,
        fetch: Callable[[str], Document] = fetch_document,
    ) -> None:
        self.accessor = accessor
        self.fetch = fetch

    def __call__(self, message: Message) -> Dict[str, Any]:
        if message.action == NAVIGATE:
            return self._open(str(message.params["url"]))
        if message.action == CLICK:
            return self._click(str(message.params["target"]))
        raise ValueError(f"Unsupported browser action: {message.action}")

    def register(self, transport: LocalTransport, name: str = "browser") -> None:
        transport.register(name, self)

    def _open(self, url: str) -> Dict[str, Any]:
        document = self.fetch(url)
        self.accessor.update_document(document)
        return {"url": document.url, "title": document.title, "status": None}

    def _find_clickable(self, document: Document, target: str) -> Element:
        try:
            element = document.query_selector(target)
        except SelectorSyntaxError:
            element = None
        if element is not None:
            return element
        needle = target.strip().lower()
        for candidate in document.query_selector_all("a[href], button"):
            if candidate.inner_text.strip().lower() == needle:
                return candidate
        for candidate in document.query_selector_all("a[href], button"):
            if needle in candidate.inner_text.strip().lower():
                return candidate
        raise LookupError(f"Element not found: {target}")

    def _click(self, target: str) -> Dict[str, Any]:
        document = self.accessor.document()
        element = self._find_clickable(document, target)
        link = element if element.tag == "a" else _enclosing_link(element)
        if link is None or link.tag != "a" or not link.get("href"):
            raise ValueError(f"'{target}' is not a link; static pages cannot run click handlers")
        url = urljoin(document.url, link.get("href"))
        logger.debug("Following link %s -> %s", target, url)
        result = self._open(url)
        result["target"] = target
        return result
