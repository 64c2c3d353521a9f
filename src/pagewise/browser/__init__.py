"""Live browser integration (Playwright) and page loading."""

from pagewise.browser.fetch import fetch_document, is_url, load_document
from pagewise.browser.handler import BrowserContextHandler, SnapshotBrowserHandler

__all__ = [
    "BrowserContextHandler",
    "SnapshotBrowserHandler",
    "fetch_document",
    "is_url",
    "load_document",
]
