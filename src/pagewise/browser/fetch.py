"""Load documents from files or plain HTTP."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlparse

import requests

from pagewise.config import REQUEST_TIMEOUT, USER_AGENT
from pagewise.core.exceptions import PagewiseError
from pagewise.page.dom import Document

logger = logging.getLogger(__name__)


def is_url(source: str) -> bool:
    return urlparse(source).scheme in {"http", "https"}


def fetch_document(url: str, timeout: float = REQUEST_TIMEOUT) -> Document:
    """GET ``url`` and parse the HTML; no scripts run, so there is no layout."""
    try:
        response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as exc:
        raise PagewiseError(f"Request timed out after {timeout}s") from exc
    except requests.exceptions.RequestException as exc:
        raise PagewiseError(f"Could not fetch {url}: {exc}") from exc

    logger.debug(
        "Fetched %s status=%s content_length=%d",
        response.url,
        response.status_code,
        len(response.text),
    )
    return Document.from_html(response.text, url=response.url or url)


def load_document(source: str) -> Document:
    """Document from a URL or a local HTML file."""
    if is_url(source):
        return fetch_document(source)
    path = Path(source).expanduser()
    try:
        markup = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise PagewiseError(f"Could not read {path}: {exc}") from exc
    return Document.from_html(markup, url=path.resolve().as_uri())
