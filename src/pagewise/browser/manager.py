"""Sync Playwright browser manager driving one live page."""

from __future__ import annotations

import logging
import subprocess
import sys
from threading import Lock
from typing import Any, Dict, Optional

from pagewise.config import (
    BROWSER_HEADLESS,
    BROWSER_PAGE_TIMEOUT_MS,
    BROWSER_POST_LOAD_DELAY_MS,
    BROWSER_TYPE,
)
from pagewise.page.dom import Document

try:
    from playwright.sync_api import (
        Browser,
        BrowserContext,
        Error as PlaywrightError,
        Page,
        TimeoutError,
        sync_playwright,
    )
except ImportError:
    sync_playwright = None  # type: ignore
    TimeoutError = Exception  # type: ignore
    PlaywrightError = Exception  # type: ignore

logger = logging.getLogger(__name__)

SNAPSHOT_SCRIPT = """
() => {
  const skipped = new Set(["SCRIPT", "STYLE", "NOSCRIPT", "TEMPLATE"]);
  const walk = (element) => {
    const box = element.getBoundingClientRect();
    const attrs = {};
    for (const attribute of element.attributes) {
      attrs[attribute.name] = attribute.value;
    }
    const children = [];
    for (const child of element.childNodes) {
      if (child.nodeType === Node.TEXT_NODE) {
        children.push(child.nodeValue);
      } else if (child.nodeType === Node.ELEMENT_NODE && !skipped.has(child.tagName)) {
        children.push(walk(child));
      }
    }
    return {
      tag: element.tagName.toLowerCase(),
      attrs,
      rect: {
        x: box.left + window.scrollX,
        y: box.top + window.scrollY,
        width: box.width,
        height: box.height,
      },
      children,
    };
  };
  return {url: location.href, title: document.title, root: walk(document.documentElement)};
}
"""


class PlaywrightBrowserManager:
    """Lazy-started Playwright browser; every page operation holds one lock."""

    def __init__(
        self,
        browser_type: str = BROWSER_TYPE,
        headless: bool = BROWSER_HEADLESS,
        page_timeout_ms: int = BROWSER_PAGE_TIMEOUT_MS,
        post_load_delay_ms: int = BROWSER_POST_LOAD_DELAY_MS,
    ) -> None:
        self._browser_type = browser_type
        self._headless = headless
        self._page_timeout_ms = page_timeout_ms
        self._post_load_delay_ms = post_load_delay_ms

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._lock = Lock()

    def _launch(self) -> None:
        browser_launcher = getattr(self._playwright, self._browser_type)
        launch_args: Dict[str, Any] = {"headless": self._headless}
        self._browser = browser_launcher.launch(**launch_args)
        self._context = self._browser.new_context()

    def _ensure_started(self) -> Page:
        if self._page is not None:
            return self._page

        if sync_playwright is None:
            raise ImportError(
                "Playwright not installed. Run 'pip install pagewise[browser]' "
                "and 'playwright install chromium'."
            )

        self._playwright = sync_playwright().start()
        try:
            self._launch()
        except Exception as e:
            error_msg = str(e)
            if (
                "Executable doesn't exist at" not in error_msg
                and "playwright install" not in error_msg
            ):
                raise
            logger.info(
                "Playwright browser %s missing. Attempting automatic installation...",
                self._browser_type,
            )
            try:
                subprocess.run(
                    [sys.executable, "-m", "playwright", "install", self._browser_type],
                    check=True,
                )
            except subprocess.CalledProcessError as install_err:
                raise RuntimeError(
                    f"Failed to automatically install Playwright browser: {install_err}"
                ) from e
            self._launch()

        self._page = self._context.new_page()
        self._page.set_default_timeout(self._page_timeout_ms)
        return self._page

    def navigate(self, url: str) -> Dict[str, Any]:
        with self._lock:
            page = self._ensure_started()
            logger.debug("Playwright navigating to: %s", url)
            # 'domcontentloaded' avoids hanging on endless background requests
            response = page.goto(
                url, wait_until="domcontentloaded", timeout=self._page_timeout_ms
            )
            page.wait_for_timeout(self._post_load_delay_ms)
            status = response.status if response else None
            logger.debug(
                "Playwright loaded final_url=%s status=%s title='%s'",
                page.url,
                status,
                page.title(),
            )
            return {"url": page.url, "title": page.title(), "status": status}

    def click(self, target: str) -> Dict[str, Any]:
        """Click a CSS selector, or failing that the first element with that text."""
        with self._lock:
            page = self._ensure_started()
            try:
                page.locator(target).first.click(timeout=self._page_timeout_ms)
            except (TimeoutError, PlaywrightError) as exc:
                logger.debug("Selector click on %r failed (%s), trying text match", target, exc)
                page.get_by_text(target).first.click(timeout=self._page_timeout_ms)
            try:
                page.wait_for_load_state("domcontentloaded", timeout=self._page_timeout_ms)
            except TimeoutError as exc:
                logger.debug("Post-click load state wait timed out: %s", exc)
            return {"target": target, "url": page.url}

    def snapshot(self) -> Document:
        with self._lock:
            page = self._ensure_started()
            return Document.from_dict(page.evaluate(SNAPSHOT_SCRIPT))

    def evaluate(self, script: str, arg: Any = None) -> Any:
        with self._lock:
            page = self._ensure_started()
            return page.evaluate(script, arg)

    def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        with self._lock:
            page = self._ensure_started()
            try:
                page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
            except TimeoutError:
                return False
            return True

    def close(self) -> None:
        with self._lock:
            self._close_unlocked()

    def _close_unlocked(self) -> None:
        if self._context:
            self._context.close()
        if self._browser:
            self._browser.close()
        if self._playwright:
            self._playwright.stop()
        self._page = None
        self._browser = None
        self._context = None
        self._playwright = None
