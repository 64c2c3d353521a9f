"""DOM accessor backed by a live Playwright page."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from pagewise.browser.manager import PlaywrightBrowserManager, PlaywrightError
from pagewise.core.exceptions import ActionFailed
from pagewise.core.types import Section
from pagewise.page.accessor import HIGHLIGHT_STYLES, DomAccessor
from pagewise.page.dom import Document, Element
from pagewise.page.extraction import IMPORTANT_STYLES

logger = logging.getLogger(__name__)

SCROLL_INTO_VIEW_SCRIPT = """
({selector, behavior}) => {
  const element = document.querySelector(selector);
  if (!element) return false;
  element.scrollIntoView({behavior, block: "center"});
  return true;
}
"""

SCROLL_TO_SCRIPT = "({x, y, behavior}) => window.scrollTo({left: x, top: y, behavior})"

HIGHLIGHT_SCRIPT = """
({selector, styles, duration}) => {
  const element = document.querySelector(selector);
  if (!element) return false;
  const pending = window.__pagewiseHighlights || (window.__pagewiseHighlights = new WeakMap());
  let entry = pending.get(element);
  if (entry) {
    clearTimeout(entry.timer);
  } else {
    entry = {previous: {}};
    for (const name of Object.keys(styles)) {
      entry.previous[name] = element.style.getPropertyValue(name);
    }
    pending.set(element, entry);
  }
  for (const [name, value] of Object.entries(styles)) element.style.setProperty(name, value);
  entry.timer = setTimeout(() => {
    pending.delete(element);
    for (const [name, value] of Object.entries(entry.previous)) {
      if (value) element.style.setProperty(name, value);
      else element.style.removeProperty(name);
    }
  }, duration);
  return true;
}
"""

COMPUTED_STYLE_SCRIPT = """
({selector, properties}) => {
  const element = document.querySelector(selector);
  if (!element) return null;
  const styles = window.getComputedStyle(element);
  const result = {};
  for (const name of properties) result[name] = styles.getPropertyValue(name);
  return result;
}
"""

DESCRIBE_SCRIPT = """
(selector) => {
  const element = document.querySelector(selector);
  if (!element) return null;
  const box = element.getBoundingClientRect();
  const attrs = {};
  for (const attribute of element.attributes) attrs[attribute.name] = attribute.value;
  return {
    tag: element.tagName.toLowerCase(),
    attrs,
    rect: {x: box.left + window.scrollX, y: box.top + window.scrollY, width: box.width, height: box.height},
    children: [element.innerText || ""],
  };
}
"""

APPLY_IDS_SCRIPT = """
(assignments) => {
  for (const {selector, id} of assignments) {
    const element = document.querySelector(selector);
    if (element && !element.id) element.id = id;
  }
}
"""


def _page_failure(exc: Exception, fallback: str) -> ActionFailed:
    # Playwright appends a multi-line call log; the first line is the reason.
    text = str(exc)
    return ActionFailed(text.splitlines()[0] if text else fallback)


class PlaywrightDomAccessor(DomAccessor):
    """Reads snapshots from the live page and runs scrolls inside it."""

    def __init__(self, manager: PlaywrightBrowserManager) -> None:
        self.manager = manager

    def _run(self, script: str, arg: object) -> object:
        try:
            return self.manager.evaluate(script, arg)
        except PlaywrightError as exc:
            raise _page_failure(exc, "page script failed") from exc

    def document(self) -> Document:
        try:
            return self.manager.snapshot()
        except PlaywrightError as exc:
            raise _page_failure(exc, "page snapshot failed") from exc

    def scroll_into_view(self, selector: str, behavior: str = "smooth") -> bool:
        return bool(
            self._run(SCROLL_INTO_VIEW_SCRIPT, {"selector": selector, "behavior": behavior})
        )

    def scroll_to(self, x: float, y: float, behavior: str = "smooth") -> None:
        self._run(SCROLL_TO_SCRIPT, {"x": x, "y": y, "behavior": behavior})

    def highlight(self, selector: str, duration_ms: int) -> bool:
        return bool(
            self._run(
                HIGHLIGHT_SCRIPT,
                {"selector": selector, "styles": HIGHLIGHT_STYLES, "duration": duration_ms},
            )
        )

    def wait_for_element(self, selector: str, timeout_ms: int) -> Optional[Element]:
        if not self.manager.wait_for_selector(selector, timeout_ms):
            return None
        node = self._run(DESCRIBE_SCRIPT, selector)
        if node is None:
            return None
        return Document.from_dict({"root": node}).root

    def computed_style(self, selector: str) -> Optional[Dict[str, str]]:
        styles = self._run(
            COMPUTED_STYLE_SCRIPT, {"selector": selector, "properties": list(IMPORTANT_STYLES)}
        )
        return dict(styles) if styles is not None else None

    def apply_section_ids(self, sections: Sequence[Section]) -> None:
        assignments = [
            {"selector": section.selector, "id": section.id}
            for section in sections
            if not section.selector.startswith("#")
        ]
        if assignments:
            self._run(APPLY_IDS_SCRIPT, assignments)
            logger.debug("Applied %d section ids to the live page", len(assignments))
