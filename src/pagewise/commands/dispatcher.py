"""Route commands to the page or the browser context."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlparse

from pagewise.config import HIGHLIGHT_MS, WAIT_TIMEOUT_MS
from pagewise.core.exceptions import (
    ActionError,
    ActionFailed,
    ElementNotFound,
    InvalidActionParams,
)
from pagewise.core.types import Action, ActionResult, Command, WaitResult
from pagewise.page.accessor import DomAccessor
from pagewise.page.extraction import (
    describe_element,
    extract_form_fields,
    extract_links,
    extract_structured_data,
    main_text_content,
)
from pagewise.page.selectors import SelectorSyntaxError
from pagewise.session import PageSession
from pagewise.transport import Message, Messenger

logger = logging.getLogger(__name__)

BROWSER_CONTEXT = "browser"
TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(params: Mapping[str, Any], name: str, default: bool) -> bool:
    value = params.get(name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def _number(params: Mapping[str, Any], name: str, action: Action) -> float:
    try:
        return float(params[name])
    except (TypeError, ValueError) as exc:
        raise InvalidActionParams(
            f"'{name}' must be a number, got {params[name]!r}", action=action.value
        ) from exc


def normalize_url(url: str) -> str:
    url = url.strip()
    if not urlparse(url).scheme:
        url = f"https://{url}"
    return url


class ActionDispatcher:
    """Executes one ``Command`` and returns an ``ActionResult``.

    ``NAVIGATE`` and ``CLICK`` are requests to the browser context; every
    other action runs against the current document through the DOM
    accessor. Failures raise ``ActionError`` subclasses tagged with the
    action; nothing is retried.
    """

    def __init__(
        self,
        dom: DomAccessor,
        session: PageSession,
        messenger: Optional[Messenger] = None,
        *,
        browser_context: str = BROWSER_CONTEXT,
        highlight_ms: int = HIGHLIGHT_MS,
        wait_timeout_ms: int = WAIT_TIMEOUT_MS,
    ) -> None:
        self.dom = dom
        self.session = session
        self.messenger = messenger
        self.browser_context = browser_context
        self.highlight_ms = highlight_ms
        self.wait_timeout_ms = wait_timeout_ms
        self._handlers: Dict[Action, Callable[[Command], ActionResult]] = {
            Action.EXTRACT_STRUCTURED_DATA: self._extract_structured_data,
            Action.SEMANTIC_SEARCH: self._semantic_search,
            Action.FIND_SECTIONS: self._find_sections,
            Action.SEMANTIC_SCROLL: self._semantic_scroll,
            Action.SCROLL_TO_SECTION: self._scroll_to_section,
            Action.SCROLL_TO_SECTION_BY_NUMBER: self._scroll_to_section_by_number,
            Action.GET_ALL_LINKS: self._get_all_links,
            Action.NAVIGATE: self._navigate,
            Action.CLICK: self._click,
            Action.EXTRACT_FORM_FIELDS: self._extract_form_fields,
            Action.WAIT_FOR_ELEMENT: self._wait_for_element,
            Action.GET_COMPUTED_STYLE: self._get_computed_style,
            Action.HIGHLIGHT_ELEMENT: self._highlight_element,
            Action.GET_PAGE_CONTENT: self._get_page_content,
        }

    def dispatch(self, command: Command) -> ActionResult:
        handler = self._handlers.get(command.action)
        if handler is None:
            raise InvalidActionParams(f"Unsupported action: {command.action}")
        logger.debug("Dispatching %s with %s", command.action.value, dict(command.params))
        try:
            return handler(command)
        except SelectorSyntaxError as exc:
            raise InvalidActionParams(str(exc), action=command.action.value) from exc
        except ActionError as exc:
            if exc.action is None:
                exc.action = command.action.value
            raise

    # Helpers

    def _require(self, command: Command, *names: str) -> str:
        for name in names:
            value = str(command.params.get(name, "") or "").strip()
            if value:
                return value
        raise InvalidActionParams(
            f"missing '{names[0]}' parameter", action=command.action.value
        )

    def _scroll_to_selector(self, action: Action, selector: str, behavior: str) -> None:
        if not self.dom.scroll_into_view(selector, behavior):
            raise ElementNotFound(selector, action=action.value)
        self.dom.highlight(selector, self.highlight_ms)

    def _browser_request(self, action: Action, message: Message) -> Any:
        if self.messenger is None:
            raise ActionFailed("no browser context is attached", action=action.value)
        data = self.messenger.request(self.browser_context, message, action=action.value)
        self.session.invalidate()
        return data

    # Page actions

    def _extract_structured_data(self, command: Command) -> ActionResult:
        params = command.params
        data = extract_structured_data(
            self.dom.document(),
            include_images=_flag(params, "include_images", False),
            include_links=_flag(params, "include_links", True),
            include_headings=_flag(params, "include_headings", True),
            enable_semantic_processing=_flag(params, "enable_semantic_processing", True),
        )
        sections = self.session.read_page(self.dom)
        summary = (
            f"Read '{data['title'] or data['url'] or 'page'}': "
            f"{len(sections)} sections, {len(data['links'])} links, "
            f"{len(data['forms'])} forms"
        )
        return ActionResult(command.action, data, summary)

    def _semantic_search(self, command: Command) -> ActionResult:
        query = self._require(command, "query")
        self.session.ensure_read(self.dom)
        results = self.session.semantic_search(query)
        summary = f"{len(results)} sections related to '{query}'"
        return ActionResult(command.action, results, summary)

    def _find_sections(self, command: Command) -> ActionResult:
        query = str(command.params.get("query", "") or "").strip()
        if not query:
            self.session.ensure_read(self.dom)
        items = self.session.find_sections(self.dom.document(), query)
        if query:
            summary = f"{len(items)} places mention '{query}'"
        else:
            summary = f"{len(items)} sections on this page"
        return ActionResult(command.action, items, summary)

    def _semantic_scroll(self, command: Command) -> ActionResult:
        utterance = self._require(command, "utterance", "query")
        self.session.ensure_read(self.dom)
        results = self.session.most_relevant(utterance)
        if not results:
            raise ActionFailed(
                f"no section matches '{command.query or utterance}'",
                action=command.action.value,
            )
        best = results[0]
        self._scroll_to_selector(command.action, best.selector, "smooth")
        heading = best.section.heading or best.section.text[:60]
        summary = f"Scrolled to '{heading}' ({best.relevance_label.value} relevance)"
        return ActionResult(command.action, results, summary)

    def _scroll_to_section(self, command: Command) -> ActionResult:
        params = command.params
        behavior = str(params.get("behavior", "smooth") or "smooth")
        selector = str(params.get("selector", "") or "").strip()
        if selector:
            self._scroll_to_selector(command.action, selector, behavior)
            data = {"selector": selector, "scrolled": True}
            return ActionResult(command.action, data, f"Scrolled to {selector}")

        if params.get("x") is not None and params.get("y") is not None:
            x = _number(params, "x", command.action)
            y = _number(params, "y", command.action)
            self.dom.scroll_to(x, y, behavior)
            return ActionResult(
                command.action, {"x": x, "y": y, "scrolled": True}, f"Scrolled to ({x:g}, {y:g})"
            )

        query = command.query.strip()
        if not query:
            raise InvalidActionParams(
                "either a selector or coordinates must be provided",
                action=command.action.value,
            )
        matches = self.session.find_sections(self.dom.document(), query)
        if not matches:
            raise ActionFailed(f"nothing on this page mentions '{query}'", action=command.action.value)
        target = matches[0]
        self._scroll_to_selector(command.action, target.selector, behavior)
        data = {"selector": target.selector, "scrolled": True, "matches": matches}
        return ActionResult(command.action, data, f"Scrolled to '{target.text[:60]}'")

    def _scroll_to_section_by_number(self, command: Command) -> ActionResult:
        raw = self._require(command, "query", "number")
        try:
            number = int(raw)
        except ValueError as exc:
            raise InvalidActionParams(
                f"'{raw}' is not a result number", action=command.action.value
            ) from exc
        item = self.session.result_at(number)
        if item is None:
            available = len(self.session.current_results())
            raise InvalidActionParams(
                f"there is no result {number} ({available} available)",
                action=command.action.value,
            )
        self._scroll_to_selector(command.action, item.selector, "smooth")
        return ActionResult(
            command.action,
            {"number": number, "selector": item.selector, "scrolled": True},
            f"Scrolled to result {number}",
        )

    def _get_all_links(self, command: Command) -> ActionResult:
        links = extract_links(self.dom.document(), str(command.params.get("filter", "") or ""))
        return ActionResult(command.action, links, f"{len(links)} links")

    def _extract_form_fields(self, command: Command) -> ActionResult:
        forms = extract_form_fields(
            self.dom.document(), command.params.get("form_selector") or None
        )
        fields = sum(len(form["fields"]) for form in forms)
        return ActionResult(command.action, forms, f"{len(forms)} forms, {fields} fields")

    def _wait_for_element(self, command: Command) -> ActionResult:
        selector = self._require(command, "selector", "query")
        timeout_ms = self.wait_timeout_ms
        if command.params.get("timeout") is not None:
            timeout_ms = int(_number(command.params, "timeout", command.action))
        element = self.dom.wait_for_element(selector, timeout_ms)
        if element is None:
            result = WaitResult(found=False, selector=selector, timed_out=True)
            return ActionResult(command.action, result, f"{selector} did not appear")
        result = WaitResult(found=True, selector=selector, element=describe_element(element))
        return ActionResult(command.action, result, f"{selector} is present")

    def _get_computed_style(self, command: Command) -> ActionResult:
        selector = self._require(command, "selector", "query")
        styles = self.dom.computed_style(selector)
        if styles is None:
            raise ElementNotFound(selector, action=command.action.value)
        try:
            element = self.dom.document().query_selector(selector)
        except SelectorSyntaxError:
            # Valid in the browser but beyond the snapshot selector engine.
            element = None
        data = {
            "selector": selector,
            "styles": styles,
            "rect": element.rect.to_dict() if element is not None else None,
        }
        return ActionResult(command.action, data, f"{len(styles)} styles for {selector}")

    def _highlight_element(self, command: Command) -> ActionResult:
        selector = self._require(command, "selector", "query")
        duration = self.highlight_ms
        if command.params.get("duration") is not None:
            duration = int(_number(command.params, "duration", command.action))
        if not self.dom.highlight(selector, duration):
            raise ElementNotFound(selector, action=command.action.value)
        return ActionResult(command.action, {"selector": selector}, f"Highlighted {selector}")

    def _get_page_content(self, command: Command) -> ActionResult:
        document = self.dom.document()
        data = {
            "url": document.url,
            "title": document.title,
            "text": main_text_content(document),
        }
        return ActionResult(command.action, data, f"Page content of {document.url or 'page'}")

    # Browser actions

    def _navigate(self, command: Command) -> ActionResult:
        url = normalize_url(self._require(command, "query", "url"))
        data = self._browser_request(
            command.action, Message("browser_navigate", {"url": url})
        )
        return ActionResult(command.action, data, f"Navigated to {url}")

    def _click(self, command: Command) -> ActionResult:
        target = self._require(command, "query", "selector")
        data = self._browser_request(
            command.action, Message("browser_click", {"target": target})
        )
        return ActionResult(command.action, data, f"Clicked {target}")
