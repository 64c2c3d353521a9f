"""Tests for the browser context: Playwright manager, accessor and receivers."""

from unittest.mock import MagicMock, patch

import pytest
import requests

import pagewise.browser.manager as manager_module
from pagewise.browser.accessor import PlaywrightDomAccessor
from pagewise.browser.fetch import fetch_document, is_url, load_document
from pagewise.browser.handler import (
    CLICK,
    NAVIGATE,
    BrowserContextHandler,
    SnapshotBrowserHandler,
)
from pagewise.browser.manager import PlaywrightBrowserManager
from pagewise.core.exceptions import ActionFailed, PagewiseError
from pagewise.core.types import Section, SectionType
from pagewise.page.accessor import SnapshotDomAccessor
from pagewise.page.dom import Document
from pagewise.transport import LocalTransport, Message


@pytest.fixture
def playwright_page():
    page = MagicMock()
    page.url = "https://uni.example/"
    page.title.return_value = "Example University"
    page.goto.return_value = MagicMock(status=200)
    with patch.object(manager_module, "sync_playwright") as mock_sync:
        playwright = mock_sync.return_value.start.return_value
        playwright.chromium.launch.return_value.new_context.return_value.new_page.return_value = page
        yield page


class TestPlaywrightBrowserManager:
    def test_navigate_starts_browser_once(self, playwright_page):
        manager = PlaywrightBrowserManager(headless=True, post_load_delay_ms=0)

        first = manager.navigate("https://uni.example/")
        manager.navigate("https://uni.example/apply")

        assert first == {"url": "https://uni.example/", "title": "Example University", "status": 200}
        assert manager_module.sync_playwright.return_value.start.call_count == 1
        playwright_page.goto.assert_called_with(
            "https://uni.example/apply", wait_until="domcontentloaded", timeout=manager._page_timeout_ms
        )

    def test_click_falls_back_to_text(self, playwright_page):
        playwright_page.locator.return_value.first.click.side_effect = manager_module.PlaywrightError(
            "bad selector"
        )
        manager = PlaywrightBrowserManager()

        result = manager.click("Apply now")

        playwright_page.get_by_text.assert_called_once_with("Apply now")
        playwright_page.get_by_text.return_value.first.click.assert_called_once()
        assert result == {"target": "Apply now", "url": "https://uni.example/"}

    def test_snapshot_builds_document(self, playwright_page):
        playwright_page.evaluate.return_value = {
            "url": "https://uni.example/",
            "title": "Example University",
            "root": {
                "tag": "html",
                "children": [{"tag": "body", "rect": [0, 0, 800, 600], "children": ["hello"]}],
            },
        }
        document = PlaywrightBrowserManager().snapshot()
        assert document.has_layout
        assert document.body.inner_text == "hello"

    def test_wait_for_selector_timeout(self, playwright_page):
        playwright_page.wait_for_selector.side_effect = manager_module.TimeoutError("timeout")
        assert PlaywrightBrowserManager().wait_for_selector("#late", 10) is False

    def test_close_stops_playwright(self, playwright_page):
        manager = PlaywrightBrowserManager()
        manager.navigate("https://uni.example/")
        manager.close()
        manager_module.sync_playwright.return_value.start.return_value.stop.assert_called_once()
        assert manager._page is None

    def test_missing_playwright(self):
        with patch.object(manager_module, "sync_playwright", None):
            with pytest.raises(ImportError, match="pagewise\\[browser\\]"):
                PlaywrightBrowserManager().navigate("https://uni.example/")


class TestPlaywrightDomAccessor:
    def test_scripts_run_through_manager(self):
        manager = MagicMock()
        manager.evaluate.return_value = True
        accessor = PlaywrightDomAccessor(manager)

        assert accessor.scroll_into_view("#s1", "auto") is True
        assert manager.evaluate.call_args.args[1] == {"selector": "#s1", "behavior": "auto"}
        assert accessor.highlight("#s1", 500) is True
        assert manager.evaluate.call_args.args[1]["duration"] == 500

    def test_page_errors_become_action_failures(self):
        manager = MagicMock()
        manager.evaluate.side_effect = manager_module.PlaywrightError("Error: bad selector\ncall log")
        with pytest.raises(ActionFailed, match="^Error: bad selector$"):
            PlaywrightDomAccessor(manager).computed_style("p >")

    def test_snapshot_errors_become_action_failures(self):
        manager = MagicMock()
        manager.snapshot.side_effect = manager_module.PlaywrightError(
            "Execution context was destroyed\ncall log"
        )
        with pytest.raises(ActionFailed, match="^Execution context was destroyed$"):
            PlaywrightDomAccessor(manager).document()

    def test_wait_for_element(self):
        manager = MagicMock()
        manager.wait_for_selector.return_value = True
        manager.evaluate.return_value = {
            "tag": "div",
            "attrs": {"id": "late"},
            "rect": {"x": 1, "y": 2, "width": 3, "height": 4},
            "children": ["ready"],
        }
        element = PlaywrightDomAccessor(manager).wait_for_element("#late", 100)
        assert element.id == "late"
        assert element.inner_text == "ready"

        manager.wait_for_selector.return_value = False
        assert PlaywrightDomAccessor(manager).wait_for_element("#late", 100) is None

    def test_apply_section_ids_skips_id_selectors(self):
        manager = MagicMock()
        sections = [
            Section("semantic-section-0", "A", "a", "a", "#own-id", SectionType.HEADING_SECTION),
            Section("semantic-section-1", "B", "b", "b", "html > body > h2", SectionType.HEADING_SECTION),
        ]
        PlaywrightDomAccessor(manager).apply_section_ids(sections)
        assert manager.evaluate.call_args.args[1] == [
            {"selector": "html > body > h2", "id": "semantic-section-1"}
        ]


def test_browser_context_handler_routes_messages():
    manager = MagicMock()
    manager.navigate.return_value = {"url": "https://uni.example/"}
    transport = LocalTransport()
    BrowserContextHandler(manager).register(transport)

    response = transport.send("browser", Message(NAVIGATE, {"url": "https://uni.example/"}))
    assert response.data == {"url": "https://uni.example/"}

    transport.send("browser", Message(CLICK, {"target": "Apply"}))
    manager.click.assert_called_once_with("Apply")

    assert not transport.send("browser", Message("browser_reload")).success


class TestSnapshotBrowserHandler:
    @pytest.fixture
    def accessor(self, university_html):
        return SnapshotDomAccessor(Document.from_html(university_html, url="https://uni.example/"))

    @pytest.fixture
    def fetched(self):
        urls = []

        def fetch(url):
            urls.append(url)
            return Document.from_html(f"<title>Page at {url}</title>", url=url)

        return urls, fetch

    def test_navigate_replaces_document(self, accessor, fetched):
        urls, fetch = fetched
        handler = SnapshotBrowserHandler(accessor, fetch)

        result = handler(Message(NAVIGATE, {"url": "https://uni.example/news"}))

        assert urls == ["https://uni.example/news"]
        assert result["title"] == "Page at https://uni.example/news"
        assert accessor.document().url == "https://uni.example/news"

    def test_click_follows_link_by_text(self, accessor, fetched):
        urls, fetch = fetched
        result = SnapshotBrowserHandler(accessor, fetch)(Message(CLICK, {"target": "apply"}))
        assert urls == ["https://uni.example/apply"]
        assert result["target"] == "apply"

    def test_click_by_selector(self, accessor, fetched):
        urls, fetch = fetched
        SnapshotBrowserHandler(accessor, fetch)(Message(CLICK, {"target": "nav a"}))
        assert urls == ["https://uni.example/"]

    def test_click_inside_nested_link_markup(self, fetched):
        urls, fetch = fetched
        accessor = SnapshotDomAccessor(
            Document.from_html(
                '<body><a href="/deep"><div><span class="label">Deep link</span></div></a></body>',
                url="https://uni.example/",
            )
        )
        SnapshotBrowserHandler(accessor, fetch)(Message(CLICK, {"target": ".label"}))
        assert urls == ["https://uni.example/deep"]

    def test_click_on_non_link_fails(self, accessor, fetched):
        transport = LocalTransport()
        SnapshotBrowserHandler(accessor, fetched[1]).register(transport)

        response = transport.send("browser", Message(CLICK, {"target": "Send"}))
        assert not response.success
        assert "not a link" in response.error

        response = transport.send("browser", Message(CLICK, {"target": "Nowhere"}))
        assert "Element not found" in response.error


class TestFetch:
    @patch("pagewise.browser.fetch.requests.get")
    def test_fetch_document(self, mock_get):
        mock_get.return_value = MagicMock(
            text="<title>Fetched</title><p>x</p>", url="https://uni.example/final", status_code=200
        )
        document = fetch_document("https://uni.example/", timeout=5)
        assert document.title == "Fetched"
        assert document.url == "https://uni.example/final"
        assert "User-Agent" in mock_get.call_args.kwargs["headers"]
        assert mock_get.call_args.kwargs["timeout"] == 5

    @patch("pagewise.browser.fetch.requests.get")
    def test_fetch_errors(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout()
        with pytest.raises(PagewiseError, match="timed out"):
            fetch_document("https://uni.example/", timeout=5)

        mock_get.side_effect = None
        mock_get.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("404")
        with pytest.raises(PagewiseError, match="404"):
            fetch_document("https://uni.example/missing")

    def test_load_document_from_file(self, tmp_path, university_html):
        path = tmp_path / "page.html"
        path.write_text(university_html, encoding="utf-8")
        document = load_document(str(path))
        assert document.title == "Example University"
        assert document.url.startswith("file://")

    def test_load_document_missing_file(self, tmp_path):
        with pytest.raises(PagewiseError):
            load_document(str(tmp_path / "nope.html"))

    def test_is_url(self):
        assert is_url("https://uni.example/")
        assert not is_url("page.html")
