"""Tests for utterance handling and reply rendering."""

from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from pagewise.assistant import (
    FALLBACK_MESSAGE,
    REPLY_ERROR,
    REPLY_FALLBACK,
    REPLY_RESULT,
    PageAssistant,
)
from pagewise.browser.accessor import PlaywrightDomAccessor
from pagewise.browser.manager import PlaywrightError
from pagewise.core.exceptions import ProviderError
from pagewise.core.types import Action, Command
from pagewise.page.accessor import SnapshotDomAccessor
from pagewise.page.dom import Document
from pagewise.rendering import render_reply
from pagewise.session import PageSession
from pagewise.transport import LocalTransport, Messenger


@pytest.fixture(autouse=True)
def no_trafilatura():
    with patch("pagewise.page.extraction.trafilatura.extract", return_value=None):
        yield


@pytest.fixture
def assistant(keyword_provider, university_html):
    dom = SnapshotDomAccessor(Document.from_html(university_html, url="https://uni.example/"))
    return PageAssistant(dom, PageSession(keyword_provider), Messenger(LocalTransport()))


def _rendered(reply):
    console = Console(record=True, width=120, color_system=None)
    render_reply(console, reply)
    return console.export_text()


def test_semantic_search_reply(assistant):
    reply = assistant.handle("semantic search for admission requirements")

    assert reply.ok
    assert reply.kind == REPLY_RESULT
    assert reply.action is Action.SEMANTIC_SEARCH
    assert reply.data[0].section.heading == "Admission requirements"
    output = _rendered(reply)
    assert "Admission requirements" in output
    assert "Very High" in output


def test_unrecognized_utterance_falls_back(assistant):
    reply = assistant.handle("tell me a joke")
    assert reply.kind == REPLY_FALLBACK
    assert reply.message == FALLBACK_MESSAGE
    assert not reply.ok


def test_action_errors_become_readable_messages(assistant):
    reply = assistant.handle("scroll to section 4")

    assert reply.kind == REPLY_ERROR
    assert reply.message == (
        "Could not scroll to section by number: there is no result 4 (0 available)"
    )
    assert _rendered(reply).strip() == f"Error: {reply.message}"


def test_unreachable_browser_is_reported(assistant):
    reply = assistant.handle("navigate to example.com")
    assert reply.kind == REPLY_ERROR
    assert "context 'browser' is unreachable" in reply.message


def test_other_failures_are_reported(assistant):
    dispatcher = MagicMock()
    dispatcher.dispatch.side_effect = ProviderError("quota exceeded")
    assistant.dispatcher = dispatcher

    reply = assistant.run(Command(Action.SEMANTIC_SEARCH, {"query": "x"}))

    assert reply.kind == REPLY_ERROR
    assert reply.message == "Could not semantic search: quota exceeded"


@pytest.mark.parametrize(
    "utterance, expected",
    [
        ("read this page", "Example University"),
        ("find transcripts", "Admission requirements include transcripts"),
        ("list links", "https://uni.example/apply"),
        ("show the form fields", "email"),
    ],
)
def test_rendering_by_action(assistant, utterance, expected):
    reply = assistant.handle(utterance)
    assert reply.ok, reply.message
    assert expected in _rendered(reply)


def test_scroll_reply_renders_summary(assistant):
    reply = assistant.handle("smart scroll to tuition costs")
    assert reply.ok
    assert "Tuition" in _rendered(reply)


def test_browser_snapshot_failure_becomes_error_reply(keyword_provider):
    manager = MagicMock()
    manager.snapshot.side_effect = PlaywrightError("Execution context was destroyed\ncall log")
    assistant = PageAssistant(
        PlaywrightDomAccessor(manager), PageSession(keyword_provider), Messenger(LocalTransport())
    )

    reply = assistant.run(Command(Action.EXTRACT_STRUCTURED_DATA, {}))

    assert reply.kind == REPLY_ERROR
    assert reply.message == "Could not extract structured data: Execution context was destroyed"
