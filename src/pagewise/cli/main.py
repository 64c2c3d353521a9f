"""Command-line entry point for pagewise."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from rich.console import Console

from pagewise import __version__
from pagewise.assistant import FALLBACK_MESSAGE, REPLY_ERROR, PageAssistant
from pagewise.browser.fetch import is_url, load_document
from pagewise.browser.handler import SnapshotBrowserHandler
from pagewise.config import LOG_FILE, LOG_LEVEL
from pagewise.core.exceptions import PagewiseError
from pagewise.logger import setup_logging
from pagewise.page.accessor import DomAccessor, SnapshotDomAccessor
from pagewise.rendering import render_reply
from pagewise.research.embeddings import create_embedding_provider
from pagewise.session import PageSession
from pagewise.transport import LocalTransport, Messenger

logger = logging.getLogger(__name__)

EXIT_WORDS = {"exit", "quit", ":q"}
PROMPT = "[bold cyan]pagewise>[/] "


@dataclass
class Workspace:
    """Everything one CLI run wires together."""

    assistant: PageAssistant
    session: PageSession
    dom: DomAccessor
    transport: LocalTransport
    close: Callable[[], None]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pagewise",
        description=(
            "Semantic sections, relevance search and page actions for a web page.\n"
            "Without COMMAND an interactive prompt is started."
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("source", metavar="SOURCE", help="URL or local HTML file.")
    parser.add_argument(
        "command",
        metavar="COMMAND",
        nargs="*",
        help="Command to run, e.g. 'semantic search for tuition costs'.",
    )
    parser.add_argument(
        "--browser",
        action="store_true",
        help="Open SOURCE in a live Playwright browser instead of fetching it.",
    )
    parser.add_argument(
        "--provider",
        default=None,
        help="Embedding provider override: 'http' or 'local'.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_workspace(args: argparse.Namespace) -> Workspace:
    transport = LocalTransport()
    messenger = Messenger(transport)
    session = PageSession(create_embedding_provider(args.provider), messenger=messenger)

    if args.browser:
        from pagewise.browser.accessor import PlaywrightDomAccessor
        from pagewise.browser.handler import BrowserContextHandler
        from pagewise.browser.manager import PlaywrightBrowserManager, PlaywrightError

        manager = PlaywrightBrowserManager()
        source = args.source
        if not is_url(source):
            source = Path(source).expanduser().resolve().as_uri()
        try:
            manager.navigate(source)
        except PlaywrightError as exc:
            manager.close()
            raise PagewiseError(str(exc).splitlines()[0] if str(exc) else source) from exc
        dom: DomAccessor = PlaywrightDomAccessor(manager)
        BrowserContextHandler(manager).register(transport)
        close = manager.close
    else:
        snapshot = SnapshotDomAccessor(load_document(args.source))
        SnapshotBrowserHandler(snapshot).register(transport)
        dom = snapshot
        close = _noop

    assistant = PageAssistant(dom, session, messenger)
    return Workspace(assistant, session, dom, transport, close)


def _noop() -> None:
    return None


def run_interactive(console: Console, workspace: Workspace) -> None:
    console.print(
        f"[dim]pagewise {__version__} - type a command, 'help' for examples, 'quit' to leave.[/]"
    )
    while True:
        try:
            utterance = console.input(PROMPT).strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            return
        if not utterance:
            continue
        if utterance.lower() in EXIT_WORDS:
            return
        if utterance.lower() == "help":
            console.print(FALLBACK_MESSAGE)
            continue
        if utterance.lower() == "stats":
            console.print(workspace.session.get_usage_stats())
            continue
        render_reply(console, workspace.assistant.handle(utterance))


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else LOG_LEVEL, LOG_FILE)
    console = Console()

    try:
        workspace = build_workspace(args)
    except (PagewiseError, ImportError, ValueError) as exc:
        logger.error("Could not open %s: %s", args.source, exc)
        console.print(f"[bold red]Error:[/] {exc}")
        sys.exit(1)

    try:
        if args.command:
            reply = workspace.assistant.handle(" ".join(args.command))
            render_reply(console, reply)
            if reply.kind == REPLY_ERROR:
                sys.exit(1)
        else:
            run_interactive(console, workspace)
    finally:
        workspace.close()
