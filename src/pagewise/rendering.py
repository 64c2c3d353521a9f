"""Terminal rendering of assistant replies."""

from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pagewise.assistant import REPLY_ERROR, REPLY_FALLBACK, AssistantReply
from pagewise.core.types import Action, PageMatch, SearchResult, Section, WaitResult

PREVIEW_CHARS = 90


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def search_results_table(results: Sequence[SearchResult], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Score", justify="right", width=7)
    table.add_column("Relevance", style="magenta", width=10)
    table.add_column("Section", style="white")

    if not results:
        table.add_row("-", "-", "-", "No matching sections.")
    for index, result in enumerate(results, start=1):
        section = result.section
        table.add_row(
            str(index),
            f"{result.similarity:.3f}",
            result.relevance_label.value,
            _preview(f"{section.heading}: {section.text}" if section.heading else section.text),
        )
    return table


def plain_results_table(items: Sequence[Any], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold green")
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Where", style="magenta")
    table.add_column("Text", style="white")

    if not items:
        table.add_row("-", "-", "Nothing found.")
    for index, item in enumerate(items, start=1):
        if isinstance(item, PageMatch):
            table.add_row(str(index), item.tag, _preview(item.text))
        elif isinstance(item, Section):
            table.add_row(str(index), f"h{item.level}", _preview(item.heading or item.text))
    return table


def links_table(links: List[Dict[str, Any]]) -> Table:
    table = Table(title=f"Links ({len(links)})", show_header=True, header_style="bold blue")
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Text", style="white")
    table.add_column("URL", style="cyan")
    for index, link in enumerate(links, start=1):
        table.add_row(str(index), _preview(link["text"], 50) or "-", link["href"])
    return table


def forms_table(forms: List[Dict[str, Any]]) -> Table:
    table = Table(title=f"Forms ({len(forms)})", show_header=True, header_style="bold blue")
    table.add_column("Form", style="magenta")
    table.add_column("Field", style="white")
    table.add_column("Type", style="cyan")
    table.add_column("Required", justify="center", width=8)
    for form in forms:
        label = form["id"] or form["action"] or form["selector"]
        if not form["fields"]:
            table.add_row(label, "-", "-", "-")
        for field in form["fields"]:
            table.add_row(
                label,
                field["name"] or field["id"] or field["selector"],
                field["type"],
                "yes" if field["required"] else "",
            )
    return table


def structured_data_panel(data: Dict[str, Any]) -> Panel:
    lines = [
        f"[bold]Title:[/] {data['title'] or '-'}",
        f"[bold]URL:[/] {data['url'] or '-'}",
    ]
    if data["description"]:
        lines.append(f"[bold]Description:[/] {_preview(data['description'], 200)}")
    lines.append(
        f"[bold]Headings:[/] {len(data['headings'])}  [bold]Links:[/] {len(data['links'])}  "
        f"[bold]Forms:[/] {len(data['forms'])}  [bold]Tables:[/] {len(data['tables'])}"
    )
    for heading in data["headings"][:12]:
        indent = "  " * max(heading["level"] - 1, 0)
        lines.append(f"{indent}- {heading['text']}")
    return Panel("\n".join(lines), title="Page", border_style="cyan")


def render_reply(console: Console, reply: AssistantReply) -> None:
    """Print one reply; failures are a single readable line."""
    if reply.kind == REPLY_ERROR:
        console.print(f"[bold red]Error:[/] {reply.message}")
        return
    if reply.kind == REPLY_FALLBACK:
        console.print(f"[yellow]{reply.message}[/]")
        return

    data = reply.data
    action = reply.action
    if action in (Action.SEMANTIC_SEARCH, Action.SEMANTIC_SCROLL):
        console.print(search_results_table(data, reply.message))
        return
    if action is Action.FIND_SECTIONS:
        console.print(plain_results_table(data, reply.message))
        return
    if action is Action.GET_ALL_LINKS:
        console.print(links_table(data))
        return
    if action is Action.EXTRACT_FORM_FIELDS:
        console.print(forms_table(data))
        return
    if action is Action.EXTRACT_STRUCTURED_DATA:
        console.print(structured_data_panel(data))
    elif action is Action.GET_PAGE_CONTENT:
        console.print(Panel(_preview(data["text"], 2000), title=data["title"] or "Page"))
    elif isinstance(data, WaitResult) and not data.found:
        console.print(f"[yellow]{reply.message}[/]")
        return
    console.print(f"[green]{reply.message}[/]")
