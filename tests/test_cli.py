import argparse
from unittest.mock import patch

import pytest
from rich.console import Console

from pagewise.browser.manager import PlaywrightError
from pagewise.cli.main import build_workspace, main, parse_args, run_interactive


@pytest.fixture
def page_file(tmp_path, university_html):
    path = tmp_path / "university.html"
    path.write_text(university_html, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def quiet_environment(keyword_provider):
    with patch("pagewise.cli.main.setup_logging"), patch(
        "pagewise.cli.main.create_embedding_provider", return_value=keyword_provider
    ) as mock_create, patch(
        "pagewise.page.extraction.trafilatura.extract", return_value=None
    ):
        yield mock_create


def _args(source, *command, browser=False, provider=None):
    return argparse.Namespace(
        source=str(source),
        command=list(command),
        browser=browser,
        provider=provider,
        verbose=False,
    )


def test_parse_args_defaults():
    args = parse_args(["page.html", "semantic", "search", "for", "tuition"])
    assert args.source == "page.html"
    assert args.command == ["semantic", "search", "for", "tuition"]
    assert args.browser is False
    assert args.provider is None
    assert args.verbose is False


def test_parse_args_options():
    args = parse_args(["https://uni.example/", "--browser", "--provider", "local", "-v"])
    assert args.command == []
    assert args.browser and args.verbose
    assert args.provider == "local"


def test_main_runs_one_command(page_file, capsys, quiet_environment):
    main([str(page_file), "semantic", "search", "for", "admission", "requirements"])

    out = capsys.readouterr().out
    assert "sections related to 'admission requirements'" in out
    assert "Very High" in out
    quiet_environment.assert_called_once_with(None)


def test_main_exits_on_command_error(page_file, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([str(page_file), "scroll", "to", "section", "9"])
    assert excinfo.value.code == 1
    assert "Error:" in capsys.readouterr().out


def test_main_exits_when_source_cannot_be_loaded(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path / "missing.html"), "read"])
    assert excinfo.value.code == 1
    assert "Could not read" in capsys.readouterr().out


def test_snapshot_workspace_reports_unfetchable_links(page_file):
    workspace = build_workspace(_args(page_file))
    # Relative links on a local file resolve to file: URLs, which plain HTTP cannot fetch.
    reply = workspace.assistant.handle("click on Apply")
    assert not reply.ok
    assert "Could not click" in reply.message


def test_browser_workspace_opens_file_uri(page_file):
    with patch("pagewise.browser.manager.PlaywrightBrowserManager") as mock_manager_cls:
        workspace = build_workspace(_args(page_file, browser=True))

    manager = mock_manager_cls.return_value
    manager.navigate.assert_called_once_with(page_file.resolve().as_uri())
    assert workspace.transport.is_alive("browser")
    workspace.close()
    manager.close.assert_called_once()


def test_main_exits_when_browser_navigation_fails(page_file, capsys):
    with patch("pagewise.browser.manager.PlaywrightBrowserManager") as mock_manager_cls:
        mock_manager_cls.return_value.navigate.side_effect = PlaywrightError(
            "net::ERR_NAME_NOT_RESOLVED\ncall log"
        )
        with pytest.raises(SystemExit) as excinfo:
            main(["--browser", str(page_file), "read"])

    assert excinfo.value.code == 1
    assert "net::ERR_NAME_NOT_RESOLVED" in capsys.readouterr().out
    mock_manager_cls.return_value.close.assert_called_once()


def test_run_interactive(page_file):
    workspace = build_workspace(_args(page_file))
    console = Console(record=True, width=120, color_system=None)

    with patch.object(
        console, "input", side_effect=["help", "", "list links", "stats", "quit", "read"]
    ) as mock_input:
        run_interactive(console, workspace)

    assert mock_input.call_count == 5
    text = console.export_text()
    assert "I did not recognize a page command" in text
    assert "Links (2)" in text
    assert "texts_embedded" in text


def test_run_interactive_stops_on_eof(page_file):
    workspace = build_workspace(_args(page_file))
    console = Console(record=True, color_system=None)
    with patch.object(console, "input", side_effect=EOFError):
        run_interactive(console, workspace)
