"""Tests for the command-line interface and its rich formatters."""

from __future__ import annotations

import click
import pytest
from click.testing import CliRunner
from rich.console import Console

import main as cli
from tests.helpers import make_server
from waypoint.config.schema import ClientConfiguration
from waypoint.mcp.models import (
    ConnectionState,
    ConnectionStatus,
    ContentBlock,
    ServerInfo,
    ToolDescriptor,
    ToolInvocation,
    ToolResult,
)
from waypoint.ui.formatters import (
    format_states_table,
    format_tool_calls,
    format_tool_result,
)
from waypoint.ui.theme import WAYPOINT_THEME


def _render(renderable) -> str:
    console = Console(theme=WAYPOINT_THEME, record=True, width=120)
    console.print(renderable)
    return console.export_text()


@pytest.fixture
def use_config(monkeypatch: pytest.MonkeyPatch):
    def _use(config: ClientConfiguration) -> None:
        monkeypatch.setattr(cli, "load_configuration", lambda config_file=None: config)

    return _use


def test_parse_tool_args_decodes_json_values() -> None:
    assert cli._parse_tool_args(("slot=1", "name=hero", "flags=[1, 2]", "empty=")) == {
        "slot": 1,
        "name": "hero",
        "flags": [1, 2],
        "empty": "",
    }


def test_parse_tool_args_rejects_missing_separator() -> None:
    with pytest.raises(click.BadParameter):
        cli._parse_tool_args(("slot",))


def test_status_without_servers(use_config) -> None:
    use_config(ClientConfiguration())

    result = CliRunner().invoke(cli.main, ["status"])

    assert result.exit_code == 0
    assert "No servers configured" in result.output


def test_status_lists_server_states(use_config, fake_mcp) -> None:
    fake_mcp.server("broken-cmd", connect_error=OSError("spawn failed"))
    use_config(ClientConfiguration(servers=[make_server("savegame"), make_server("broken")]))

    result = CliRunner().invoke(cli.main, ["status"])

    assert result.exit_code == 0
    assert "savegame" in result.output
    assert "connected" in result.output
    assert "spawn failed" in result.output


def test_call_prints_tool_result(use_config, fake_mcp) -> None:
    use_config(ClientConfiguration(servers=[make_server("savegame", enabled=False)]))

    result = CliRunner().invoke(
        cli.main,
        ["call", "savegame", "read_save", "--arg", "slot=1"],
    )

    assert result.exit_code == 0
    assert 'read_save:{"slot": 1}' in result.output
    assert fake_mcp.clients[0].exited == 1


def test_call_unknown_server_is_usage_error(use_config) -> None:
    use_config(ClientConfiguration())

    result = CliRunner().invoke(cli.main, ["call", "nowhere", "read_save"])

    assert result.exit_code == 2
    assert "not configured" in result.output


def test_chat_without_api_key_fails(use_config) -> None:
    use_config(ClientConfiguration())

    result = CliRunner().invoke(cli.main, ["chat", "Where am I?"])

    assert result.exit_code == 1
    assert "API key is required" in result.output


def test_states_table_shows_identity_and_errors() -> None:
    states = {
        "savegame": ConnectionState(
            server_id="savegame",
            status=ConnectionStatus.CONNECTED,
            info=ServerInfo(name="Save Reader", version="1.2.0"),
            tools=[ToolDescriptor(name="read_save")],
        ),
        "guide": ConnectionState(
            server_id="guide",
            status=ConnectionStatus.ERROR,
            error="spawn failed",
        ),
    }

    table = format_states_table(states)
    text = _render(table)

    assert table.row_count == 2
    assert "Save Reader 1.2.0" in text
    assert "spawn failed" in text


def test_tool_calls_grid() -> None:
    text = _render(
        format_tool_calls(
            [ToolInvocation(server_id="savegame", tool_name="read_save", arguments={"slot": 1})],
        ),
    )

    assert "savegame/read_save" in text
    assert '{"slot": 1}' in text


def test_tool_result_rendering() -> None:
    result = ToolResult(
        content=[
            ContentBlock(type="text", text="HP 80"),
            ContentBlock(type="image", data="A" * 100, mime_type="image/png"),
            ContentBlock(
                type="resource",
                uri="game://save/1",
                mime_type="application/json",
                text='{"hp": 80}',
            ),
        ],
        is_error=True,
    )

    text = _render(format_tool_result(result))

    assert "Tool reported an error" in text
    assert "HP 80" in text
    assert "<image image/png " + "A" * 32 + "...>" in text
    assert "resource game://save/1 (application/json)" in text
    assert '{"hp": 80}' in text
