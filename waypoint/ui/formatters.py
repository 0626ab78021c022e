"""
Formatters for rich display of connection states and tool output.

This module builds rich renderables for the command-line interface.
"""

import json
from typing import Any

from rich.console import Group
from rich.table import Table
from rich.text import Text

from waypoint.mcp.models import ConnectionState, ToolInvocation, ToolResult

# Longest base64 prefix shown for binary content
MAX_DATA_PREVIEW: int = 32


def format_states_table(states: dict[str, ConnectionState]) -> Table:
    """
    Create a table of connection states.

    Parameters
    ----------
    states : dict[str, ConnectionState]
        Connection states keyed by server id.

    Returns
    -------
    Table
        One row per server with status, server identity and catalog sizes.

    Examples
    --------
    >>> table = format_states_table(manager.get_states())
    """
    table = Table(border_style="border", header_style="highlight")
    table.add_column("Server")
    table.add_column("Status")
    table.add_column("Info", style="muted")
    table.add_column("Tools", justify="right")
    table.add_column("Resources", justify="right")

    for server_id, state in states.items():
        status: str = state.status.value
        info: str = ""
        if state.info:
            info = f"{state.info.name} {state.info.version}".strip()
        if state.error:
            info = state.error

        table.add_row(
            server_id,
            Text(status, style=f"status.{status}"),
            Text(info),
            str(len(state.tools)),
            str(len(state.resources)),
        )

    return table


def format_tool_calls(calls: list[ToolInvocation]) -> Table:
    """Create a grid of requested tool calls with their arguments."""
    table = Table.grid(padding=(0, 1))
    table.add_column(style="tool.mcp", no_wrap=True)
    table.add_column(style="code", overflow="fold")

    for call in calls:
        table.add_row(
            f"{call.server_id}/{call.tool_name}",
            json.dumps(call.arguments, ensure_ascii=False),
        )

    return table


def format_tool_result(result: ToolResult) -> Group:
    """
    Render the content blocks of a tool result.

    Text blocks are shown as-is; binary content is shown as a short
    preview with its MIME type.
    """
    blocks: list[Any] = []

    if result.is_error:
        blocks.append(Text("Tool reported an error", style="error"))

    for block in result.content:
        if block.type == "text":
            blocks.append(Text(block.text or "", style="code"))
        elif block.type == "image":
            blocks.append(
                Text(
                    f"<image {block.mime_type or 'unknown'} "
                    f"{(block.data or '')[:MAX_DATA_PREVIEW]}...>",
                    style="muted",
                ),
            )
        else:
            header = Text(f"resource {block.uri}", style="tool.mcp")
            if block.mime_type:
                header.append(f" ({block.mime_type})", style="muted")
            blocks.append(header)
            if block.text:
                blocks.append(Text(block.text, style="code"))

    return Group(*blocks)
