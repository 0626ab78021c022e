"""
Main entry point for the Waypoint client.

This module provides the command-line interface for checking tool server
connections, running a chat turn with game context, and invoking tools.
"""

import asyncio
import base64
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv
from rich.markup import escape

from waypoint.config.loader import load_configuration
from waypoint.config.schema import ClientConfiguration
from waypoint.constants import DEFAULT_ENCODING
from waypoint.context.models import (
    GuideContext,
    RawContext,
    SavefileContext,
    ScreenshotContext,
)
from waypoint.exceptions import WaypointError
from waypoint.llm.models import ChatMessage
from waypoint.mcp.models import ToolInvocation
from waypoint.orchestrator import Orchestrator
from waypoint.ui.console import get_console
from waypoint.ui.formatters import (
    format_states_table,
    format_tool_calls,
    format_tool_result,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

console = get_console()


def _build_raw_context(
    savefile: Path | None,
    guide: Path | None,
    screenshot: Path | None,
) -> RawContext | None:
    """
    Read context files into a RawContext.

    Returns
    -------
    RawContext | None
        Context with one source per given file, or None if no file is given.
    """
    if not (savefile or guide or screenshot):
        return None

    raw = RawContext()
    if savefile:
        raw.savefile = SavefileContext(
            data=json.loads(savefile.read_text(encoding=DEFAULT_ENCODING)),
            size_bytes=savefile.stat().st_size,
        )
    if guide:
        raw.guide = GuideContext(
            text=guide.read_text(encoding=DEFAULT_ENCODING),
            size_bytes=guide.stat().st_size,
        )
    if screenshot:
        image: bytes = screenshot.read_bytes()
        raw.screenshot = ScreenshotContext(
            data=base64.b64encode(image).decode("ascii"),
            size_bytes=len(image),
        )
    return raw


def _parse_tool_args(pairs: tuple[str, ...]) -> dict[str, Any]:
    """
    Parse ``key=value`` pairs into tool arguments.

    Values are decoded as JSON when possible and kept as strings otherwise.

    Examples
    --------
    >>> _parse_tool_args(("slot=1", "name=hero"))
    {'slot': 1, 'name': 'hero'}
    """
    arguments: dict[str, Any] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'")
        try:
            arguments[key] = json.loads(value)
        except json.JSONDecodeError:
            arguments[key] = value
    return arguments


async def _run_status(config: ClientConfiguration) -> None:
    orchestrator = Orchestrator(config)
    try:
        for server in config.servers:
            try:
                await orchestrator.add_server(server)
            except WaypointError as e:
                logger.debug(f"Server '{server.id}' failed to connect: {e}")
        console.print(format_states_table(orchestrator.get_server_states()))
    finally:
        await orchestrator.cleanup()


async def _run_chat(
    config: ClientConfiguration,
    prompt: str,
    raw_context: RawContext | None,
) -> None:
    async with Orchestrator(config) as orchestrator:
        reply: str = await orchestrator.chat(
            [ChatMessage(role="user", content=prompt)],
            raw_context,
        )
        console.print(reply, style="assistant", markup=False)

        if orchestrator.pending_tool_calls:
            console.print("\n[tool]Requested tool calls[/tool]")
            console.print(format_tool_calls(orchestrator.pending_tool_calls))


async def _run_call(
    config: ClientConfiguration,
    server_id: str,
    tool_name: str,
    arguments: dict[str, Any],
) -> None:
    servers = [server for server in config.servers if server.id == server_id]
    if not servers:
        raise click.BadParameter(f"server '{server_id}' is not configured")

    orchestrator = Orchestrator(config)
    try:
        await orchestrator.add_server(servers[0].model_copy(update={"enabled": True}))
        result = await orchestrator.invoke_tool(
            ToolInvocation(
                server_id=server_id,
                tool_name=tool_name,
                arguments=arguments,
            ),
        )
        console.print(format_tool_result(result))
    finally:
        await orchestrator.cleanup()


@click.group()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file applied over the user and project files",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_file: Path | None, debug: bool) -> None:
    """
    Waypoint - game context client for AI assistants.
    """
    load_dotenv()

    try:
        config: ClientConfiguration = load_configuration(config_file=config_file)
    except WaypointError as e:
        console.print(f"[error]Configuration Error: {escape(str(e))}[/error]")
        sys.exit(1)

    if debug or config.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.obj = config


@main.command()
@click.pass_obj
def status(config: ClientConfiguration) -> None:
    """Connect configured servers and show their states."""
    if not config.servers:
        console.print("[muted]No servers configured[/muted]")
        return
    asyncio.run(_run_status(config))


@main.command()
@click.argument("prompt")
@click.option(
    "--savefile",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON save file to include as context",
)
@click.option(
    "--guide",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Guide text file to include as context",
)
@click.option(
    "--screenshot",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Screenshot image to include as context",
)
@click.pass_obj
def chat(
    config: ClientConfiguration,
    prompt: str,
    savefile: Path | None,
    guide: Path | None,
    screenshot: Path | None,
) -> None:
    """Send PROMPT with optional game context and print the reply."""
    try:
        raw_context = _build_raw_context(savefile, guide, screenshot)
        asyncio.run(_run_chat(config, prompt, raw_context))
    except (WaypointError, json.JSONDecodeError) as e:
        console.print(f"[error]{escape(str(e))}[/error]")
        sys.exit(1)


@main.command()
@click.argument("server_id")
@click.argument("tool_name")
@click.option(
    "--arg",
    "-a",
    "args",
    multiple=True,
    help="Tool argument as key=value; repeatable",
)
@click.pass_obj
def call(
    config: ClientConfiguration,
    server_id: str,
    tool_name: str,
    args: tuple[str, ...],
) -> None:
    """Invoke TOOL_NAME on SERVER_ID and print the result."""
    arguments: dict[str, Any] = _parse_tool_args(args)
    try:
        asyncio.run(_run_call(config, server_id, tool_name, arguments))
    except WaypointError as e:
        console.print(f"[error]{escape(str(e))}[/error]")
        sys.exit(1)
    except click.ClickException:
        raise
    except Exception as e:
        logger.exception(f"Tool call failed: {e}")
        console.print(f"[error]Tool call failed: {escape(str(e))}[/error]")
        sys.exit(1)


if __name__ == "__main__":
    main()
