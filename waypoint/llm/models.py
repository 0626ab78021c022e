"""
Data models for AI backend interactions.

This module defines the chat message and response models shared by every
connection mode, together with helpers for tool-call names and arguments.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from waypoint.constants import DEFAULT_TOOL_CHANNEL, TOOL_NAME_SEPARATOR
from waypoint.mcp.models import ToolInvocation


class ChatMessage(BaseModel):
    """
    A single message in a conversation.

    Parameters
    ----------
    role : {"user", "assistant", "system"}
        Message role.
    content : str
        Message content.
    timestamp : datetime, optional
        When the message was created. Defaults to now.

    Examples
    --------
    >>> message = ChatMessage(role="user", content="Where is the boss?")
    """

    role: Literal["user", "assistant", "system"] = Field(description="Message role")
    content: str = Field(default="", description="Message content")
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="Creation timestamp",
    )

    def to_dict(self) -> dict[str, Any]:
        """Role and content in chat API format."""
        return {"role": self.role, "content": self.content}


class StopReason(str, Enum):
    """Normalized reasons for a backend ending its reply."""

    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    TOOL_USE = "tool_use"


class AIResponse(BaseModel):
    """
    Normalized reply from an AI backend.

    Parameters
    ----------
    content : str, default=""
        Text content of the reply.
    tool_calls : list[ToolInvocation] | None, optional
        Tool invocations requested by the backend, in order. None when the
        backend requested none.
    stop_reason : StopReason, default=StopReason.END_TURN
        Why the backend stopped.

    Examples
    --------
    >>> response = AIResponse(content="Go north.", stop_reason="end_turn")
    """

    content: str = Field(default="", description="Reply text")
    tool_calls: list[ToolInvocation] | None = Field(
        default=None,
        description="Requested tool invocations",
    )
    stop_reason: StopReason = Field(
        default=StopReason.END_TURN,
        description="Normalized stop reason",
    )


def qualify_tool_name(server_id: str, tool_name: str) -> str:
    """
    Build the name a server's tool is advertised under.

    Examples
    --------
    >>> qualify_tool_name("savegame", "read_save")
    'savegame__read_save'
    """
    return f"{server_id}{TOOL_NAME_SEPARATOR}{tool_name}"


def split_tool_name(name: str) -> tuple[str, str]:
    """
    Split an advertised tool name into server id and tool name.

    Parameters
    ----------
    name : str
        Tool name returned by the backend.

    Returns
    -------
    tuple[str, str]
        ``(server_id, tool_name)``. Names without a server prefix belong
        to the default channel.

    Examples
    --------
    >>> split_tool_name("savegame__read_save")
    ('savegame', 'read_save')
    >>> split_tool_name("lookup")
    ('default', 'lookup')
    """
    server_id, separator, tool_name = name.partition(TOOL_NAME_SEPARATOR)
    if not separator or not server_id or not tool_name:
        return DEFAULT_TOOL_CHANNEL, name
    return server_id, tool_name


def parse_tool_call_arguments(arguments_str: str) -> dict[str, Any]:
    """
    Parse tool call arguments from a JSON string.

    Parameters
    ----------
    arguments_str : str
        JSON string containing tool call arguments.

    Returns
    -------
    dict[str, Any]
        Parsed arguments as a dictionary. Returns empty dict if string is empty,
        or a dict with "raw_arguments" key if parsing fails.

    Examples
    --------
    >>> parse_tool_call_arguments('{"slot": 1}')
    {'slot': 1}
    >>> parse_tool_call_arguments("invalid json")
    {'raw_arguments': 'invalid json'}
    """
    if not arguments_str:
        return {}

    try:
        parsed: Any = json.loads(arguments_str)
    except json.JSONDecodeError:
        return {"raw_arguments": arguments_str}

    if not isinstance(parsed, dict):
        return {"raw_arguments": arguments_str}
    return parsed
