"""
Data models for MCP tool server connections.

This module defines models for connection status, server identity, tool and
resource catalogs, and tool invocation requests and results.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ConnectionStatus(str, Enum):
    """
    Status of an MCP server connection.

    Attributes
    ----------
    DISCONNECTED : str
        Server is not connected.
    CONNECTING : str
        Connection is in progress.
    CONNECTED : str
        Server is connected and ready.
    ERROR : str
        The last connection attempt failed.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ServerInfo(BaseModel):
    """
    Identity and capabilities advertised by a server during the handshake.

    Parameters
    ----------
    name : str
        Server implementation name.
    version : str
        Server implementation version.
    protocol_version : str
        Negotiated MCP protocol version.
    capabilities : dict[str, Any], default={}
        Advertised capabilities (``tools``, ``resources``, ``prompts``...).
    """

    name: str = Field(description="Server name")
    version: str = Field(default="", description="Server version")
    protocol_version: str = Field(default="", description="Protocol version")
    capabilities: dict[str, Any] = Field(
        default_factory=dict,
        description="Advertised capabilities",
    )


class ToolDescriptor(BaseModel):
    """
    One invocable capability on a server.

    Parameters
    ----------
    name : str
        Name of the tool.
    description : str, default=""
        Description of what the tool does.
    input_schema : dict[str, Any], default={}
        JSON schema for tool input parameters.

    Examples
    --------
    >>> tool = ToolDescriptor(name="read_save", description="Read the save")
    """

    name: str = Field(description="Tool name")
    description: str = Field(default="", description="Tool description")
    input_schema: dict[str, Any] = Field(
        default_factory=dict,
        description="Input parameter schema",
    )


class ResourceDescriptor(BaseModel):
    """
    One addressable resource on a server.

    Parameters
    ----------
    uri : str
        Resource URI.
    name : str
        Resource name.
    description : str | None, optional
        Resource description.
    mime_type : str | None, optional
        MIME type of the resource content.
    """

    uri: str = Field(description="Resource URI")
    name: str = Field(description="Resource name")
    description: str | None = Field(default=None, description="Description")
    mime_type: str | None = Field(default=None, description="MIME type")


class ConnectionState(BaseModel):
    """
    Observable status of one tool connection.

    Instances handed to callers are copies; mutating them never affects the
    connection they were taken from.

    Parameters
    ----------
    server_id : str
        Id of the server this state belongs to.
    status : ConnectionStatus, default=ConnectionStatus.DISCONNECTED
        Current connection status.
    info : ServerInfo | None, optional
        Identity captured at the last successful connect.
    tools : list[ToolDescriptor], default=[]
        Tool catalog captured at the last successful connect.
    resources : list[ResourceDescriptor], default=[]
        Resource catalog captured at the last successful connect.
    error : str | None, optional
        Message of the last connection failure.
    last_connected : datetime | None, optional
        When the last successful connect completed.
    """

    server_id: str = Field(description="Server id")
    status: ConnectionStatus = Field(
        default=ConnectionStatus.DISCONNECTED,
        description="Connection status",
    )
    info: ServerInfo | None = Field(default=None, description="Server info")
    tools: list[ToolDescriptor] = Field(
        default_factory=list,
        description="Tool catalog",
    )
    resources: list[ResourceDescriptor] = Field(
        default_factory=list,
        description="Resource catalog",
    )
    error: str | None = Field(default=None, description="Last error message")
    last_connected: datetime | None = Field(
        default=None,
        description="Timestamp of the last successful connect",
    )


class ToolInvocation(BaseModel):
    """
    Request to invoke a tool on a server.

    Parameters
    ----------
    server_id : str
        Id of the target server.
    tool_name : str
        Name of the tool to invoke.
    arguments : dict[str, Any], default={}
        Tool arguments.

    Examples
    --------
    >>> invocation = ToolInvocation(
    ...     server_id="savegame",
    ...     tool_name="read_save",
    ...     arguments={"slot": 1},
    ... )
    """

    server_id: str = Field(description="Target server id")
    tool_name: str = Field(description="Tool name")
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description="Tool arguments",
    )


ContentType = Literal["text", "image", "resource"]


class ContentBlock(BaseModel):
    """
    One normalized block of tool output.

    Parameters
    ----------
    type : {"text", "image", "resource"}
        Block type.
    text : str | None, optional
        Text content for text blocks and textual resources.
    data : str | None, optional
        Base64 payload for images and binary resources.
    mime_type : str | None, optional
        MIME type of ``data`` or of the resource.
    uri : str | None, optional
        URI of a resource block.
    """

    type: ContentType = Field(description="Block type")
    text: str | None = Field(default=None, description="Text content")
    data: str | None = Field(default=None, description="Base64 data")
    mime_type: str | None = Field(default=None, description="MIME type")
    uri: str | None = Field(default=None, description="Resource URI")


class ToolResult(BaseModel):
    """
    Normalized result of a tool invocation.

    Parameters
    ----------
    content : list[ContentBlock], default=[]
        Ordered content blocks.
    is_error : bool, default=False
        Whether the server flagged the call as failed.
    """

    content: list[ContentBlock] = Field(
        default_factory=list,
        description="Ordered content blocks",
    )
    is_error: bool = Field(default=False, description="Error flag")

    @property
    def text(self) -> str:
        """
        Concatenate the text of all text blocks.

        Returns
        -------
        str
            Text blocks joined by newlines.
        """
        return "\n".join(
            block.text for block in self.content
            if block.type == "text" and block.text
        )
