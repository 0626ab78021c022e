"""
Connection to a single MCP tool server.

This module provides the stdio connection wrapper that spawns one tool
server process, performs the protocol handshake, captures the server's
identity and catalogs, and forwards tool invocations.
"""

import asyncio
import logging
import os
import warnings
from datetime import datetime
from typing import Any

from fastmcp import Client
from fastmcp.client.transports import StdioTransport

from waypoint.config.schema import ServerDescriptor
from waypoint.constants import CLIENT_NAME
from waypoint.exceptions import (
    CapabilityGapWarning,
    ConnectionError,
    NotConnectedError,
)
from waypoint.mcp.models import (
    ConnectionState,
    ConnectionStatus,
    ContentBlock,
    ResourceDescriptor,
    ServerInfo,
    ToolDescriptor,
    ToolResult,
)

logger = logging.getLogger(__name__)


def _normalize_content(item: Any) -> ContentBlock:
    """
    Convert one protocol content item into a ContentBlock.

    Parameters
    ----------
    item : Any
        Content item from a tool call result.

    Returns
    -------
    ContentBlock
        Normalized content block. Unknown item types are rendered as text.
    """
    item_type: str | None = getattr(item, "type", None)

    if item_type == "text":
        return ContentBlock(type="text", text=item.text)

    if item_type == "image":
        return ContentBlock(
            type="image",
            data=item.data,
            mime_type=getattr(item, "mime_type", None),
        )

    if item_type == "resource":
        resource = item.resource
        return ContentBlock(
            type="resource",
            uri=str(resource.uri),
            mime_type=getattr(resource, "mime_type", None),
            text=getattr(resource, "text", None),
            data=getattr(resource, "blob", None),
        )

    if item_type == "resource_link":
        return ContentBlock(
            type="resource",
            uri=str(item.uri),
            mime_type=getattr(item, "mime_type", None),
        )

    return ContentBlock(type="text", text=str(item))


class ToolConnection:
    """
    Connection to one MCP server over stdio.

    The connection owns its ConnectionState and is the only writer of it.
    Callers read it through :meth:`get_state`, which returns a copy.

    Parameters
    ----------
    descriptor : ServerDescriptor
        Launch specification of the server.

    Attributes
    ----------
    _state : ConnectionState
        Current connection state.
    _client : Client | None
        Internal FastMCP client instance.
    _transport : StdioTransport | None
        Transport of the current connection.
    _call_lock : asyncio.Lock
        Serializes tool invocations on this connection.
    _lifecycle_lock : asyncio.Lock
        Serializes connect and disconnect.

    Examples
    --------
    >>> connection = ToolConnection(descriptor)
    >>> await connection.connect()
    >>> result = await connection.invoke_tool("read_save", {"slot": 1})
    >>> await connection.disconnect()
    """

    def __init__(self, descriptor: ServerDescriptor) -> None:
        self._descriptor: ServerDescriptor = descriptor
        self._state: ConnectionState = ConnectionState(server_id=descriptor.id)
        self._client: Client | None = None
        self._transport: StdioTransport | None = None
        self._call_lock: asyncio.Lock = asyncio.Lock()
        self._lifecycle_lock: asyncio.Lock = asyncio.Lock()

    @property
    def config(self) -> ServerDescriptor:
        """Descriptor this connection was created from."""
        return self._descriptor

    @property
    def status(self) -> ConnectionStatus:
        """Current connection status."""
        return self._state.status

    def get_state(self) -> ConnectionState:
        """
        Get a snapshot of the connection state.

        Returns
        -------
        ConnectionState
            Deep copy of the current state.
        """
        return self._state.model_copy(deep=True)

    def _create_transport(self) -> StdioTransport:
        env: dict[str, str] = os.environ.copy()
        env.update(self._descriptor.env)

        return StdioTransport(
            command=self._descriptor.command,
            args=list(self._descriptor.args),
            env=env,
            keep_alive=False,
        )

    async def connect(self) -> None:
        """
        Connect to the server and capture its identity and catalogs.

        Does nothing when the connection is already connected or connecting.
        A server that cannot list resources is still connected, with an
        empty resource catalog. A :meth:`disconnect` issued while the
        handshake is in flight waits for it and then closes the session.

        Raises
        ------
        ConnectionError
            If spawning the process, the handshake, or tool listing fails.
            The state is left in ``error`` with the failure message.
        """
        if self._state.status in (
            ConnectionStatus.CONNECTED,
            ConnectionStatus.CONNECTING,
        ):
            return

        async with self._lifecycle_lock:
            if self._state.status == ConnectionStatus.CONNECTED:
                return
            await self._open()

    async def _open(self) -> None:
        server_id: str = self._descriptor.id
        self._state.status = ConnectionStatus.CONNECTING
        self._state.error = None

        try:
            transport: StdioTransport = self._create_transport()
            client: Client = Client(transport=transport, name=CLIENT_NAME)
            self._transport, self._client = transport, client

            await client.__aenter__()

            info: ServerInfo = self._read_server_info(client)
            tools: list[ToolDescriptor] = [
                ToolDescriptor(
                    name=tool.name,
                    description=tool.description or "",
                    input_schema=getattr(tool, "input_schema", None) or {},
                )
                for tool in await client.list_tools()
            ]
            resources: list[ResourceDescriptor] = await self._list_resources(client)
        except Exception as e:
            self._state.status = ConnectionStatus.ERROR
            self._state.error = str(e)
            logger.error(f"Failed to connect to MCP server '{server_id}': {e}")
            await self._close()
            raise ConnectionError(
                f"Failed to connect to MCP server '{server_id}': {e}",
                endpoint=self._descriptor.command,
                cause=e,
            ) from e

        self._state.info = info
        self._state.tools = tools
        self._state.resources = resources
        self._state.status = ConnectionStatus.CONNECTED
        self._state.last_connected = datetime.now()
        logger.info(
            f"MCP server '{server_id}' connected with {len(tools)} tools "
            f"and {len(resources)} resources",
        )

    @staticmethod
    def _read_server_info(client: Client) -> ServerInfo:
        implementation = client.server_info
        capabilities = client.server_capabilities

        return ServerInfo(
            name=getattr(implementation, "name", "") or "",
            version=getattr(implementation, "version", "") or "",
            protocol_version=client.protocol_version or "",
            capabilities=(
                capabilities.model_dump(exclude_none=True) if capabilities else {}
            ),
        )

    async def _list_resources(self, client: Client) -> list[ResourceDescriptor]:
        try:
            resources = await client.list_resources()
        except Exception as e:
            message: str = (
                f"MCP server '{self._descriptor.id}' does not support "
                f"resource listing: {e}"
            )
            warnings.warn(message, CapabilityGapWarning, stacklevel=2)
            logger.warning(message)
            return []

        return [
            ResourceDescriptor(
                uri=str(resource.uri),
                name=resource.name,
                description=resource.description,
                mime_type=getattr(resource, "mime_type", None),
            )
            for resource in resources
        ]

    async def _close(self) -> None:
        client, self._client = self._client, None
        transport, self._transport = self._transport, None

        if client is not None:
            try:
                await client.__aexit__(None, None, None)
            except Exception as e:
                logger.warning(
                    f"Error closing client for '{self._descriptor.id}': {e}",
                )

        if transport is not None:
            try:
                await transport.close()
            except Exception as e:
                logger.warning(
                    f"Error closing transport for '{self._descriptor.id}': {e}",
                )

    async def disconnect(self) -> None:
        """
        Disconnect from the server.

        Waits for an in-flight connect to finish first. Close failures are
        logged, never raised. The connection always ends in the
        ``disconnected`` state.

        Examples
        --------
        >>> await connection.disconnect()
        """
        async with self._lifecycle_lock:
            await self._close()
            self._state.status = ConnectionStatus.DISCONNECTED
        logger.debug(f"MCP server '{self._descriptor.id}' disconnected")

    async def invoke_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
    ) -> ToolResult:
        """
        Call a tool on the server.

        Parameters
        ----------
        tool_name : str
            Name of the tool to call.
        arguments : dict[str, Any] | None, optional
            Arguments for the tool.

        Returns
        -------
        ToolResult
            Ordered content blocks and the server's error flag.

        Raises
        ------
        NotConnectedError
            If the connection is not in the ``connected`` state.

        Examples
        --------
        >>> result = await connection.invoke_tool("read_save", {"slot": 1})
        >>> if not result.is_error:
        ...     print(result.text)
        """
        client: Client | None = self._client
        if client is None or self._state.status != ConnectionStatus.CONNECTED:
            raise NotConnectedError(
                f"Not connected to server {self._descriptor.id}",
                endpoint=self._descriptor.command,
            )

        async with self._call_lock:
            result = await client.call_tool(
                tool_name,
                arguments or {},
                raise_on_error=False,
            )

        return ToolResult(
            content=[_normalize_content(item) for item in result.content],
            is_error=bool(result.is_error),
        )
