"""
Connection manager for multiple MCP tool servers.

This module provides a keyed registry of tool connections with lifecycle
operations, aggregate catalog queries, and a state-change notification
channel.
"""

import asyncio
import logging
from typing import Callable

from waypoint.config.schema import ServerDescriptor
from waypoint.exceptions import DuplicateIdError, NotFoundError
from waypoint.mcp.connection import ToolConnection
from waypoint.mcp.models import (
    ConnectionState,
    ResourceDescriptor,
    ToolDescriptor,
    ToolInvocation,
    ToolResult,
)
from waypoint.types import Unsubscribe

logger = logging.getLogger(__name__)

StateListener = Callable[[dict[str, ConnectionState]], None]


class ConnectionManager:
    """
    Manages multiple MCP server connections.

    Connections are kept in registration order. Every operation that changes
    a connection's reachable state notifies the registered listeners with a
    snapshot of all states, even when the operation fails.

    Attributes
    ----------
    _connections : dict[str, ToolConnection]
        Connections keyed by server id.
    _listeners : list[StateListener]
        Registered state-change callbacks.

    Examples
    --------
    >>> manager = ConnectionManager()
    >>> unsubscribe = manager.on_state_change(print)
    >>> await manager.add_server(descriptor)
    >>> tools = manager.get_all_tools()
    >>> await manager.cleanup()
    """

    def __init__(self) -> None:
        self._connections: dict[str, ToolConnection] = {}
        self._listeners: list[StateListener] = []

    @property
    def server_ids(self) -> list[str]:
        """Registered server ids in registration order."""
        return list(self._connections)

    def _get(self, server_id: str) -> ToolConnection:
        connection: ToolConnection | None = self._connections.get(server_id)
        if connection is None:
            raise NotFoundError(server_id)
        return connection

    def _notify(self) -> None:
        states: dict[str, ConnectionState] = self.get_states()
        for listener in list(self._listeners):
            try:
                listener(states)
            except Exception as e:
                logger.error(f"State change listener failed: {e}", exc_info=True)

    async def add_server(self, descriptor: ServerDescriptor) -> None:
        """
        Register a server and connect to it when it is enabled.

        A server whose connect fails stays registered in the ``error`` state.

        Parameters
        ----------
        descriptor : ServerDescriptor
            Launch specification of the server.

        Raises
        ------
        DuplicateIdError
            If a server with the same id is already registered.
        ConnectionError
            If the server is enabled and connecting fails.
        """
        if descriptor.id in self._connections:
            raise DuplicateIdError(descriptor.id)

        self._connections[descriptor.id] = ToolConnection(descriptor)
        logger.debug(f"Registered MCP server '{descriptor.id}'")
        self._notify()

        if descriptor.enabled:
            await self.connect(descriptor.id)
        else:
            logger.debug(f"MCP server '{descriptor.id}' is disabled, not connecting")

    async def remove_server(self, server_id: str) -> None:
        """
        Disconnect and unregister a server.

        Raises
        ------
        NotFoundError
            If the server is not registered.
        """
        connection: ToolConnection = self._get(server_id)
        try:
            await connection.disconnect()
        finally:
            del self._connections[server_id]
            logger.info(f"Removed MCP server '{server_id}'")
            self._notify()

    async def connect(self, server_id: str) -> None:
        """
        Connect a registered server.

        Raises
        ------
        NotFoundError
            If the server is not registered.
        ConnectionError
            If connecting fails.
        """
        connection: ToolConnection = self._get(server_id)
        try:
            await connection.connect()
        finally:
            self._notify()

    async def disconnect(self, server_id: str) -> None:
        """
        Disconnect a registered server.

        Raises
        ------
        NotFoundError
            If the server is not registered.
        """
        connection: ToolConnection = self._get(server_id)
        try:
            await connection.disconnect()
        finally:
            self._notify()

    async def invoke_tool(self, invocation: ToolInvocation) -> ToolResult:
        """
        Forward a tool invocation to its server.

        Parameters
        ----------
        invocation : ToolInvocation
            Target server, tool name and arguments.

        Returns
        -------
        ToolResult
            Normalized tool result.

        Raises
        ------
        NotFoundError
            If the target server is not registered.
        NotConnectedError
            If the target server is not connected.
        """
        connection: ToolConnection = self._get(invocation.server_id)
        logger.debug(
            f"Invoking '{invocation.tool_name}' on '{invocation.server_id}'",
        )
        return await connection.invoke_tool(
            invocation.tool_name,
            invocation.arguments,
        )

    def get_all_tools(self) -> dict[str, list[ToolDescriptor]]:
        """
        Get the tool catalog of every server that advertises tools.

        Returns
        -------
        dict[str, list[ToolDescriptor]]
            Tool catalogs keyed by server id. Servers without tools are
            omitted.
        """
        catalogs: dict[str, list[ToolDescriptor]] = {}
        for server_id, connection in self._connections.items():
            state: ConnectionState = connection.get_state()
            if state.tools:
                catalogs[server_id] = state.tools
        return catalogs

    def get_all_resources(self) -> dict[str, list[ResourceDescriptor]]:
        """
        Get the resource catalog of every server that advertises resources.

        Returns
        -------
        dict[str, list[ResourceDescriptor]]
            Resource catalogs keyed by server id. Servers without resources
            are omitted.
        """
        catalogs: dict[str, list[ResourceDescriptor]] = {}
        for server_id, connection in self._connections.items():
            state: ConnectionState = connection.get_state()
            if state.resources:
                catalogs[server_id] = state.resources
        return catalogs

    def get_states(self) -> dict[str, ConnectionState]:
        """Snapshot of every connection state, keyed by server id."""
        return {
            server_id: connection.get_state()
            for server_id, connection in self._connections.items()
        }

    def get_state(self, server_id: str) -> ConnectionState | None:
        """Snapshot of one connection state, or None if unregistered."""
        connection: ToolConnection | None = self._connections.get(server_id)
        if connection is None:
            return None
        return connection.get_state()

    def get_config(self, server_id: str) -> ServerDescriptor | None:
        """Descriptor of a registered server, or None if unregistered."""
        connection: ToolConnection | None = self._connections.get(server_id)
        if connection is None:
            return None
        return connection.config

    def on_state_change(self, listener: StateListener) -> Unsubscribe:
        """
        Subscribe to connection state changes.

        Parameters
        ----------
        listener : StateListener
            Callback receiving a snapshot of all connection states. A
            listener that raises is logged and does not stop delivery to
            the others.

        Returns
        -------
        Unsubscribe
            Callable that removes the listener. Calling it twice is safe.

        Examples
        --------
        >>> unsubscribe = manager.on_state_change(
        ...     lambda states: print({k: s.status for k, s in states.items()})
        ... )
        >>> unsubscribe()
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def cleanup(self) -> None:
        """
        Disconnect every server concurrently and clear all registrations.

        Examples
        --------
        >>> await manager.cleanup()
        """
        connections: list[tuple[str, ToolConnection]] = list(
            self._connections.items(),
        )
        results = await asyncio.gather(
            *(connection.disconnect() for _, connection in connections),
            return_exceptions=True,
        )

        for (server_id, _), result in zip(connections, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to disconnect '{server_id}': {result}")

        self._connections.clear()
        self._listeners.clear()
        logger.info("Connection manager cleaned up")
