"""
Orchestrator composing tool connections, context sampling and the AI backend.

This module provides the single entry point used by the host application:
it brings up the configured backend and tool servers, samples context for
each chat turn, and exposes the connection manager's operations.
"""

import logging
from typing import Any, Mapping, Sequence

from waypoint.config.schema import (
    BackendConfig,
    ClientConfiguration,
    SamplingPolicy,
    ServerDescriptor,
)
from waypoint.context.models import RawContext, SampledContext
from waypoint.context.sampler import ContextSampler
from waypoint.llm import factory
from waypoint.llm.base import AIConnectionMode
from waypoint.llm.models import AIResponse, ChatMessage
from waypoint.mcp.manager import ConnectionManager, StateListener
from waypoint.mcp.models import (
    ConnectionState,
    ResourceDescriptor,
    ToolDescriptor,
    ToolInvocation,
    ToolResult,
)
from waypoint.types import Unsubscribe

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Facade over the connection manager, context sampler and AI backend.

    Tool calls requested by the backend are recorded in
    ``pending_tool_calls`` and never executed automatically; forwarding them
    with :meth:`invoke_tool` is up to the caller.

    Parameters
    ----------
    config : ClientConfiguration | None, optional
        Client configuration. Defaults to an empty configuration.

    Attributes
    ----------
    config : ClientConfiguration
        Current configuration.
    connection_manager : ConnectionManager
        Manager of the tool server connections.
    sampler : ContextSampler
        Context sampler.
    pending_tool_calls : list[ToolInvocation]
        Tool calls requested by the backend in the last chat turn. Emptied
        when a turn starts, so a failed turn leaves none behind.

    Examples
    --------
    >>> async with Orchestrator(config) as orchestrator:
    ...     reply = await orchestrator.chat(
    ...         [ChatMessage(role="user", content="How do I beat this boss?")],
    ...         RawContext(guide=GuideContext(text=guide_text)),
    ...     )
    ...     for call in orchestrator.pending_tool_calls:
    ...         result = await orchestrator.invoke_tool(call)
    """

    def __init__(self, config: ClientConfiguration | None = None) -> None:
        self.config: ClientConfiguration = config or ClientConfiguration()
        self.connection_manager: ConnectionManager = ConnectionManager()
        self.sampler: ContextSampler = ContextSampler(self.config.sampling)
        self.pending_tool_calls: list[ToolInvocation] = []
        self._ai_mode: AIConnectionMode = factory.create_connection_mode(
            self.config.mode,
            self.config.ai_model,
        )

    @property
    def ai_mode(self) -> AIConnectionMode:
        """Current AI connection mode."""
        return self._ai_mode

    async def initialize(self) -> None:
        """
        Initialize the backend, then register every configured server.

        Servers are added one at a time and the first failure is raised.
        Servers registered before the failure stay registered.

        Raises
        ------
        ConfigurationError
            If the backend credentials are missing.
        ConnectionError
            If an enabled server fails to connect.
        """
        await self._ai_mode.initialize()

        for server in self.config.servers:
            if server.id in self.connection_manager.server_ids:
                logger.debug(f"MCP server '{server.id}' already registered")
                continue
            await self.connection_manager.add_server(server)

        logger.info(
            f"Orchestrator initialized with {len(self.config.servers)} server(s)",
        )

    async def chat(
        self,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
        raw_context: RawContext | None = None,
    ) -> str:
        """
        Run one chat turn.

        Parameters
        ----------
        messages : Sequence[ChatMessage | Mapping[str, Any]]
            Conversation history.
        raw_context : RawContext | None, optional
            Context to sample into the system preamble.

        Returns
        -------
        str
            Text content of the reply.

        Raises
        ------
        NotConnectedError
            If the backend is not initialized.
        RequestError
            If the backend call fails.
        """
        sampled: SampledContext | None = None
        if raw_context is not None:
            sampled = self.sampler.sample(raw_context)

        tools: dict[str, list[ToolDescriptor]] | None = None
        if self.config.expose_tools:
            tools = self.connection_manager.get_all_tools() or None

        self.pending_tool_calls = []
        response: AIResponse = await self._ai_mode.send_chat_request(
            messages,
            sampled,
            tools,
        )

        self.pending_tool_calls = list(response.tool_calls or [])
        for call in self.pending_tool_calls:
            logger.info(
                f"Backend requested tool '{call.tool_name}' on '{call.server_id}' "
                f"with {call.arguments}",
            )

        return response.content

    async def update_ai_config(self, **changes: Any) -> BackendConfig:
        """
        Replace the backend with one built from a merged configuration.

        The current backend is disconnected before the replacement is
        created and initialized.

        Parameters
        ----------
        **changes : Any
            Backend fields to replace, e.g. ``provider="anthropic"``.

        Returns
        -------
        BackendConfig
            The new backend configuration.

        Raises
        ------
        ValidationError
            If the merged configuration is invalid. Nothing is changed.
        ConfigurationError
            If the new backend cannot be initialized.
        """
        merged: dict[str, Any] = self.config.ai_model.model_dump()
        merged.update(changes)
        ai_model = BackendConfig(**merged)

        await self._ai_mode.disconnect()
        self.config = self.config.model_copy(update={"ai_model": ai_model})
        self._ai_mode = factory.create_connection_mode(self.config.mode, ai_model)
        await self._ai_mode.initialize()

        logger.info(f"AI backend switched to {ai_model.provider.value}")
        return ai_model

    def update_sampling_config(self, **changes: Any) -> SamplingPolicy:
        """
        Merge changes into the sampling policy.

        Raises
        ------
        ValidationError
            If the merged policy is invalid.
        """
        policy: SamplingPolicy = self.sampler.update_config(**changes)
        self.config = self.config.model_copy(update={"sampling": policy})
        return policy

    async def invoke_tool(self, invocation: ToolInvocation) -> ToolResult:
        return await self.connection_manager.invoke_tool(invocation)

    async def add_server(self, descriptor: ServerDescriptor) -> None:
        await self.connection_manager.add_server(descriptor)

    async def remove_server(self, server_id: str) -> None:
        await self.connection_manager.remove_server(server_id)

    def get_all_tools(self) -> dict[str, list[ToolDescriptor]]:
        return self.connection_manager.get_all_tools()

    def get_all_resources(self) -> dict[str, list[ResourceDescriptor]]:
        return self.connection_manager.get_all_resources()

    def get_server_states(self) -> dict[str, ConnectionState]:
        return self.connection_manager.get_states()

    def get_server_state(self, server_id: str) -> ConnectionState | None:
        return self.connection_manager.get_state(server_id)

    def on_server_state_change(self, listener: StateListener) -> Unsubscribe:
        return self.connection_manager.on_state_change(listener)

    def get_config(self) -> ClientConfiguration:
        """Copy of the current configuration."""
        return self.config.model_copy(deep=True)

    async def cleanup(self) -> None:
        """Disconnect every server and the backend."""
        await self.connection_manager.cleanup()
        await self._ai_mode.disconnect()
        logger.debug("Orchestrator resources cleaned up")

    async def __aenter__(self) -> "Orchestrator":
        try:
            await self.initialize()
        except BaseException:
            await self.cleanup()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.cleanup()
