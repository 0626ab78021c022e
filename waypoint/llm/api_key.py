"""
Direct-credential connection mode.

This module provides the connection mode that talks to a provider's API
with a pre-obtained API key.
"""

import logging
from typing import Any, Mapping, Sequence

from waypoint.config.schema import BackendConfig
from waypoint.context.models import SampledContext
from waypoint.exceptions import (
    ConfigurationError,
    ConnectionError,
    NotConnectedError,
    WaypointError,
)
from waypoint.interfaces import ChatBackendProtocol
from waypoint.llm import backends
from waypoint.llm.base import AIConnectionMode, build_system_message, coerce_messages
from waypoint.llm.models import AIResponse, ChatMessage
from waypoint.mcp.models import ToolDescriptor

logger = logging.getLogger(__name__)


class DirectCredentialMode(AIConnectionMode):
    """
    Connection mode using an API key for direct provider access.

    Supports the ``anthropic``, ``openai``, ``github-copilot`` and ``local``
    providers through one contract. The provider selects the wire format,
    default model, and default endpoint.

    Parameters
    ----------
    config : BackendConfig
        Backend configuration. ``api_key`` is required at initialize time.

    Examples
    --------
    >>> mode = DirectCredentialMode(
    ...     BackendConfig(provider="anthropic", api_key="sk-ant-..."),
    ... )
    >>> await mode.initialize()
    >>> mode.is_connected()
    True
    """

    def __init__(self, config: BackendConfig) -> None:
        super().__init__(config)
        self._backend: ChatBackendProtocol | None = None

    async def initialize(self) -> None:
        """
        Create the provider backend, replacing any previous one.

        Raises
        ------
        ConfigurationError
            If no API key is configured or the provider is unsupported.
        ConnectionError
            If the provider client cannot be created.
        """
        if not self._config.api_key:
            raise ConfigurationError(
                "API key is required for api-key connection mode",
                config_key="ai_model.api_key",
            )

        await self.disconnect()

        try:
            self._backend = backends.create_backend(self._config)
        except WaypointError:
            raise
        except Exception as e:
            raise ConnectionError(
                f"Failed to initialize {self._config.provider.value} backend: {e}",
                cause=e,
            ) from e

        logger.info(
            f"API key connection mode initialized for {self._config.provider.value}",
        )

    async def send_chat_request(
        self,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
        sampled_context: SampledContext | None = None,
        tools: dict[str, list[ToolDescriptor]] | None = None,
    ) -> AIResponse:
        if self._backend is None:
            raise NotConnectedError(
                "Client not initialized. Call initialize() first.",
            )

        system: str = build_system_message(sampled_context)
        response: AIResponse = await self._backend.complete(
            system,
            coerce_messages(messages),
            tools,
        )
        logger.debug(
            f"Chat response: stop_reason={response.stop_reason.value}, "
            f"{len(response.tool_calls or [])} tool call(s)",
        )
        return response

    def is_connected(self) -> bool:
        return self._backend is not None

    async def disconnect(self) -> None:
        backend, self._backend = self._backend, None
        if backend is None:
            return

        try:
            await backend.close()
        except Exception as e:
            logger.warning(f"Error closing backend client: {e}")
        logger.info("API key connection mode disconnected")
