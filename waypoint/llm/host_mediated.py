"""
Host-mediated connection mode.

This mode stands in for credential-less access brokered by a host
environment such as an editor's built-in assistant. It is not implemented
yet: initialize always succeeds and every chat request returns a fixed
placeholder reply.
"""

import logging
from typing import Any, Mapping, Sequence

from waypoint.config.schema import BackendConfig
from waypoint.context.models import SampledContext
from waypoint.exceptions import NotConnectedError
from waypoint.llm.base import AIConnectionMode
from waypoint.llm.models import AIResponse, ChatMessage, StopReason
from waypoint.mcp.models import ToolDescriptor

logger = logging.getLogger(__name__)

PLACEHOLDER_RESPONSE: str = (
    "This is a stub response from host-mediated connection mode. "
    "Implement actual integration with the host's model access."
)


class HostMediatedMode(AIConnectionMode):
    """Stub connection mode for host-brokered model access."""

    def __init__(self, config: BackendConfig) -> None:
        super().__init__(config)
        self._connected: bool = False

    async def initialize(self) -> None:
        self._connected = True
        logger.warning(
            "Host-mediated connection mode is not implemented; "
            "chat requests return a placeholder",
        )

    async def send_chat_request(
        self,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
        sampled_context: SampledContext | None = None,
        tools: dict[str, list[ToolDescriptor]] | None = None,
    ) -> AIResponse:
        if not self._connected:
            raise NotConnectedError(
                "Client not initialized. Call initialize() first.",
            )

        logger.debug(f"Host-mediated chat request with {len(messages)} message(s)")
        return AIResponse(
            content=PLACEHOLDER_RESPONSE,
            stop_reason=StopReason.END_TURN,
        )

    def is_connected(self) -> bool:
        return self._connected

    async def disconnect(self) -> None:
        self._connected = False
        logger.info("Host-mediated connection mode disconnected")
