"""
Protocol definitions for pluggable collaborators of the Waypoint client.

This module defines protocols (interfaces) that allow provider-specific
implementations to be swapped, and faked in tests, behind one contract.
"""

from typing import Protocol

from waypoint.llm.models import AIResponse, ChatMessage
from waypoint.mcp.models import ToolDescriptor


class ChatBackendProtocol(Protocol):
    """
    Protocol for provider-specific chat backends.

    A backend owns one live client handle for one provider and translates
    between the provider's wire format and the shared response model.
    """

    async def complete(
        self,
        system: str,
        messages: list[ChatMessage],
        tools: dict[str, list[ToolDescriptor]] | None = None,
    ) -> AIResponse:
        """
        Send one chat turn to the provider.

        Parameters
        ----------
        system : str
            System preamble for the turn.
        messages : list[ChatMessage]
            Conversation history.
        tools : dict[str, list[ToolDescriptor]] | None, optional
            Tool catalogs keyed by server id to advertise to the model.

        Returns
        -------
        AIResponse
            Normalized reply.

        Raises
        ------
        RequestError
            If the provider call fails.
        """
        ...

    async def close(self) -> None:
        """Release the underlying client handle."""
        ...
