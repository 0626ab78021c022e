"""
Base contract for AI connection modes.

This module defines the abstract connection mode every backend variant
implements, and the system preamble built from sampled context.
"""

import abc
import logging
from typing import Any, Mapping, Sequence

from waypoint.config.schema import BackendConfig
from waypoint.context.models import SampledContext
from waypoint.llm.models import AIResponse, ChatMessage
from waypoint.mcp.models import ToolDescriptor
from waypoint.utils.text import to_json

logger = logging.getLogger(__name__)

SYSTEM_ROLE_PROMPT: str = (
    "You are an AI assistant for game overlay support. "
    "You have access to game-specific tools and context."
)


def build_system_message(context: SampledContext | None = None) -> str:
    """
    Build the system preamble for a chat turn.

    Parameters
    ----------
    context : SampledContext | None, optional
        Sampled context to describe. Each present source adds a section,
        followed by the combined token count.

    Returns
    -------
    str
        Preamble sections separated by blank lines.

    Examples
    --------
    >>> build_system_message()
    'You are an AI assistant for game overlay support. You have access to game-specific tools and context.'
    """
    parts: list[str] = [SYSTEM_ROLE_PROMPT]

    if context is None:
        return "\n\n".join(parts)

    if context.savefile is not None:
        parts.extend([
            "## Savefile Data",
            "Current game save information:",
            to_json(context.savefile.data),
        ])

    if context.screenshot is not None and context.screenshot.data:
        parts.extend([
            "## Screenshot",
            "A screenshot of the current game state is available for analysis.",
        ])

    if context.guide is not None and context.guide.chunks:
        parts.extend([
            "## Game Guide",
            "Relevant guide sections:",
            "\n\n".join(context.guide.chunks),
        ])

    parts.append(f"\nTotal context tokens: {context.total_tokens}")
    return "\n\n".join(parts)


def coerce_messages(
    messages: Sequence[ChatMessage | Mapping[str, Any]],
) -> list[ChatMessage]:
    """Accept chat messages as models or plain ``{"role", "content"}`` dicts."""
    return [
        message if isinstance(message, ChatMessage)
        else ChatMessage.model_validate(message)
        for message in messages
    ]


class AIConnectionMode(abc.ABC):
    """
    Abstract base class for AI backend connection modes.

    A mode reports not connected until :meth:`initialize` succeeds and again
    after :meth:`disconnect`. Updating the configuration never reconnects;
    call :meth:`initialize` again to apply it.

    Parameters
    ----------
    config : BackendConfig
        Backend identity and credentials.

    Examples
    --------
    >>> mode = DirectCredentialMode(BackendConfig(provider="openai", api_key="sk-..."))
    >>> await mode.initialize()
    >>> response = await mode.send_chat_request([ChatMessage(role="user", content="Hi")])
    >>> await mode.disconnect()
    """

    def __init__(self, config: BackendConfig) -> None:
        self._config: BackendConfig = config

    @abc.abstractmethod
    async def initialize(self) -> None:
        """
        Establish the backend handle, replacing any previous one.

        Raises
        ------
        ConfigurationError
            If required credentials are missing.
        """

    @abc.abstractmethod
    async def send_chat_request(
        self,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
        sampled_context: SampledContext | None = None,
        tools: dict[str, list[ToolDescriptor]] | None = None,
    ) -> AIResponse:
        """
        Send one chat turn with the context preamble.

        Parameters
        ----------
        messages : Sequence[ChatMessage | Mapping[str, Any]]
            Conversation history.
        sampled_context : SampledContext | None, optional
            Context described in the system preamble.
        tools : dict[str, list[ToolDescriptor]] | None, optional
            Tool catalogs keyed by server id to advertise to the model.

        Returns
        -------
        AIResponse
            Normalized reply.

        Raises
        ------
        NotConnectedError
            If :meth:`initialize` has not completed.
        RequestError
            If the backend call fails.
        """

    @abc.abstractmethod
    def is_connected(self) -> bool:
        """Whether the mode holds a live backend handle."""

    @abc.abstractmethod
    async def disconnect(self) -> None:
        """Release the backend handle. Always leaves the mode disconnected."""

    def get_config(self) -> BackendConfig:
        """Copy of the current backend configuration."""
        return self._config.model_copy()

    def update_config(self, **changes: Any) -> BackendConfig:
        """
        Replace the configuration with a merged copy.

        Parameters
        ----------
        **changes : Any
            Fields to replace, e.g. ``model="gpt-4o"``.

        Returns
        -------
        BackendConfig
            The new configuration.

        Raises
        ------
        ValidationError
            If the merged configuration is invalid. The previous one is kept.
        """
        merged: dict[str, Any] = self._config.model_dump()
        merged.update(changes)
        self._config = BackendConfig(**merged)
        logger.debug(
            f"Backend config updated: provider={self._config.provider.value}, "
            f"model={self._config.model or '<default>'}",
        )
        return self.get_config()
