"""
Provider wire formats for the direct-credential connection mode.

This module provides one chat backend per wire format: the OpenAI chat
completions format, used by OpenAI, GitHub Models, and local
OpenAI-compatible servers, and the Anthropic Messages format. Each backend
translates the shared chat contract into its provider's request shape and
normalizes the reply.
"""

import logging
from typing import Any

import httpx
from openai import AsyncOpenAI

from waypoint.config.schema import BackendConfig, Provider
from waypoint.constants import (
    ANTHROPIC_API_VERSION,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_REQUEST_TIMEOUT_SEC,
    DEFAULT_TEMPERATURE,
)
from waypoint.exceptions import ConfigurationError, RequestError
from waypoint.interfaces import ChatBackendProtocol
from waypoint.llm.models import (
    AIResponse,
    ChatMessage,
    StopReason,
    parse_tool_call_arguments,
    qualify_tool_name,
    split_tool_name,
)
from waypoint.mcp.models import ToolDescriptor, ToolInvocation
from waypoint.types import MessageDict, ToolDefinitions

logger = logging.getLogger(__name__)

DEFAULT_MODELS: dict[Provider, str] = {
    Provider.ANTHROPIC: "claude-sonnet-4-5",
    Provider.OPENAI: "gpt-4o",
    Provider.GITHUB_COPILOT: "gpt-4o",
    Provider.LOCAL: "gpt-oss:20b",
}

DEFAULT_BASE_URLS: dict[Provider, str] = {
    Provider.ANTHROPIC: "https://api.anthropic.com/v1",
    Provider.GITHUB_COPILOT: "https://models.inference.ai.azure.com",
    Provider.LOCAL: "http://localhost:11434/v1",
}

OPENAI_FINISH_REASONS: dict[str, StopReason] = {
    "stop": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
    "tool_calls": StopReason.TOOL_USE,
}


def _generation_params(config: BackendConfig) -> tuple[str, int, float]:
    model: str = config.model or DEFAULT_MODELS[config.provider]
    max_tokens: int = config.max_tokens or DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = (
        config.temperature
        if config.temperature is not None
        else DEFAULT_TEMPERATURE
    )
    return model, max_tokens, temperature


class OpenAIChatBackend:
    """
    Backend for OpenAI-compatible chat completion APIs.

    Parameters
    ----------
    config : BackendConfig
        Backend configuration. The provider selects the default model and
        endpoint.
    client : AsyncOpenAI | None, optional
        Pre-built client. Created from the configuration when omitted.

    Examples
    --------
    >>> backend = OpenAIChatBackend(BackendConfig(provider="openai", api_key="sk-..."))
    >>> response = await backend.complete(system, messages)
    >>> await backend.close()
    """

    def __init__(
        self,
        config: BackendConfig,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.config: BackendConfig = config
        self._client: AsyncOpenAI = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url or DEFAULT_BASE_URLS.get(config.provider),
            timeout=DEFAULT_REQUEST_TIMEOUT_SEC,
        )

    def _build_tools(
        self,
        tools: dict[str, list[ToolDescriptor]],
    ) -> ToolDefinitions:
        return [
            {
                "type": "function",
                "function": {
                    "name": qualify_tool_name(server_id, tool.name),
                    "description": tool.description,
                    "parameters": tool.input_schema or {
                        "type": "object",
                        "properties": {},
                    },
                },
            }
            for server_id, catalog in tools.items()
            for tool in catalog
        ]

    async def complete(
        self,
        system: str,
        messages: list[ChatMessage],
        tools: dict[str, list[ToolDescriptor]] | None = None,
    ) -> AIResponse:
        """
        Send one chat turn as a chat completion request.

        Raises
        ------
        RequestError
            If the API call fails.
        """
        model, max_tokens, temperature = _generation_params(self.config)
        api_messages: list[MessageDict] = [{"role": "system", "content": system}]
        api_messages.extend(message.to_dict() for message in messages)

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": api_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if tools:
            kwargs["tools"] = self._build_tools(tools)
            kwargs["tool_choice"] = "auto"

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"Error sending chat completion request: {e}", exc_info=True)
            raise RequestError(
                f"Failed to send chat request: {e}",
                status_code=getattr(e, "status_code", None),
                cause=e,
            ) from e

        choice = response.choices[0]
        message = choice.message

        tool_calls: list[ToolInvocation] = []
        for tc in message.tool_calls or []:
            function = getattr(tc, "function", None)
            if function is None:
                continue
            server_id, tool_name = split_tool_name(function.name)
            tool_calls.append(
                ToolInvocation(
                    server_id=server_id,
                    tool_name=tool_name,
                    arguments=parse_tool_call_arguments(function.arguments),
                ),
            )

        return AIResponse(
            content=message.content or "",
            tool_calls=tool_calls or None,
            stop_reason=OPENAI_FINISH_REASONS.get(
                choice.finish_reason or "",
                StopReason.END_TURN,
            ),
        )

    async def close(self) -> None:
        await self._client.close()


class AnthropicChatBackend:
    """
    Backend for the Anthropic Messages API over HTTP.

    System-role messages in the history are sent with the user role, since
    the preamble is carried in the request's ``system`` field.

    Parameters
    ----------
    config : BackendConfig
        Backend configuration.
    client : httpx.AsyncClient | None, optional
        Pre-built HTTP client. Created from the configuration when omitted.
    """

    def __init__(
        self,
        config: BackendConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config: BackendConfig = config
        self._headers: dict[str, str] = {
            "Content-Type": "application/json",
            "x-api-key": config.api_key or "",
            "anthropic-version": ANTHROPIC_API_VERSION,
        }
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(
            base_url=config.base_url or DEFAULT_BASE_URLS[Provider.ANTHROPIC],
            timeout=DEFAULT_REQUEST_TIMEOUT_SEC,
        )

    def _build_payload(
        self,
        system: str,
        messages: list[ChatMessage],
        tools: dict[str, list[ToolDescriptor]] | None,
    ) -> dict[str, Any]:
        model, max_tokens, temperature = _generation_params(self.config)
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
            "messages": [
                {
                    "role": "user" if message.role == "system" else message.role,
                    "content": message.content,
                }
                for message in messages
            ],
        }

        if tools:
            payload["tools"] = [
                {
                    "name": qualify_tool_name(server_id, tool.name),
                    "description": tool.description,
                    "input_schema": tool.input_schema or {
                        "type": "object",
                        "properties": {},
                    },
                }
                for server_id, catalog in tools.items()
                for tool in catalog
            ]

        return payload

    async def complete(
        self,
        system: str,
        messages: list[ChatMessage],
        tools: dict[str, list[ToolDescriptor]] | None = None,
    ) -> AIResponse:
        """
        Send one chat turn as a Messages API request.

        Raises
        ------
        RequestError
            If the request fails or the API returns an error status.
        """
        payload: dict[str, Any] = self._build_payload(system, messages, tools)

        try:
            response = await self._client.post(
                "/messages",
                json=payload,
                headers=self._headers,
            )
            response.raise_for_status()
            result: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Anthropic API error: {e.response.status_code}")
            raise RequestError(
                f"Failed to send chat request: Anthropic API error "
                f"{e.response.status_code}",
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except Exception as e:
            logger.error(f"Error sending Anthropic chat request: {e}", exc_info=True)
            raise RequestError(
                f"Failed to send chat request: {e}",
                cause=e,
            ) from e

        blocks: list[dict[str, Any]] = result.get("content") or []
        content: str = "\n".join(
            block.get("text", "") for block in blocks if block.get("type") == "text"
        )

        tool_calls: list[ToolInvocation] = []
        for block in blocks:
            if block.get("type") != "tool_use":
                continue
            server_id, tool_name = split_tool_name(block.get("name", ""))
            tool_calls.append(
                ToolInvocation(
                    server_id=server_id,
                    tool_name=tool_name,
                    arguments=block.get("input") or {},
                ),
            )

        stop_reason: str | None = result.get("stop_reason")
        return AIResponse(
            content=content,
            tool_calls=tool_calls or None,
            stop_reason=(
                StopReason(stop_reason)
                if stop_reason in StopReason._value2member_map_
                else StopReason.END_TURN
            ),
        )

    async def close(self) -> None:
        await self._client.aclose()


BACKENDS: dict[Provider, type] = {
    Provider.ANTHROPIC: AnthropicChatBackend,
    Provider.OPENAI: OpenAIChatBackend,
    Provider.GITHUB_COPILOT: OpenAIChatBackend,
    Provider.LOCAL: OpenAIChatBackend,
}


def create_backend(config: BackendConfig) -> ChatBackendProtocol:
    """
    Create the chat backend for a provider.

    Parameters
    ----------
    config : BackendConfig
        Backend configuration.

    Returns
    -------
    ChatBackendProtocol
        Backend speaking the provider's wire format.

    Raises
    ------
    ConfigurationError
        If the provider is not supported.
    """
    backend_class: type | None = BACKENDS.get(config.provider)
    if backend_class is None:
        raise ConfigurationError(
            f"Unsupported provider: {config.provider}",
            config_key="ai_model.provider",
        )

    logger.debug(f"Creating {backend_class.__name__} for {config.provider.value}")
    return backend_class(config)
