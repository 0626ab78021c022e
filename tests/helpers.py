"""Test doubles for the MCP client and AI backends."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from waypoint.config.schema import ServerDescriptor
from waypoint.llm.models import AIResponse, ChatMessage
from waypoint.mcp.models import ToolDescriptor


@dataclass
class FakeServerBehaviour:
    """How a fake MCP server answers, keyed by its launch command."""

    tools: list[str] = field(default_factory=lambda: ["read_save"])
    resources: list[str] = field(default_factory=lambda: ["game://save/1"])
    connect_error: Exception | None = None
    resources_error: Exception | None = None
    call_error: Exception | None = None
    exit_error: Exception | None = None
    content: list[Any] | None = None
    is_error: bool = False
    call_delay: float = 0.0
    connect_delay: float = 0.0


class _Capabilities:
    def model_dump(self, exclude_none: bool = False) -> dict[str, Any]:
        return {"tools": {"listChanged": False}}


class FakeTransport:
    def __init__(
        self,
        command: str,
        args: list[str],
        env: dict[str, str] | None = None,
        keep_alive: bool | None = None,
        **_kwargs: Any,
    ) -> None:
        self.command = command
        self.args = args
        self.env = env or {}
        self.keep_alive = keep_alive
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeMCP:
    """Registry of fake servers and the clients created against them."""

    def __init__(self) -> None:
        self.behaviours: dict[str, FakeServerBehaviour] = {}
        self.clients: list[FakeClient] = []

    def server(self, command: str, **kwargs: Any) -> FakeServerBehaviour:
        behaviour = FakeServerBehaviour(**kwargs)
        self.behaviours[command] = behaviour
        return behaviour

    def client_class(self) -> type:
        registry = self

        class _Client(FakeClient):
            def __init__(self, transport: FakeTransport, name: str | None = None) -> None:
                super().__init__(
                    transport,
                    registry.behaviours.setdefault(
                        transport.command,
                        FakeServerBehaviour(),
                    ),
                )
                registry.clients.append(self)

        return _Client


class FakeClient:
    def __init__(self, transport: FakeTransport, behaviour: FakeServerBehaviour) -> None:
        self.transport = transport
        self.behaviour = behaviour
        self.entered = 0
        self.exited = 0
        self.calls: list[tuple[str, dict[str, Any], bool]] = []
        self.active_calls = 0
        self.max_active_calls = 0
        self.server_info = SimpleNamespace(name=f"{transport.command}-server", version="1.2.0")
        self.protocol_version = "2025-06-18"
        self.server_capabilities = _Capabilities()

    async def __aenter__(self) -> "FakeClient":
        if self.behaviour.connect_delay:
            await asyncio.sleep(self.behaviour.connect_delay)
        if self.behaviour.connect_error is not None:
            raise self.behaviour.connect_error
        self.entered += 1
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.exited += 1
        if self.behaviour.exit_error is not None:
            raise self.behaviour.exit_error

    async def list_tools(self) -> list[SimpleNamespace]:
        return [
            SimpleNamespace(
                name=name,
                description=f"{name} tool",
                input_schema={"type": "object", "properties": {}},
            )
            for name in self.behaviour.tools
        ]

    async def list_resources(self) -> list[SimpleNamespace]:
        if self.behaviour.resources_error is not None:
            raise self.behaviour.resources_error
        return [
            SimpleNamespace(
                uri=uri,
                name=uri.rsplit("/", 1)[-1],
                description=None,
                mime_type="application/json",
            )
            for uri in self.behaviour.resources
        ]

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any],
        raise_on_error: bool = True,
    ) -> SimpleNamespace:
        self.calls.append((name, arguments, raise_on_error))
        self.active_calls += 1
        self.max_active_calls = max(self.max_active_calls, self.active_calls)
        try:
            if self.behaviour.call_delay:
                await asyncio.sleep(self.behaviour.call_delay)
            if self.behaviour.call_error is not None:
                raise self.behaviour.call_error
        finally:
            self.active_calls -= 1

        content = self.behaviour.content
        if content is None:
            content = [
                SimpleNamespace(type="text", text=f"{name}:{json.dumps(arguments)}"),
            ]
        return SimpleNamespace(content=content, is_error=self.behaviour.is_error)


class FakeBackend:
    """Chat backend recording requests and returning a canned response."""

    def __init__(self, response: AIResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or AIResponse(content="Go north.")
        self.error = error
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    async def complete(
        self,
        system: str,
        messages: list[ChatMessage],
        tools: dict[str, list[ToolDescriptor]] | None = None,
    ) -> AIResponse:
        self.requests.append({"system": system, "messages": messages, "tools": tools})
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


def make_server(server_id: str = "savegame", **kwargs: Any) -> ServerDescriptor:
    kwargs.setdefault("command", f"{server_id}-cmd")
    return ServerDescriptor(id=server_id, name=server_id.title(), **kwargs)
