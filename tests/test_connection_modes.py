"""Tests for the AI connection modes and the system preamble."""

from __future__ import annotations

import pytest

from tests.helpers import FakeBackend
from waypoint.config.schema import BackendConfig
from waypoint.context.models import (
    SampledContext,
    SampledGuide,
    SampledSavefile,
    SampledScreenshot,
)
from waypoint.exceptions import (
    ConfigurationError,
    ConnectionError,
    NotConnectedError,
    RequestError,
    ValidationError,
)
from waypoint.llm import backends
from waypoint.llm.api_key import DirectCredentialMode
from waypoint.llm.base import SYSTEM_ROLE_PROMPT, build_system_message
from waypoint.llm.factory import create_connection_mode
from waypoint.llm.host_mediated import PLACEHOLDER_RESPONSE, HostMediatedMode
from waypoint.llm.models import AIResponse, ChatMessage, StopReason
from waypoint.mcp.models import ToolDescriptor


def _config(**overrides) -> BackendConfig:
    values = {"provider": "openai", "api_key": "sk-test"}
    values.update(overrides)
    return BackendConfig(**values)


@pytest.mark.asyncio
async def test_initialize_without_api_key_is_configuration_error(fake_backends) -> None:
    mode = DirectCredentialMode(BackendConfig(provider="local"))

    with pytest.raises(ConfigurationError) as exc_info:
        await mode.initialize()

    assert exc_info.value.config_key == "ai_model.api_key"
    assert mode.is_connected() is False
    assert fake_backends == []


@pytest.mark.asyncio
async def test_send_before_initialize_is_not_connected() -> None:
    mode = DirectCredentialMode(_config())

    with pytest.raises(NotConnectedError, match="initialize"):
        await mode.send_chat_request([ChatMessage(role="user", content="Hi")])


@pytest.mark.asyncio
async def test_chat_round_trip_through_backend(fake_backends) -> None:
    mode = DirectCredentialMode(_config())
    await mode.initialize()
    assert mode.is_connected() is True

    tools = {"savegame": [ToolDescriptor(name="read_save")]}
    context = SampledContext(
        savefile=SampledSavefile(data={"health": 80}, tokens=5),
        total_tokens=5,
    )
    response = await mode.send_chat_request(
        [{"role": "user", "content": "Where am I?"}],
        sampled_context=context,
        tools=tools,
    )

    assert response.content == "Go north."
    request = fake_backends[0].requests[0]
    assert request["system"] == build_system_message(context)
    assert request["messages"][0].role == "user"
    assert request["messages"][0].content == "Where am I?"
    assert request["tools"] == tools


@pytest.mark.asyncio
async def test_backend_errors_propagate_unchanged(monkeypatch) -> None:
    error = RequestError("upstream failed", status_code=503)
    monkeypatch.setattr(backends, "create_backend", lambda config: FakeBackend(error=error))
    mode = DirectCredentialMode(_config())
    await mode.initialize()

    with pytest.raises(RequestError) as exc_info:
        await mode.send_chat_request([ChatMessage(role="user", content="Hi")])

    assert exc_info.value is error
    assert mode.is_connected() is True


@pytest.mark.asyncio
async def test_backend_creation_failure_becomes_connection_error(monkeypatch) -> None:
    def _explode(config):
        raise RuntimeError("bad endpoint")

    monkeypatch.setattr(backends, "create_backend", _explode)
    mode = DirectCredentialMode(_config())

    with pytest.raises(ConnectionError) as exc_info:
        await mode.initialize()

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert mode.is_connected() is False


@pytest.mark.asyncio
async def test_reinitialize_replaces_the_backend(fake_backends) -> None:
    mode = DirectCredentialMode(_config())
    await mode.initialize()
    await mode.initialize()

    assert len(fake_backends) == 2
    assert fake_backends[0].closed is True
    assert fake_backends[1].closed is False
    assert mode.is_connected() is True


@pytest.mark.asyncio
async def test_disconnect_closes_backend_and_is_idempotent(fake_backends) -> None:
    mode = DirectCredentialMode(_config())
    await mode.initialize()

    await mode.disconnect()
    await mode.disconnect()

    assert fake_backends[0].closed is True
    assert mode.is_connected() is False
    with pytest.raises(NotConnectedError):
        await mode.send_chat_request([ChatMessage(role="user", content="Hi")])


@pytest.mark.asyncio
async def test_update_config_does_not_reconnect(fake_backends) -> None:
    mode = DirectCredentialMode(_config())
    await mode.initialize()

    updated = mode.update_config(model="gpt-4o-mini", temperature=0.2)

    assert updated.model == "gpt-4o-mini"
    assert updated.api_key == "sk-test"
    assert mode.get_config() == updated
    assert mode.is_connected() is True
    assert len(fake_backends) == 1


def test_update_config_rejects_invalid_values() -> None:
    mode = DirectCredentialMode(_config(temperature=0.5))

    with pytest.raises(ValidationError):
        mode.update_config(temperature=3.5)

    assert mode.get_config().temperature == 0.5


@pytest.mark.asyncio
async def test_host_mediated_mode_returns_placeholder() -> None:
    mode = HostMediatedMode(BackendConfig())

    with pytest.raises(NotConnectedError):
        await mode.send_chat_request([ChatMessage(role="user", content="Hi")])

    await mode.initialize()
    response = await mode.send_chat_request([ChatMessage(role="user", content="Hi")])

    assert mode.is_connected() is True
    assert response == AIResponse(content=PLACEHOLDER_RESPONSE, stop_reason=StopReason.END_TURN)

    await mode.disconnect()
    assert mode.is_connected() is False


def test_factory_builds_each_mode() -> None:
    assert isinstance(create_connection_mode("api-key", _config()), DirectCredentialMode)
    assert isinstance(create_connection_mode("host-mediated", _config()), HostMediatedMode)


def test_factory_rejects_unknown_mode() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        create_connection_mode("carrier-pigeon", _config())

    assert exc_info.value.config_key == "mode"


def test_system_message_without_context_is_role_prompt() -> None:
    assert build_system_message() == SYSTEM_ROLE_PROMPT


def test_system_message_lists_present_sources() -> None:
    context = SampledContext(
        savefile=SampledSavefile(data={"level": 3}, tokens=4),
        screenshot=SampledScreenshot(data="aGVsbG8=", tokens=2),
        guide=SampledGuide(chunks=["Jump twice.", "Then dash."], tokens=6),
        total_tokens=12,
    )

    message = build_system_message(context)

    assert message.startswith(SYSTEM_ROLE_PROMPT)
    assert '## Savefile Data\n\nCurrent game save information:\n\n{\n  "level": 3\n}' in message
    assert "## Screenshot" in message
    assert "## Game Guide\n\nRelevant guide sections:\n\nJump twice.\n\nThen dash." in message
    assert message.endswith("\nTotal context tokens: 12")
    assert message.index("## Savefile Data") < message.index("## Screenshot")
    assert message.index("## Screenshot") < message.index("## Game Guide")


def test_system_message_skips_dropped_screenshot() -> None:
    context = SampledContext(
        screenshot=SampledScreenshot(data="", tokens=0),
        total_tokens=0,
    )

    message = build_system_message(context)

    assert "## Screenshot" not in message
    assert message == SYSTEM_ROLE_PROMPT + "\n\n\nTotal context tokens: 0"
