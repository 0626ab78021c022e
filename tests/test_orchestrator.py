"""Tests for the orchestrator."""

from __future__ import annotations

import pytest

from tests.helpers import FakeBackend, make_server
from waypoint.config.schema import BackendConfig, ClientConfiguration, SamplingPolicy
from waypoint.context.models import GuideContext, RawContext, SavefileContext
from waypoint.exceptions import (
    ConfigurationError,
    ConnectionError,
    NotConnectedError,
    RequestError,
    ValidationError,
)
from waypoint.llm import backends
from waypoint.llm.api_key import DirectCredentialMode
from waypoint.llm.host_mediated import HostMediatedMode
from waypoint.llm.models import AIResponse, ChatMessage, StopReason
from waypoint.mcp.models import ConnectionStatus, ToolInvocation
from waypoint.orchestrator import Orchestrator


def _configuration(**overrides) -> ClientConfiguration:
    values = {"ai_model": BackendConfig(provider="openai", api_key="sk-test")}
    values.update(overrides)
    return ClientConfiguration(**values)


@pytest.mark.asyncio
async def test_initialize_connects_backend_and_servers(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(
        _configuration(servers=[make_server("savegame"), make_server("guide")]),
    )

    await orchestrator.initialize()

    assert orchestrator.ai_mode.is_connected() is True
    states = orchestrator.get_server_states()
    assert list(states) == ["savegame", "guide"]
    assert all(state.status == ConnectionStatus.CONNECTED for state in states.values())
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_initialize_stops_at_first_server_failure(fake_mcp, fake_backends) -> None:
    fake_mcp.server("broken-cmd", connect_error=OSError("spawn failed"))
    orchestrator = Orchestrator(
        _configuration(
            servers=[make_server("savegame"), make_server("broken"), make_server("guide")],
        ),
    )

    with pytest.raises(ConnectionError):
        await orchestrator.initialize()

    assert orchestrator.get_server_state("savegame").status == ConnectionStatus.CONNECTED
    assert orchestrator.get_server_state("broken").status == ConnectionStatus.ERROR
    assert orchestrator.get_server_state("guide") is None
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_initialize_twice_skips_registered_servers(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(_configuration(servers=[make_server("savegame")]))

    await orchestrator.initialize()
    await orchestrator.initialize()

    assert len(fake_mcp.clients) == 1
    assert fake_backends[0].closed is True
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_initialize_without_key_fails_before_servers(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(
        ClientConfiguration(servers=[make_server("savegame")]),
    )

    with pytest.raises(ConfigurationError):
        await orchestrator.initialize()

    assert orchestrator.get_server_states() == {}


@pytest.mark.asyncio
async def test_chat_samples_context_and_records_tool_calls(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(
        _configuration(sampling=SamplingPolicy(max_tokens=300)),
    )
    await orchestrator.initialize()
    call = ToolInvocation(server_id="savegame", tool_name="read_save", arguments={"slot": 1})
    fake_backends[0].response = AIResponse(
        content="Checking your save.",
        tool_calls=[call],
        stop_reason=StopReason.TOOL_USE,
    )

    reply = await orchestrator.chat(
        [ChatMessage(role="user", content="Where am I?")],
        RawContext(
            savefile=SavefileContext(data={"health": 80}),
            guide=GuideContext(text="Go left at the fork."),
        ),
    )

    assert reply == "Checking your save."
    assert orchestrator.pending_tool_calls == [call]
    assert fake_mcp.clients == []
    request = fake_backends[0].requests[0]
    assert "## Savefile Data" in request["system"]
    assert "Go left at the fork." in request["system"]
    assert request["tools"] is None
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_chat_without_context_uses_role_prompt_only(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(_configuration())
    await orchestrator.initialize()

    await orchestrator.chat([{"role": "user", "content": "Hi"}])

    assert "Total context tokens" not in fake_backends[0].requests[0]["system"]
    assert orchestrator.pending_tool_calls == []
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_chat_advertises_tools_when_exposed(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(
        _configuration(servers=[make_server("savegame")], expose_tools=True),
    )
    await orchestrator.initialize()

    await orchestrator.chat([ChatMessage(role="user", content="Hi")])

    tools = fake_backends[0].requests[0]["tools"]
    assert list(tools) == ["savegame"]
    assert [tool.name for tool in tools["savegame"]] == ["read_save"]
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_chat_before_initialize_is_not_connected(fake_backends) -> None:
    orchestrator = Orchestrator(_configuration())

    with pytest.raises(NotConnectedError):
        await orchestrator.chat([ChatMessage(role="user", content="Hi")])


@pytest.mark.asyncio
async def test_chat_propagates_backend_errors(monkeypatch) -> None:
    error = RequestError("boom", status_code=500)
    monkeypatch.setattr(backends, "create_backend", lambda config: FakeBackend(error=error))
    orchestrator = Orchestrator(_configuration())
    await orchestrator.initialize()

    with pytest.raises(RequestError):
        await orchestrator.chat([ChatMessage(role="user", content="Hi")])

    assert orchestrator.pending_tool_calls == []
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_failed_chat_clears_previous_tool_calls(fake_backends) -> None:
    orchestrator = Orchestrator(_configuration())
    await orchestrator.initialize()
    backend = fake_backends[0]
    backend.response = AIResponse(
        tool_calls=[ToolInvocation(server_id="savegame", tool_name="read_save")],
        stop_reason=StopReason.TOOL_USE,
    )
    await orchestrator.chat([ChatMessage(role="user", content="Check my save")])
    assert len(orchestrator.pending_tool_calls) == 1

    backend.error = RequestError("upstream failed", status_code=502)
    with pytest.raises(RequestError):
        await orchestrator.chat([ChatMessage(role="user", content="And now?")])

    assert orchestrator.pending_tool_calls == []
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_invoke_tool_forwards_to_manager(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(_configuration(servers=[make_server("savegame")]))
    await orchestrator.initialize()

    result = await orchestrator.invoke_tool(
        ToolInvocation(server_id="savegame", tool_name="read_save", arguments={"slot": 1}),
    )

    assert result.text == 'read_save:{"slot": 1}'
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_update_ai_config_replaces_backend(fake_mcp, fake_backends) -> None:
    orchestrator = Orchestrator(_configuration())
    await orchestrator.initialize()
    first_mode = orchestrator.ai_mode

    updated = await orchestrator.update_ai_config(provider="anthropic", model="claude-test")

    assert updated.provider.value == "anthropic"
    assert updated.api_key == "sk-test"
    assert orchestrator.get_config().ai_model == updated
    assert first_mode.is_connected() is False
    assert fake_backends[0].closed is True
    assert orchestrator.ai_mode is not first_mode
    assert orchestrator.ai_mode.is_connected() is True
    assert len(fake_backends) == 2
    await orchestrator.cleanup()


@pytest.mark.asyncio
async def test_invalid_ai_config_update_changes_nothing(fake_backends) -> None:
    orchestrator = Orchestrator(_configuration())
    await orchestrator.initialize()
    mode = orchestrator.ai_mode

    with pytest.raises(ValidationError):
        await orchestrator.update_ai_config(temperature=9.0)

    assert orchestrator.ai_mode is mode
    assert mode.is_connected() is True
    assert orchestrator.get_config().ai_model.temperature is None
    await orchestrator.cleanup()


def test_update_sampling_config_is_applied_to_sampler() -> None:
    orchestrator = Orchestrator(_configuration())

    policy = orchestrator.update_sampling_config(strategy="summary", max_tokens=900)

    assert policy.max_tokens == 900
    assert orchestrator.sampler.get_config() == policy
    assert orchestrator.get_config().sampling == policy


def test_mode_selector_picks_variant() -> None:
    assert isinstance(Orchestrator(_configuration()).ai_mode, DirectCredentialMode)
    assert isinstance(
        Orchestrator(_configuration(mode="host-mediated")).ai_mode,
        HostMediatedMode,
    )


@pytest.mark.asyncio
async def test_context_manager_cleans_up(fake_mcp, fake_backends) -> None:
    async with Orchestrator(_configuration(servers=[make_server("savegame")])) as orchestrator:
        assert orchestrator.ai_mode.is_connected() is True

    assert orchestrator.get_server_states() == {}
    assert orchestrator.ai_mode.is_connected() is False
    assert fake_mcp.clients[0].exited == 1
    assert fake_backends[0].closed is True


@pytest.mark.asyncio
async def test_context_manager_cleans_up_after_failed_initialize(fake_mcp, fake_backends) -> None:
    fake_mcp.server("broken-cmd", connect_error=OSError("spawn failed"))
    orchestrator = Orchestrator(
        _configuration(servers=[make_server("savegame"), make_server("broken")]),
    )

    with pytest.raises(ConnectionError):
        async with orchestrator:
            pass

    assert orchestrator.get_server_states() == {}
    assert orchestrator.ai_mode.is_connected() is False
