"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.helpers import FakeBackend, FakeMCP, FakeTransport
from waypoint.llm import backends
from waypoint.mcp import connection


@pytest.fixture
def fake_mcp(monkeypatch: pytest.MonkeyPatch) -> FakeMCP:
    """Replace the FastMCP client and stdio transport with in-memory fakes."""
    registry = FakeMCP()
    monkeypatch.setattr(connection, "Client", registry.client_class())
    monkeypatch.setattr(connection, "StdioTransport", FakeTransport)
    return registry


@pytest.fixture
def fake_backends(monkeypatch: pytest.MonkeyPatch) -> list[FakeBackend]:
    """Make every created chat backend a FakeBackend; returns them in order."""
    created: list[FakeBackend] = []

    def _create(config):
        backend = FakeBackend()
        created.append(backend)
        return backend

    monkeypatch.setattr(backends, "create_backend", _create)
    return created
