"""Pytest configuration and fixtures for plaza-py tests."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from litestar import Litestar
from litestar.testing import TestClient

from plaza_py.plugin import PlazaConfig, PlazaPlugin
from plaza_py.realtime.registry import ConnectionRegistry
from plaza_py.realtime.router import BroadcastRouter


class RecordingTransport:
    """Channel transport that records every send instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[tuple[Any, str, Any]] = []

    async def send(self, channel: Any, event: str, data: Any) -> None:
        self.sent.append((channel, event, data))

    def received(self, channel: Any, event: str | None = None) -> list[Any]:
        """Payloads delivered to ``channel``, optionally filtered by event."""
        return [data for ch, ev, data in self.sent if ch == channel and (event is None or ev == event)]

    def events_for(self, channel: Any) -> list[str]:
        """Event names delivered to ``channel``, in order."""
        return [ev for ch, ev, _ in self.sent if ch == channel]

    def clear(self) -> None:
        self.sent.clear()


class YieldingTransport(RecordingTransport):
    """Recording transport that yields to the event loop before each send lands."""

    async def send(self, channel: Any, event: str, data: Any) -> None:
        await asyncio.sleep(0)
        await super().send(channel, event, data)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


# Registry and router fixtures


@pytest.fixture
def registry() -> ConnectionRegistry:
    """Create a registry with a seeded random source."""
    return ConnectionRegistry(rng=random.Random(1234))


@pytest.fixture
def transport() -> RecordingTransport:
    """Create a recording transport."""
    return RecordingTransport()


@pytest.fixture
def yielding_transport() -> YieldingTransport:
    """Create a recording transport that yields before every send."""
    return YieldingTransport()


@pytest.fixture
def router(transport: RecordingTransport) -> BroadcastRouter:
    """Create a broadcast router over the recording transport."""
    return BroadcastRouter(transport)


# Socket.IO client fixtures


@pytest.fixture
def client_handlers() -> dict[str, Callable[..., Any]]:
    """Handlers registered on the fake Socket.IO client, keyed by event."""
    return {}


@pytest.fixture
def sio_client(client_handlers: dict[str, Callable[..., Any]]) -> MagicMock:
    """Create a fake Socket.IO AsyncClient that captures registered handlers."""
    client = MagicMock()
    client.on.side_effect = lambda event, handler: client_handlers.__setitem__(event, handler)
    client.connect = AsyncMock()
    client.disconnect = AsyncMock()
    client.emit = AsyncMock()
    client.wait = AsyncMock()
    client.get_sid.return_value = "me"
    client.connected = False
    return client


# App and client fixtures


@pytest.fixture
def plugin(registry: ConnectionRegistry) -> PlazaPlugin:
    """Create a plugin sharing the test registry, without static assets."""
    return PlazaPlugin(PlazaConfig(static_dir=None, registry=registry))


@pytest.fixture
def app(plugin: PlazaPlugin) -> Litestar:
    """Create a Litestar app with PlazaPlugin for testing."""
    return Litestar(plugins=[plugin])


@pytest.fixture
def client(app: Litestar) -> TestClient[Litestar]:
    """Create a test client for the app."""
    return TestClient(app=app)
