"""Tests for the Socket.IO session handler."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from plaza_py.realtime.handler import SessionSocketHandler, SocketIOTransport, create_session_handler
from plaza_py.realtime.router import BroadcastRouter

if TYPE_CHECKING:
    from conftest import RecordingTransport, YieldingTransport

    from plaza_py.realtime.registry import ConnectionRegistry


@pytest.fixture
def handler(registry: ConnectionRegistry, router: BroadcastRouter) -> SessionSocketHandler:
    """Create a handler over the recording transport."""
    return SessionSocketHandler(registry, router)


class TestSocketIOTransport:
    """Tests for the Socket.IO transport adapter."""

    async def test_send_targets_single_sid(self) -> None:
        """Test that sends are addressed to one client."""
        sio = MagicMock()
        sio.emit = AsyncMock()

        await SocketIOTransport(sio).send("sid-1", "playerMoved", {"id": "x"})

        sio.emit.assert_awaited_once_with("playerMoved", {"id": "x"}, to="sid-1")


class TestRegistration:
    """Tests for attaching the handler to a server."""

    def test_register_binds_lifecycle_and_movement(self, handler: SessionSocketHandler) -> None:
        """Test that connect, disconnect and playerMovement are handled."""
        sio = MagicMock()

        handler.register(sio)

        events = {call.args[0] for call in sio.on.call_args_list}
        assert events == {"connect", "disconnect", "playerMovement"}

    def test_create_session_handler(self, registry: ConnectionRegistry) -> None:
        """Test the factory wires a router and registers on the server."""
        sio = MagicMock()

        handler = create_session_handler(sio, registry)

        assert isinstance(handler, SessionSocketHandler)
        assert sio.on.call_count == 3


class TestSessionScenario:
    """End-to-end protocol scenario over the recording transport."""

    async def test_two_participants(
        self,
        handler: SessionSocketHandler,
        registry: ConnectionRegistry,
        transport: RecordingTransport,
    ) -> None:
        """Test join, move and leave between two participants."""
        await handler.on_connect("A", {})
        assert transport.events_for("A") == ["currentPlayers"]
        assert set(transport.received("A", "currentPlayers")[0]) == {"A"}

        await handler.on_connect("B", {})
        assert [p["id"] for p in transport.received("A", "newPlayer")] == ["B"]
        assert set(transport.received("B", "currentPlayers")[0]) == {"A", "B"}
        assert transport.received("B", "newPlayer") == []

        transport.clear()
        await handler.on_player_movement("B", {"x": 1, "y": 0, "z": 2, "rotationY": 0.5})
        assert transport.received("A") == [{"id": "B", "x": 1.0, "y": 0.0, "z": 2.0, "rotationY": 0.5}]
        assert transport.received("B") == []

        transport.clear()
        await handler.on_disconnect("B")
        assert transport.received("A") == ["B"]
        assert transport.events_for("A") == ["playerDisconnected"]
        assert set((await registry.snapshot()).keys()) == {"A"}

    async def test_sid_becomes_session_id(self, handler: SessionSocketHandler) -> None:
        """Test that clients can find themselves in the snapshot."""
        await handler.on_connect("sid-9", {}, None)

        assert handler.session_for("sid-9") == "sid-9"


class TestEdgeCases:
    """Tests for races and malformed input."""

    async def test_double_disconnect_broadcasts_once(
        self,
        handler: SessionSocketHandler,
        transport: RecordingTransport,
    ) -> None:
        """Test that repeated disconnect delivery is a no-op."""
        await handler.on_connect("A", {})
        await handler.on_connect("B", {})
        transport.clear()

        await handler.on_disconnect("B", "client disconnect")
        await handler.on_disconnect("B", "client disconnect")

        assert transport.received("A", "playerDisconnected") == ["B"]

    async def test_disconnect_already_removed_from_registry(
        self,
        handler: SessionSocketHandler,
        registry: ConnectionRegistry,
        transport: RecordingTransport,
    ) -> None:
        """Test that no left message is sent if the registry already dropped the session."""
        await handler.on_connect("A", {})
        await handler.on_connect("B", {})
        await registry.disconnect("B")
        transport.clear()

        await handler.on_disconnect("B")

        assert transport.sent == []

    async def test_movement_after_disconnect_is_dropped(
        self,
        handler: SessionSocketHandler,
        registry: ConnectionRegistry,
        transport: RecordingTransport,
    ) -> None:
        """Test that an in-flight update racing a disconnect is ignored."""
        await handler.on_connect("A", {})
        await handler.on_connect("B", {})
        await handler.on_disconnect("B")
        transport.clear()

        await handler.on_player_movement("B", {"x": 1, "y": 0, "z": 2, "rotationY": 0.5})

        assert transport.sent == []
        assert set((await registry.snapshot()).keys()) == {"A"}

    async def test_movement_racing_registry_removal(
        self,
        handler: SessionSocketHandler,
        registry: ConnectionRegistry,
        transport: RecordingTransport,
    ) -> None:
        """Test an update for a session the registry no longer holds."""
        await handler.on_connect("A", {})
        await handler.on_connect("B", {})
        await registry.disconnect("B")
        transport.clear()

        await handler.on_player_movement("B", {"x": 1, "y": 0, "z": 2, "rotationY": 0.5})

        assert transport.sent == []

    @pytest.mark.parametrize("payload", [None, "garbage", {"x": 1}, {"x": "1", "y": 0, "z": 0, "rotationY": 0}])
    async def test_malformed_movement_is_dropped(
        self,
        handler: SessionSocketHandler,
        registry: ConnectionRegistry,
        transport: RecordingTransport,
        payload: object,
    ) -> None:
        """Test that malformed updates neither mutate state nor broadcast."""
        await handler.on_connect("A", {})
        await handler.on_connect("B", {})
        before = await registry.get("B")
        transport.clear()

        await handler.on_player_movement("B", payload)

        assert transport.sent == []
        assert await registry.get("B") == before

    async def test_update_only_touches_own_record(
        self,
        handler: SessionSocketHandler,
        registry: ConnectionRegistry,
    ) -> None:
        """Test that a channel can only move its own session."""
        await handler.on_connect("A", {})
        await handler.on_connect("B", {})
        a_before = await registry.get("A")

        await handler.on_player_movement("B", {"id": "A", "x": 9, "y": 9, "z": 9, "rotationY": 9})

        assert await registry.get("A") == a_before
        b_after = await registry.get("B")
        assert b_after is not None
        assert b_after.position.x == 9.0


MOVE = {"x": 1, "y": 0, "z": 2, "rotationY": 0.5}


def _replay(transport: RecordingTransport, channel: str) -> dict[str, float]:
    """Replay what ``channel`` was told and return the x position it knows per session.

    Fails if the channel hears about a session twice, hears about one it does
    not know, or receives anything before its snapshot.
    """
    known: dict[str, float] | None = None
    for ch, event, data in transport.sent:
        if ch != channel:
            continue
        if event == "currentPlayers":
            assert known is None, f"{channel} received a second snapshot"
            known = {session_id: record["x"] for session_id, record in data.items()}
            continue
        assert known is not None, f"{channel} received {event} before its snapshot"
        if event == "newPlayer":
            assert data["id"] not in known, f"{channel} told about {data['id']} twice"
            known[data["id"]] = data["x"]
        elif event == "playerMoved":
            assert data["id"] in known, f"{channel} got a move for unknown {data['id']}"
            assert data["id"] != channel, f"{channel} got its own move echoed"
            known[data["id"]] = data["x"]
        elif event == "playerDisconnected":
            assert data in known, f"{channel} told that unknown {data} left"
            del known[data]
    assert known is not None, f"{channel} never received a snapshot"
    return known


@pytest.fixture
def concurrent_handler(registry: ConnectionRegistry, yielding_transport: YieldingTransport) -> SessionSocketHandler:
    """Create a handler whose sends yield to the event loop."""
    return SessionSocketHandler(registry, BroadcastRouter(yielding_transport))


class TestConcurrentHandlers:
    """Tests that interleaved handlers each observe one whole change."""

    async def test_concurrent_joins_announce_each_peer_once(
        self,
        concurrent_handler: SessionSocketHandler,
        yielding_transport: YieldingTransport,
    ) -> None:
        """Test that a joiner never gets a peer both in its snapshot and as newPlayer."""
        await asyncio.gather(concurrent_handler.on_connect("A", {}), concurrent_handler.on_connect("B", {}))

        assert set(_replay(yielding_transport, "A")) == {"A", "B"}
        assert set(_replay(yielding_transport, "B")) == {"A", "B"}
        assert yielding_transport.events_for("B") == ["currentPlayers"]
        assert yielding_transport.events_for("A") == ["currentPlayers", "newPlayer"]

    async def test_many_concurrent_joins(
        self,
        concurrent_handler: SessionSocketHandler,
        yielding_transport: YieldingTransport,
    ) -> None:
        """Test that every participant ends up knowing every other exactly once."""
        sids = [f"s{i}" for i in range(8)]

        await asyncio.gather(*(concurrent_handler.on_connect(sid, {}) for sid in sids))

        for sid in sids:
            assert set(_replay(yielding_transport, sid)) == set(sids)

    async def test_join_racing_a_move(
        self,
        concurrent_handler: SessionSocketHandler,
        yielding_transport: YieldingTransport,
    ) -> None:
        """Test that a joiner ends up with the pose reported while it was joining."""
        await concurrent_handler.on_connect("A", {})

        await asyncio.gather(
            concurrent_handler.on_connect("B", {}),
            concurrent_handler.on_player_movement("A", MOVE),
        )

        assert _replay(yielding_transport, "B")["A"] == 1.0
        assert set(_replay(yielding_transport, "A")) == {"A", "B"}

    async def test_move_racing_a_join(
        self,
        concurrent_handler: SessionSocketHandler,
        yielding_transport: YieldingTransport,
    ) -> None:
        """Test the same race with the move scheduled first."""
        await concurrent_handler.on_connect("A", {})

        await asyncio.gather(
            concurrent_handler.on_player_movement("A", MOVE),
            concurrent_handler.on_connect("B", {}),
        )

        assert _replay(yielding_transport, "B")["A"] == 1.0
        assert yielding_transport.events_for("B")[0] == "currentPlayers"

    @pytest.mark.parametrize("leave_first", [True, False])
    async def test_leave_racing_a_join(
        self,
        concurrent_handler: SessionSocketHandler,
        registry: ConnectionRegistry,
        yielding_transport: YieldingTransport,
        leave_first: bool,  # noqa: FBT001
    ) -> None:
        """Test that a joiner never hears about a departure it could not have seen arrive."""
        await concurrent_handler.on_connect("A", {})
        steps = [concurrent_handler.on_disconnect("A"), concurrent_handler.on_connect("B", {})]

        await asyncio.gather(*(steps if leave_first else reversed(steps)))

        assert set(_replay(yielding_transport, "B")) == {"B"}
        assert set((await registry.snapshot()).keys()) == {"B"}

    async def test_mixed_traffic(
        self,
        concurrent_handler: SessionSocketHandler,
        registry: ConnectionRegistry,
        yielding_transport: YieldingTransport,
    ) -> None:
        """Test joins, moves and leaves all interleaved."""
        for sid in ("A", "B", "C"):
            await concurrent_handler.on_connect(sid, {})
        steps: list[Any] = [
            concurrent_handler.on_connect("D", {}),
            concurrent_handler.on_player_movement("A", {**MOVE, "x": 3}),
            concurrent_handler.on_disconnect("B"),
            concurrent_handler.on_connect("E", {}),
            concurrent_handler.on_player_movement("C", {**MOVE, "x": 4}),
            concurrent_handler.on_player_movement("A", {**MOVE, "x": 5}),
            concurrent_handler.on_disconnect("D"),
        ]

        await asyncio.gather(*steps)

        open_sessions = set((await registry.snapshot()).keys())
        assert open_sessions == {"A", "C", "E"}
        for sid in open_sessions:
            view = _replay(yielding_transport, sid)
            assert set(view) == open_sessions
            if sid != "A":
                assert view["A"] == 5.0
            if sid != "C":
                assert view["C"] == 4.0
