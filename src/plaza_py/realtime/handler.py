"""Socket.IO event handlers for live session synchronization."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from plaza_py.exceptions import InvalidMovementError
from plaza_py.realtime.messages import EventName, MovementUpdate
from plaza_py.realtime.router import BroadcastRouter

if TYPE_CHECKING:
    import socketio

    from plaza_py.realtime.registry import ConnectionRegistry

logger = structlog.get_logger(__name__)


class SocketIOTransport:
    """Delivers router messages through a Socket.IO server.

    Channels are Socket.IO session IDs (``sid``).
    """

    def __init__(self, sio: socketio.AsyncServer) -> None:
        """Initialize the transport.

        Args:
            sio: The Socket.IO server to emit through.
        """
        self._sio = sio

    async def send(self, channel: Any, event: str, data: Any) -> None:
        """Emit ``event`` to the single client identified by ``channel``."""
        await self._sio.emit(event, data, to=channel)


class SessionSocketHandler:
    """Handler for Socket.IO session connections.

    Connects the Socket.IO lifecycle (``connect``, ``disconnect``) and the
    ``playerMovement`` event to the registry, and hands each resulting
    registry change to the broadcast router.
    """

    def __init__(self, registry: ConnectionRegistry, router: BroadcastRouter) -> None:
        """Initialize the handler.

        Args:
            registry: The connection registry.
            router: The broadcast router.
        """
        self._registry = registry
        self._router = router
        self._sessions: dict[str, str] = {}

    def register(self, sio: socketio.AsyncServer) -> None:
        """Attach the handlers to a Socket.IO server.

        Args:
            sio: The server whose default namespace should be handled.
        """
        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on(EventName.PLAYER_MOVEMENT.value, self.on_player_movement)

    def session_for(self, sid: str) -> str | None:
        """Get the session ID bound to a Socket.IO sid."""
        return self._sessions.get(sid)

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        """Create a session for a new channel and broadcast it.

        The Socket.IO sid is requested as the session ID so that clients can
        find their own entry in ``currentPlayers``.

        Args:
            sid: The Socket.IO session ID.
            environ: The connection environ (unused).
            auth: Client auth payload (unused).
        """
        change = await self._registry.join(sid, session_id=sid)
        self._sessions[sid] = change.record.id

        with structlog.contextvars.bound_contextvars(session_id=change.record.id):
            logger.debug("Channel opened", sid=sid)
            notified = await self._router.player_joined(change, sid)
            logger.debug("Join broadcast", notified=notified)

    async def on_player_movement(self, sid: str, data: Any) -> None:
        """Apply a movement update and forward it to everyone else.

        Args:
            sid: The Socket.IO session ID of the sender.
            data: The raw ``playerMovement`` payload.
        """
        session_id = self._sessions.get(sid)
        if session_id is None:
            logger.debug("Movement from unbound channel dropped", sid=sid)
            return

        with structlog.contextvars.bound_contextvars(session_id=session_id):
            try:
                update = MovementUpdate.from_payload(data)
            except InvalidMovementError as e:
                logger.warning("Malformed movement dropped", error=str(e))
                return

            change = await self._registry.move(session_id, update.position, update.facing)
            if change is None:
                return

            await self._router.player_moved(change)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        """Remove the session of a closed channel and announce it.

        Repeated delivery for the same sid is ignored.

        Args:
            sid: The Socket.IO session ID.
            reason: Disconnect reason, when the Socket.IO version provides one.
        """
        session_id = self._sessions.pop(sid, None)
        if session_id is None:
            logger.debug("Disconnect for unbound channel ignored", sid=sid)
            return

        with structlog.contextvars.bound_contextvars(session_id=session_id):
            change = await self._registry.leave(session_id)
            if change is None:
                return

            logger.info("Channel closed", reason=str(reason) if reason is not None else None)
            await self._router.player_left(change)


def create_session_handler(
    sio: socketio.AsyncServer,
    registry: ConnectionRegistry,
    *,
    send_timeout: float | None = 5.0,
) -> SessionSocketHandler:
    """Create a session handler and register it on a Socket.IO server.

    Args:
        sio: The Socket.IO server.
        registry: The connection registry.
        send_timeout: Per-channel send timeout for the broadcast router.

    Returns:
        The registered handler.
    """
    router = BroadcastRouter(SocketIOTransport(sio), send_timeout=send_timeout)
    handler = SessionSocketHandler(registry, router)
    handler.register(sio)
    return handler
