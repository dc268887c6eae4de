"""Client-side session proxy.

The proxy wraps one Socket.IO client. It keeps a local mirror of every
participant, decodes inbound protocol events into typed variants and hands
them to a consumer-supplied listener. It exposes one outbound call,
:meth:`SessionProxy.send_movement`.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import socketio
import structlog
from socketio import exceptions as sio_exceptions

from plaza_py.exceptions import InvalidMessageError
from plaza_py.realtime.messages import (
    EventName,
    Joined,
    Left,
    Moved,
    MovementUpdate,
    PlayerMovedMessage,
    SessionEvent,
    Snapshot,
    decode_record,
    decode_snapshot,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from plaza_py.core.models import SessionRecord, Vector3

logger = structlog.get_logger(__name__)

DEFAULT_NOTICE = "Connection failed. Please check your internet connection and try again."


@dataclass
class ProxyConfig:
    """Configuration for a session proxy.

    Attributes:
        url: Base URL of the plaza server.
        reconnection_attempts: Automatic reconnection attempts before giving up.
        timeout: Seconds to wait for the connection to be established.
        transports: Transports to try, in order.
        socketio_path: Path of the Socket.IO endpoint on the server.
        notice_ttl: Seconds a connection notice stays visible.
        notice_message: Text of the connection notice.
    """

    url: str = "http://localhost:3000"
    reconnection_attempts: int = 5
    timeout: float = 10.0
    transports: tuple[str, ...] = ("websocket", "polling")
    socketio_path: str = "socket.io"
    notice_ttl: float = 5.0
    notice_message: str = DEFAULT_NOTICE


@dataclass(frozen=True)
class ConnectionNotice:
    """A user-visible notice that expires on its own."""

    message: str
    created_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        """Whether the notice should no longer be shown at ``now``."""
        return now - self.created_at >= self.ttl


class SessionListener(Protocol):
    """Receives decoded session events. Return values are ignored."""

    def on_current_players(self, players: dict[str, SessionRecord]) -> None:
        """Called with every open session after this client connects."""
        ...

    def on_new_player(self, player: SessionRecord) -> None:
        """Called when another participant connects."""
        ...

    def on_player_moved(self, update: PlayerMovedMessage) -> None:
        """Called when another participant reports a new pose."""
        ...

    def on_player_disconnected(self, player_id: str) -> None:
        """Called when a participant's channel closes."""
        ...


@dataclass
class CallbackListener:
    """Listener built from optional plain callables."""

    current_players: Callable[[dict[str, SessionRecord]], None] | None = None
    new_player: Callable[[SessionRecord], None] | None = None
    player_moved: Callable[[PlayerMovedMessage], None] | None = None
    player_disconnected: Callable[[str], None] | None = None

    def on_current_players(self, players: dict[str, SessionRecord]) -> None:
        if self.current_players:
            self.current_players(players)

    def on_new_player(self, player: SessionRecord) -> None:
        if self.new_player:
            self.new_player(player)

    def on_player_moved(self, update: PlayerMovedMessage) -> None:
        if self.player_moved:
            self.player_moved(update)

    def on_player_disconnected(self, player_id: str) -> None:
        if self.player_disconnected:
            self.player_disconnected(player_id)


class SessionProxy:
    """Client-side view of a live session.

    A ``playerMoved`` for a session missing from ``players`` is still handed
    to the listener but does not add an entry, since it carries no colour.

    Attributes:
        connected: True once the server acknowledged the connection.
        connection_error: True after a failed connection attempt, cleared by
            the next successful one.
        player_id: This client's session ID, known once connected.
        players: Local mirror of every session, this client's included.
    """

    def __init__(
        self,
        config: ProxyConfig | None = None,
        listener: SessionListener | None = None,
        *,
        client: socketio.AsyncClient | None = None,
        notifier: Callable[[ConnectionNotice], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the proxy.

        Args:
            config: Connection settings. Defaults to :class:`ProxyConfig`.
            listener: Receives decoded events.
            client: Socket.IO client to wrap. One is built from ``config`` if omitted.
            notifier: Called whenever a new connection notice is raised.
            clock: Monotonic time source for notice expiry.
        """
        self._config = config or ProxyConfig()
        self._client = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=self._config.reconnection_attempts,
            request_timeout=self._config.timeout,
            logger=False,
            engineio_logger=False,
        )
        self.listener: SessionListener = listener or CallbackListener()
        self._notifier = notifier
        self._clock = clock

        self.connected = False
        self.connection_error = False
        self.player_id: str | None = None
        self.players: dict[str, SessionRecord] = {}

        self._notice: ConnectionNotice | None = None
        self._queue: asyncio.Queue[SessionEvent | None] | None = None
        self._closing = False

        self._register_handlers()

    def _register_handlers(self) -> None:
        self._client.on("connect", self._on_connect)
        self._client.on("connect_error", self._on_connect_error)
        self._client.on("disconnect", self._on_disconnect)
        self._client.on(EventName.CURRENT_PLAYERS.value, self._on_current_players)
        self._client.on(EventName.NEW_PLAYER.value, self._on_new_player)
        self._client.on(EventName.PLAYER_MOVED.value, self._on_player_moved)
        self._client.on(EventName.PLAYER_DISCONNECTED.value, self._on_player_disconnected)

    # Lifecycle

    async def connect(self) -> bool:
        """Open the channel.

        A failure is reported through ``connection_error`` and a connection
        notice, never raised.

        Returns:
            True if the connection was established.
        """
        self._closing = False
        try:
            await self._client.connect(
                self._config.url,
                transports=list(self._config.transports),
                socketio_path=self._config.socketio_path,
                wait_timeout=self._config.timeout,
            )
        except sio_exceptions.ConnectionError as e:
            logger.warning("Connection failed", url=self._config.url, error=str(e))
            self._fail()
            return False
        return True

    async def run(self) -> None:
        """Connect and stay connected until closed or reconnection gives up."""
        if not await self.connect():
            return
        await self._client.wait()
        if not self._closing:
            logger.warning("Reconnection attempts exhausted", attempts=self._config.reconnection_attempts)
            self.connected = False
            self._fail()

    async def close(self) -> None:
        """Close the channel and end any :meth:`events` iteration."""
        self._closing = True
        if self._client.connected:
            await self._client.disconnect()
        self.connected = False
        if self._queue is not None:
            self._queue.put_nowait(None)

    # Outbound

    async def send_movement(self, position: Vector3, facing: float) -> None:
        """Send the local pose to the server.

        Fire-and-forget: nothing is awaited from the server and the caller
        decides the cadence. Calls made while disconnected are dropped.

        Args:
            position: Local position, anything with ``x``, ``y`` and ``z``.
            facing: Local yaw angle in radians.
        """
        if not self.connected:
            logger.debug("Movement dropped while disconnected")
            return
        update = MovementUpdate(position=position, facing=facing)
        await self._client.emit(EventName.PLAYER_MOVEMENT.value, update.to_dict())

    # Notices

    @property
    def notice(self) -> ConnectionNotice | None:
        """The connection notice currently shown, if it has not expired."""
        if self._notice is not None and self._notice.expired(self._clock()):
            self._notice = None
        return self._notice

    def _fail(self) -> None:
        self.connection_error = True
        if self.notice is not None:
            return
        self._notice = ConnectionNotice(
            message=self._config.notice_message,
            created_at=self._clock(),
            ttl=self._config.notice_ttl,
        )
        logger.warning("Connection notice shown", message=self._notice.message)
        if self._notifier is not None:
            self._notifier(self._notice)

    # Event iteration

    async def events(self) -> AsyncIterator[SessionEvent]:
        """Iterate decoded events until :meth:`close` is called.

        Events are only buffered while an iteration is running: events received
        before it starts are not replayed, and an iteration that is stopped or
        abandoned stops buffering. Returns at once if the proxy is closed.
        """
        if self._closing:
            return
        if self._queue is None:
            self._queue = asyncio.Queue()
        queue = self._queue
        try:
            while (event := await queue.get()) is not None:
                yield event
        finally:
            if self._queue is queue:
                self._queue = None

    def _publish(self, event: SessionEvent) -> None:
        if self._queue is not None:
            self._queue.put_nowait(event)

        try:
            match event:
                case Snapshot(players=players):
                    self.listener.on_current_players(players)
                case Joined(player=player):
                    self.listener.on_new_player(player)
                case Moved(update=update):
                    self.listener.on_player_moved(update)
                case Left(player_id=player_id):
                    self.listener.on_player_disconnected(player_id)
        except Exception:
            logger.exception("Session listener failed", event=type(event).__name__)

    # Inbound handlers

    async def _on_connect(self) -> None:
        self.player_id = self._client.get_sid()
        self.connected = True
        self.connection_error = False
        logger.info("Connected to server", player_id=self.player_id)

    async def _on_connect_error(self, data: Any = None) -> None:
        logger.error("Connection error", error=str(data))
        self._fail()

    async def _on_disconnect(self, reason: Any = None) -> None:
        self.connected = False
        logger.info("Disconnected from server", player_id=self.player_id, reason=str(reason))

    async def _on_current_players(self, data: Any) -> None:
        try:
            players = decode_snapshot(data)
        except InvalidMessageError as e:
            logger.warning("Malformed message dropped", error=str(e))
            return
        self.players = {player_id: record.copy() for player_id, record in players.items()}
        self._publish(Snapshot(players=players))

    async def _on_new_player(self, data: Any) -> None:
        try:
            player = decode_record(EventName.NEW_PLAYER, data)
        except InvalidMessageError as e:
            logger.warning("Malformed message dropped", error=str(e))
            return
        self.players[player.id] = player.copy()
        self._publish(Joined(player=player))

    async def _on_player_moved(self, data: Any) -> None:
        try:
            update = PlayerMovedMessage.from_payload(data)
        except InvalidMessageError as e:
            logger.warning("Malformed message dropped", error=str(e))
            return
        known = self.players.get(update.id)
        if known is not None:
            known.position = update.position
            known.facing = update.facing
        self._publish(Moved(update=update))

    async def _on_player_disconnected(self, data: Any) -> None:
        player_id = str(data)
        self.players.pop(player_id, None)
        self._publish(Left(player_id=player_id))
