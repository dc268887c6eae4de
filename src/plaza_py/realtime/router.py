"""Fan-out of registry changes to transport channels."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from plaza_py.realtime.messages import EventName, PlayerMovedMessage, encode_snapshot

if TYPE_CHECKING:
    from plaza_py.realtime.registry import SessionChange

logger = structlog.get_logger(__name__)

Delivery = tuple[Any, str, EventName, Any]


class ChannelTransport(Protocol):
    """Anything that can deliver one named event to one channel."""

    async def send(self, channel: Any, event: str, data: Any) -> None:
        """Send ``data`` as ``event`` to ``channel``."""
        ...


class BroadcastRouter:
    """Turns registry changes into outbound protocol messages.

    The router never reads the registry itself. Each call delivers to exactly
    the channels captured in the :class:`~plaza_py.realtime.registry.SessionChange`,
    one message per channel. All sends of one call are started together,
    before the call first yields, so they are queued ahead of the sends of
    any later change. A failed send is logged without affecting the other
    targets.
    """

    def __init__(self, transport: ChannelTransport, *, send_timeout: float | None = 5.0) -> None:
        """Initialize the router.

        Args:
            transport: Delivers messages to individual channels.
            send_timeout: Seconds a single send may take before it is abandoned.
                None waits indefinitely.
        """
        self._transport = transport
        self._send_timeout = send_timeout

    async def player_joined(self, change: SessionChange, channel: Any) -> int:
        """Seed a new session and announce it to everyone else.

        The new channel receives ``currentPlayers`` with every open session,
        its own included. Every other channel receives ``newPlayer``.

        Args:
            change: The change returned by ``ConnectionRegistry.join``.
            channel: The new session's channel.

        Returns:
            The number of other channels notified.
        """
        record = change.record
        deliveries: list[Delivery] = [(channel, record.id, EventName.CURRENT_PLAYERS, encode_snapshot(change.snapshot))]
        deliveries.extend(
            (peer, session_id, EventName.NEW_PLAYER, record.to_dict()) for session_id, peer in change.peers.items()
        )
        await self._deliver(deliveries)
        return len(change.peers)

    async def player_moved(self, change: SessionChange) -> int:
        """Forward a movement update to every channel except its origin.

        Args:
            change: The change returned by ``ConnectionRegistry.move``.

        Returns:
            The number of channels notified.
        """
        payload = PlayerMovedMessage.from_record(change.record).to_dict()
        return await self._fan_out(change, EventName.PLAYER_MOVED, payload)

    async def player_left(self, change: SessionChange) -> int:
        """Tell every remaining channel that a session closed.

        Args:
            change: The change returned by ``ConnectionRegistry.leave``.

        Returns:
            The number of channels notified.
        """
        return await self._fan_out(change, EventName.PLAYER_DISCONNECTED, change.record.id)

    async def _fan_out(self, change: SessionChange, event: EventName, data: Any) -> int:
        await self._deliver([(peer, session_id, event, data) for session_id, peer in change.peers.items()])
        return len(change.peers)

    async def _deliver(self, deliveries: list[Delivery]) -> None:
        if deliveries:
            await asyncio.gather(*(self._send(*delivery) for delivery in deliveries))

    async def _send(self, channel: Any, session_id: str, event: EventName, data: Any) -> None:
        try:
            await asyncio.wait_for(self._transport.send(channel, event.value, data), timeout=self._send_timeout)
        except TimeoutError:
            logger.warning(
                "Send timed out",
                session_id=session_id,
                event=event.value,
                timeout=self._send_timeout,
            )
        except Exception:
            logger.exception(
                "Failed to send message",
                session_id=session_id,
                event=event.value,
            )
