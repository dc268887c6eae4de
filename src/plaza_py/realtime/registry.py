"""Connection registry for live sessions."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

from plaza_py.core.models import SessionRecord, Vector3, random_color

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger(__name__)


def _default_id_factory() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class SessionChange:
    """Outcome of one registry mutation, captured in the same locked step.

    Attributes:
        record: Copy of the affected record. For a removal, the record as it
            was when removed.
        peers: Channel of every other open session right after the change,
            keyed by session ID.
        snapshot: Every open session right after the change, the affected one
            included. Only filled in when a session is opened.
    """

    record: SessionRecord
    peers: dict[str, Any]
    snapshot: dict[str, SessionRecord] = field(default_factory=dict)


class ConnectionRegistry:
    """Owns the mapping of open sessions.

    The registry is the single source of truth for who is connected: a record
    exists exactly while its transport channel is open. Every read and write
    goes through one ``asyncio.Lock`` so connects, movement updates and
    disconnects are applied one at a time. Callers always receive copies of
    records, never the stored instances.

    :meth:`join`, :meth:`move` and :meth:`leave` return the channels a change
    must reach, read under the same lock as the change itself, so that
    concurrent changes never see each other half applied.
    """

    def __init__(
        self,
        *,
        spawn_radius: float = 5.0,
        ground_level: float = 0.0,
        rng: random.Random | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            spawn_radius: Half-extent of the square new sessions spawn in, on x and z.
            ground_level: Initial y coordinate of new sessions.
            rng: Random source for spawn positions and colours.
            id_factory: Produces candidate session IDs when the caller does not
                request one, or requests one that is already held.
        """
        self._sessions: dict[str, SessionRecord] = {}
        self._channels: dict[str, Any] = {}
        self._lock = asyncio.Lock()
        self._spawn_radius = spawn_radius
        self._ground_level = ground_level
        self._rng = rng or random.Random()  # noqa: S311
        self._id_factory = id_factory or _default_id_factory

    def _peers(self, session_id: str) -> dict[str, Any]:
        return {other: channel for other, channel in self._channels.items() if other != session_id}

    async def join(self, channel: Any, session_id: str | None = None) -> SessionChange:
        """Create the session record for a newly opened channel.

        Args:
            channel: Opaque handle used by the transport to address the channel.
            session_id: Preferred ID, honoured only if no open session holds it.

        Returns:
            The new record, every open session including it, and the
            channels of the sessions that were already open.
        """
        async with self._lock:
            new_id = self._allocate_id(session_id)
            radius = self._spawn_radius
            record = SessionRecord(
                id=new_id,
                position=Vector3(
                    x=self._rng.uniform(-radius, radius),
                    y=self._ground_level,
                    z=self._rng.uniform(-radius, radius),
                ),
                facing=0.0,
                color=random_color(self._rng),
            )
            self._sessions[new_id] = record
            self._channels[new_id] = channel

            logger.info(
                "Session connected",
                session_id=new_id,
                color=record.color,
                total_sessions=len(self._sessions),
            )

            return SessionChange(
                record=record.copy(),
                peers=self._peers(new_id),
                snapshot={sid: stored.copy() for sid, stored in self._sessions.items()},
            )

    async def connect(self, channel: Any, session_id: str | None = None) -> SessionRecord:
        """Create the session record for a newly opened channel.

        Same as :meth:`join`, for callers that only need the record.

        Returns:
            A copy of the new record.
        """
        return (await self.join(channel, session_id)).record

    def _allocate_id(self, requested: str | None) -> str:
        if requested is not None:
            if requested not in self._sessions:
                return requested
            logger.warning("Requested session ID already held, allocating a new one", session_id=requested)
        while True:
            candidate = self._id_factory()
            if candidate not in self._sessions:
                return candidate

    async def move(self, session_id: str, position: Vector3, facing: float) -> SessionChange | None:
        """Overwrite the pose of a session.

        Updates for unknown IDs are dropped, since they are expected when an
        update races the owner's disconnect.

        Args:
            session_id: The session that reported the pose.
            position: New position.
            facing: New yaw angle.

        Returns:
            The updated record and the channels of every other session, or
            None if the session is gone.
        """
        async with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                logger.debug("Dropping movement for unknown session", session_id=session_id)
                return None
            record.position = Vector3(x=position.x, y=position.y, z=position.z)
            record.facing = facing
            return SessionChange(record=record.copy(), peers=self._peers(session_id))

    async def update_movement(self, session_id: str, position: Vector3, facing: float) -> SessionRecord | None:
        """Overwrite the pose of a session, see :meth:`move`.

        Returns:
            A copy of the updated record, or None if the session is gone.
        """
        change = await self.move(session_id, position, facing)
        return change.record if change else None

    async def leave(self, session_id: str) -> SessionChange | None:
        """Remove the session of a closed channel.

        Args:
            session_id: The session to remove.

        Returns:
            The removed record and the channels of every remaining session,
            or None if it was already gone.
        """
        async with self._lock:
            record = self._sessions.pop(session_id, None)
            self._channels.pop(session_id, None)
            if record is None:
                return None

            logger.info(
                "Session disconnected",
                session_id=session_id,
                remaining_sessions=len(self._sessions),
            )
            return SessionChange(record=record, peers=dict(self._channels))

    async def disconnect(self, session_id: str) -> SessionRecord | None:
        """Remove the session of a closed channel, see :meth:`leave`.

        Returns:
            The removed record, or None if it was already gone.
        """
        change = await self.leave(session_id)
        return change.record if change else None

    async def snapshot(self) -> dict[str, SessionRecord]:
        """Get a point-in-time copy of every open session.

        Returns:
            Mapping of session ID to record copy.
        """
        async with self._lock:
            return {session_id: record.copy() for session_id, record in self._sessions.items()}

    async def get(self, session_id: str) -> SessionRecord | None:
        """Get a copy of one session, or None if it is not open."""
        async with self._lock:
            record = self._sessions.get(session_id)
            return record.copy() if record else None

    async def channels(self) -> dict[str, Any]:
        """Get the channel handle of every open session."""
        async with self._lock:
            return dict(self._channels)

    async def clear(self) -> int:
        """Drop every session, used when the server shuts down.

        Returns:
            The number of sessions dropped.
        """
        async with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            self._channels.clear()
            if count:
                logger.info("Registry cleared", dropped_sessions=count)
            return count

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def total_connections(self) -> int:
        """Get the number of open sessions."""
        return len(self._sessions)
