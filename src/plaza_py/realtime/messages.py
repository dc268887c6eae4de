"""Socket.IO event names, payload schemas and client-side event variants."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from plaza_py.core.models import SessionRecord, Vector3
from plaza_py.exceptions import InvalidMessageError, InvalidMovementError

MOVEMENT_KEYS = ("x", "y", "z", "rotationY")


class EventName(StrEnum):
    """Names of the Socket.IO events that make up the protocol."""

    # Client -> Server
    PLAYER_MOVEMENT = "playerMovement"

    # Server -> Client
    CURRENT_PLAYERS = "currentPlayers"
    NEW_PLAYER = "newPlayer"
    PLAYER_MOVED = "playerMoved"
    PLAYER_DISCONNECTED = "playerDisconnected"


def _pose_numbers(data: Mapping[str, Any]) -> tuple[float, float, float, float]:
    """Pull x, y, z and rotationY out of a payload.

    Raises:
        ValueError: If a key is missing or its value is not a number.
    """
    numbers = []
    for key in MOVEMENT_KEYS:
        if key not in data:
            msg = f"missing {key!r}"
            raise ValueError(msg)
        value = data[key]
        # bool is an int subclass but never a coordinate
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"{key!r} must be a number, got {type(value).__name__}"
            raise ValueError(msg)
        numbers.append(float(value))
    x, y, z, facing = numbers
    return x, y, z, facing


@dataclass
class MovementUpdate:
    """A pose reported by a client (``playerMovement``).

    Only the payload shape is checked. Values are trusted as reported, so NaN
    and infinities pass through unchanged.
    """

    position: Vector3
    facing: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "x": self.position.x,
            "y": self.position.y,
            "z": self.position.z,
            "rotationY": self.facing,
        }

    @classmethod
    def from_payload(cls, data: Any) -> MovementUpdate:
        """Decode a ``playerMovement`` payload.

        Args:
            data: The raw payload received from the client.

        Returns:
            The decoded movement update.

        Raises:
            InvalidMovementError: If the payload is not a mapping or a field is
                missing or non-numeric.
        """
        if not isinstance(data, Mapping):
            msg = f"expected an object, got {type(data).__name__}"
            raise InvalidMovementError(msg)
        try:
            x, y, z, facing = _pose_numbers(data)
        except ValueError as exc:
            raise InvalidMovementError(str(exc)) from exc
        return cls(position=Vector3(x=x, y=y, z=z), facing=facing)


@dataclass
class PlayerMovedMessage:
    """Message fanned out to other participants after a movement update."""

    id: str
    position: Vector3
    facing: float

    @classmethod
    def from_record(cls, record: SessionRecord) -> PlayerMovedMessage:
        """Build the message from a point-in-time session record."""
        snapshot = record.copy()
        return cls(id=snapshot.id, position=snapshot.position, facing=snapshot.facing)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "z": self.position.z,
            "rotationY": self.facing,
        }

    @classmethod
    def from_payload(cls, data: Any) -> PlayerMovedMessage:
        """Decode a ``playerMoved`` payload.

        Raises:
            InvalidMessageError: If the payload is malformed.
        """
        event = EventName.PLAYER_MOVED
        if not isinstance(data, Mapping) or "id" not in data:
            raise InvalidMessageError(event, "expected an object with an 'id'")
        try:
            x, y, z, facing = _pose_numbers(data)
        except ValueError as exc:
            raise InvalidMessageError(event, str(exc)) from exc
        return cls(id=str(data["id"]), position=Vector3(x=x, y=y, z=z), facing=facing)


def encode_snapshot(sessions: Mapping[str, SessionRecord]) -> dict[str, dict[str, Any]]:
    """Encode a registry snapshot as the ``currentPlayers`` payload."""
    return {session_id: record.to_dict() for session_id, record in sessions.items()}


def decode_record(event: str, data: Any) -> SessionRecord:
    """Decode a single session record payload.

    Raises:
        InvalidMessageError: If the payload is malformed.
    """
    if not isinstance(data, Mapping):
        raise InvalidMessageError(event, f"expected an object, got {type(data).__name__}")
    try:
        return SessionRecord.from_dict(dict(data))
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidMessageError(event, f"bad session record ({exc!s})") from exc


def decode_snapshot(data: Any) -> dict[str, SessionRecord]:
    """Decode a ``currentPlayers`` payload.

    Raises:
        InvalidMessageError: If the payload is malformed.
    """
    event = EventName.CURRENT_PLAYERS
    if not isinstance(data, Mapping):
        raise InvalidMessageError(event, f"expected an object, got {type(data).__name__}")
    return {str(session_id): decode_record(event, record) for session_id, record in data.items()}


# Tagged event variants delivered to client-side consumers.


@dataclass(frozen=True)
class Snapshot:
    """Every session open at the time this client joined, its own included."""

    players: dict[str, SessionRecord] = field(default_factory=dict)


@dataclass(frozen=True)
class Joined:
    """Another participant connected."""

    player: SessionRecord


@dataclass(frozen=True)
class Moved:
    """Another participant reported a new pose."""

    update: PlayerMovedMessage


@dataclass(frozen=True)
class Left:
    """A participant's channel closed."""

    player_id: str


SessionEvent = Snapshot | Joined | Moved | Left
