"""Core domain models for plaza-py session synchronization."""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

# Largest 24-bit colour value, exclusive upper bound for random colours.
COLOR_SPACE = 0x1000000


def random_color(rng: random.Random | None = None) -> str:
    """Return a random ``#rrggbb`` display colour.

    Args:
        rng: Optional random source, for reproducible colours.

    Returns:
        A zero-padded hex colour string.
    """
    rng = rng or random.Random()  # noqa: S311
    return f"#{rng.randrange(COLOR_SPACE):06x}"


@dataclass
class Vector3:
    """Represents a point in 3D space.

    Attributes:
        x: X-coordinate position.
        y: Y-coordinate position (vertical axis).
        z: Z-coordinate position.
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class SessionRecord:
    """State held by the server for one connected participant.

    The record is created by the connection registry when a channel opens and
    only movement updates from the owning channel change it afterwards.
    ``color`` is assigned once and cannot be reassigned.

    Attributes:
        id: Opaque session identifier, unique among open sessions.
        position: Last reported position.
        facing: Yaw angle in radians (``rotationY`` on the wire).
        color: Display colour as ``#rrggbb``.
        connected_at: When the session was created.
    """

    id: str
    position: Vector3 = field(default_factory=Vector3)
    facing: float = 0.0
    color: str = "#ffffff"
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "color" and "color" in self.__dict__:
            msg = "SessionRecord.color is immutable"
            raise AttributeError(msg)
        super().__setattr__(name, value)

    def copy(self) -> SessionRecord:
        """Return a point-in-time copy that shares no mutable state."""
        return replace(self, position=replace(self.position))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat wire representation."""
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "z": self.position.z,
            "rotationY": self.facing,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        """Build a record from its wire representation.

        Args:
            data: Mapping with ``id``, ``x``, ``y``, ``z``, ``rotationY`` and ``color``.

        Returns:
            The decoded record.

        Raises:
            KeyError: If a required key is missing.
            TypeError: If a coordinate is not numeric.
            ValueError: If a coordinate cannot be converted to float.
        """
        return cls(
            id=str(data["id"]),
            position=Vector3(x=float(data["x"]), y=float(data["y"]), z=float(data["z"])),
            facing=float(data.get("rotationY", 0.0)),
            color=str(data.get("color", "#ffffff")),
        )
