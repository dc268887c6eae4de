"""Litestar controllers for read-only session introspection."""

from __future__ import annotations

from typing import Any, ClassVar

from litestar import Controller, get

from plaza_py.exceptions import SessionNotFoundError
from plaza_py.realtime.registry import ConnectionRegistry


class SessionController(Controller):
    """Controller exposing the open sessions held by the registry.

    Nothing here mutates the registry; only the Socket.IO lifecycle does.
    """

    path = "/sessions"
    tags: ClassVar[list[str]] = ["Sessions"]

    @get("/")
    async def list_sessions(self, registry: ConnectionRegistry) -> list[dict[str, Any]]:
        """List every open session.

        Args:
            registry: The connection registry (injected).

        Returns:
            Wire representation of each open session.
        """
        snapshot = await registry.snapshot()
        return [record.to_dict() for record in snapshot.values()]

    @get("/{session_id:str}")
    async def get_session(self, session_id: str, registry: ConnectionRegistry) -> dict[str, Any]:
        """Get one open session.

        Args:
            session_id: The session identifier.
            registry: The connection registry (injected).

        Returns:
            Wire representation of the session, plus its connection time.

        Raises:
            SessionNotFoundError: If no open session has this ID.
        """
        record = await registry.get(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return {**record.to_dict(), "connected_at": record.connected_at.isoformat()}
