"""Health check endpoints for plaza-py.

Provides /health and /ready for container orchestration and load balancer
checks. Both report on the session layer rather than on storage, since the
server keeps no persistent state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar

from litestar import Controller, get

from plaza_py.realtime.registry import ConnectionRegistry

_STARTED = time.monotonic()


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of one part of the server."""

    name: str
    status: HealthStatus
    message: str | None = None


@dataclass
class HealthResponse:
    """Body of the liveness probe."""

    components: list[ComponentHealth]
    sessions: int
    version: str = "0.1.0"
    uptime_seconds: float = field(default_factory=lambda: round(time.monotonic() - _STARTED, 3))
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def status(self) -> HealthStatus:
        """Worst status among the components."""
        statuses = {c.status for c in self.components}
        for status in (HealthStatus.UNHEALTHY, HealthStatus.DEGRADED):
            if status in statuses:
                return status
        return HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp,
            "uptime_seconds": self.uptime_seconds,
            "sessions": self.sessions,
            "components": [{"name": c.name, "status": c.status.value, "message": c.message} for c in self.components],
        }


def _registry_health(registry: ConnectionRegistry) -> ComponentHealth:
    count = registry.total_connections
    return ComponentHealth(
        name="realtime",
        status=HealthStatus.HEALTHY,
        message=f"{count} open session{'' if count == 1 else 's'}",
    )


class HealthController(Controller):
    """Liveness and readiness probes."""

    path = ""
    tags: ClassVar[list[str]] = ["Health"]

    @get("/health")
    async def health(self, registry: ConnectionRegistry) -> dict[str, Any]:
        """Liveness probe endpoint.

        Returns:
            Overall status, uptime and the number of open sessions.
        """
        response = HealthResponse(
            components=[
                ComponentHealth(name="application", status=HealthStatus.HEALTHY, message="Application is running"),
                _registry_health(registry),
            ],
            sessions=registry.total_connections,
        )
        return response.to_dict()

    @get("/ready")
    async def ready(self, registry: ConnectionRegistry) -> dict[str, Any]:
        """Readiness probe endpoint.

        The server is ready once the plugin has provided a registry, which
        happens before the first request is accepted.
        """
        checks = {"application": True, "registry": isinstance(registry, ConnectionRegistry)}
        return {
            "ready": all(checks.values()),
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        }
