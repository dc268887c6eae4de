"""HTTP surface for plaza-py: health probes and session introspection."""

from __future__ import annotations

from plaza_py.web.controllers import SessionController
from plaza_py.web.health import HealthController

__all__ = [
    "HealthController",
    "SessionController",
]
