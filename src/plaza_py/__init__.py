"""Plaza-py: live shared 3D spaces over Socket.IO, built on Litestar.

This package keeps the position and facing of every participant in a shared
space synchronized through a central relay. It includes the server-side
connection registry and broadcast router, a Socket.IO binding, a Litestar
plugin, and a client-side session proxy for rendering consumers.

Key Components:
    - Core Models: SessionRecord, Vector3
    - Realtime: ConnectionRegistry, BroadcastRouter, SessionSocketHandler
    - Client: SessionProxy, SessionListener, CallbackListener
    - Plugin: PlazaPlugin for Litestar integration

Quick Start:
    >>> from litestar import Litestar
    >>> from plaza_py import PlazaConfig, PlazaPlugin
    >>>
    >>> plugin = PlazaPlugin(PlazaConfig())
    >>> app = plugin.asgi_app(Litestar(plugins=[plugin]))

Client Usage:
    >>> from plaza_py import CallbackListener, ProxyConfig, SessionProxy, Vector3
    >>>
    >>> proxy = SessionProxy(
    ...     ProxyConfig(url="http://localhost:3000"),
    ...     CallbackListener(new_player=lambda player: print("joined", player.id)),
    ... )
    >>> # inside a coroutine:
    >>> # await proxy.connect()
    >>> # await proxy.send_movement(Vector3(1.0, 0.0, 2.0), facing=0.5)
"""

from __future__ import annotations

from plaza_py.core import SessionRecord, Vector3
from plaza_py.exceptions import (
    InvalidMessageError,
    InvalidMovementError,
    PlazaError,
    PluginNotInitializedError,
    SessionNotFoundError,
)
from plaza_py.plugin import PlazaConfig, PlazaPlugin
from plaza_py.realtime import (
    BroadcastRouter,
    CallbackListener,
    ConnectionNotice,
    ConnectionRegistry,
    EventName,
    ProxyConfig,
    SessionListener,
    SessionProxy,
    SessionSocketHandler,
)

__all__ = [
    "BroadcastRouter",
    "CallbackListener",
    "ConnectionNotice",
    "ConnectionRegistry",
    "EventName",
    "InvalidMessageError",
    "InvalidMovementError",
    "PlazaConfig",
    "PlazaError",
    "PlazaPlugin",
    "PluginNotInitializedError",
    "ProxyConfig",
    "SessionListener",
    "SessionNotFoundError",
    "SessionProxy",
    "SessionRecord",
    "SessionSocketHandler",
    "Vector3",
]

__version__ = "0.1.0"
