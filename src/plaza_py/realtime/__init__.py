"""Real-time session synchronization for plaza-py.

This module provides the server-side connection registry and broadcast
router, the Socket.IO handler binding them to the transport, and the
client-side session proxy.
"""

from __future__ import annotations

from plaza_py.realtime.handler import SessionSocketHandler, SocketIOTransport, create_session_handler
from plaza_py.realtime.messages import (
    EventName,
    Joined,
    Left,
    Moved,
    MovementUpdate,
    PlayerMovedMessage,
    SessionEvent,
    Snapshot,
)
from plaza_py.realtime.proxy import (
    CallbackListener,
    ConnectionNotice,
    ProxyConfig,
    SessionListener,
    SessionProxy,
)
from plaza_py.realtime.registry import ConnectionRegistry, SessionChange
from plaza_py.realtime.router import BroadcastRouter, ChannelTransport

__all__ = [
    "BroadcastRouter",
    "CallbackListener",
    "ChannelTransport",
    "ConnectionNotice",
    "ConnectionRegistry",
    "EventName",
    "Joined",
    "Left",
    "Moved",
    "MovementUpdate",
    "PlayerMovedMessage",
    "ProxyConfig",
    "SessionChange",
    "SessionEvent",
    "SessionListener",
    "SessionProxy",
    "SessionSocketHandler",
    "Snapshot",
    "SocketIOTransport",
    "create_session_handler",
]
