"""Litestar plugin for plaza-py integration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import socketio
import structlog
from litestar import Router
from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from plaza_py.core.error_handling import get_exception_handlers
from plaza_py.exceptions import PluginNotInitializedError
from plaza_py.realtime.handler import SessionSocketHandler, create_session_handler
from plaza_py.realtime.registry import ConnectionRegistry
from plaza_py.web.controllers import SessionController
from plaza_py.web.health import HealthController

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar import Litestar
    from litestar.config.app import AppConfig

logger = structlog.get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class PlazaConfig:
    """Configuration for the Plaza plugin.

    Attributes:
        host: Interface the server binds to.
        port: TCP port serving both HTTP and Socket.IO.
        static_dir: Directory of client assets. Not mounted when None or missing.
        static_path: URL path the client assets are served under.
        api_path: Base path of the session introspection API.
        socketio_path: Path of the Socket.IO endpoint.
        cors_allowed_origins: Origins allowed to open Socket.IO connections.
        spawn_radius: Half-extent of the square new sessions spawn in.
        ground_level: Initial y coordinate of new sessions.
        send_timeout: Seconds a single outbound send may take.
        debug: Enable debug mode and debug logging.
        json_logs: Output logs as JSON.
        registry: Optional pre-built registry. If None, one is created.
    """

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    static_dir: Path | None = field(default_factory=lambda: Path("public"))
    static_path: str = "/"
    api_path: str = "/api"
    socketio_path: str = "socket.io"
    cors_allowed_origins: str | list[str] = "*"
    spawn_radius: float = 5.0
    ground_level: float = 0.0
    send_timeout: float | None = 5.0
    debug: bool = False
    json_logs: bool = False
    registry: ConnectionRegistry | None = field(default=None)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PlazaConfig:
        """Build a configuration from environment variables.

        Reads ``PORT``, ``HOST``, ``PLAZA_STATIC_DIR``, ``PLAZA_DEBUG``,
        ``PLAZA_JSON_LOGS``, ``PLAZA_CORS_ORIGINS`` and ``PLAZA_SPAWN_RADIUS``.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            The configuration, with defaults for unset variables.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if port := env.get("PORT"):
            config.port = int(port)
        if host := env.get("HOST"):
            config.host = host
        if "PLAZA_STATIC_DIR" in env:
            static_dir = env["PLAZA_STATIC_DIR"]
            config.static_dir = Path(static_dir) if static_dir else None
        if origins := env.get("PLAZA_CORS_ORIGINS"):
            parsed = [origin.strip() for origin in origins.split(",") if origin.strip()]
            config.cors_allowed_origins = "*" if parsed == ["*"] else parsed
        if radius := env.get("PLAZA_SPAWN_RADIUS"):
            config.spawn_radius = float(radius)
        config.debug = env.get("PLAZA_DEBUG", "").lower() in _TRUTHY
        config.json_logs = env.get("PLAZA_JSON_LOGS", "").lower() in _TRUTHY
        return config


class PlazaPlugin(InitPluginProtocol):
    """Litestar plugin wiring the live session layer into an application.

    On app init the plugin:

    - creates the connection registry, unless one was configured;
    - creates the Socket.IO server and registers the session handler on it;
    - registers the registry for dependency injection under ``registry``;
    - mounts the health and session controllers and the static client assets;
    - installs the JSON exception handlers;
    - clears the registry on shutdown.

    The Socket.IO server runs next to Litestar, not inside it. Use
    :meth:`asgi_app` to get the single ASGI callable serving both.

    Example:
        >>> from litestar import Litestar
        >>> from plaza_py import PlazaConfig, PlazaPlugin
        >>>
        >>> plugin = PlazaPlugin(PlazaConfig(static_dir=None))
        >>> app = plugin.asgi_app(Litestar(plugins=[plugin]))
    """

    def __init__(self, config: PlazaConfig | None = None) -> None:
        """Initialize the plugin with optional configuration.

        Args:
            config: Plugin configuration. If None, PlazaConfig with default
                values will be used.
        """
        self._config = config or PlazaConfig()
        self._registry: ConnectionRegistry | None = None
        self._sio: socketio.AsyncServer | None = None
        self._handler: SessionSocketHandler | None = None

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin during application startup.

        Args:
            app_config: The Litestar application configuration object.

        Returns:
            The modified application configuration.
        """
        config = self._config
        self._registry = config.registry or ConnectionRegistry(
            spawn_radius=config.spawn_radius,
            ground_level=config.ground_level,
        )
        self._sio = socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=config.cors_allowed_origins,
            logger=config.debug,
            engineio_logger=config.debug,
        )
        self._handler = create_session_handler(self._sio, self._registry, send_timeout=config.send_timeout)

        registry = self._registry

        def provide_registry() -> ConnectionRegistry:
            """Dependency provider for the connection registry."""
            return registry

        app_config.dependencies["registry"] = Provide(provide_registry, sync_to_thread=False)

        app_config.route_handlers.append(HealthController)
        app_config.route_handlers.append(Router(path=config.api_path, route_handlers=[SessionController]))

        for exc_type, exc_handler in get_exception_handlers().items():
            app_config.exception_handlers.setdefault(exc_type, exc_handler)

        app_config.on_startup.append(self._on_startup)
        app_config.on_shutdown.append(self._on_shutdown)

        if config.static_dir is not None and config.static_dir.is_dir():
            from litestar.static_files import create_static_files_router

            app_config.route_handlers.append(
                create_static_files_router(
                    path=config.static_path,
                    directories=[config.static_dir],
                    html_mode=True,
                    name="static",
                    include_in_schema=False,
                )
            )
        elif config.static_dir is not None:
            logger.info("Static directory not found, client assets not served", static_dir=str(config.static_dir))

        return app_config

    async def _on_startup(self) -> None:
        logger.info("Plaza started", socketio_path=self._config.socketio_path, api_path=self._config.api_path)

    async def _on_shutdown(self) -> None:
        dropped = await self.registry.clear()
        logger.info("Plaza stopped", dropped_sessions=dropped)

    def asgi_app(self, app: Litestar) -> socketio.ASGIApp:
        """Wrap a Litestar app so one ASGI callable serves HTTP and Socket.IO.

        Requests under the Socket.IO path go to the Socket.IO server, and
        everything else, lifespan events included, goes to ``app``.

        Args:
            app: The Litestar application this plugin was installed on.

        Returns:
            The combined ASGI application.
        """
        return socketio.ASGIApp(self.sio, other_asgi_app=app, socketio_path=self._config.socketio_path)

    @property
    def config(self) -> PlazaConfig:
        """Get the plugin configuration."""
        return self._config

    @property
    def registry(self) -> ConnectionRegistry:
        """Get the initialized connection registry.

        Raises:
            PluginNotInitializedError: If on_app_init has not been called.
        """
        if self._registry is None:
            raise PluginNotInitializedError("registry")
        return self._registry

    @property
    def sio(self) -> socketio.AsyncServer:
        """Get the initialized Socket.IO server.

        Raises:
            PluginNotInitializedError: If on_app_init has not been called.
        """
        if self._sio is None:
            raise PluginNotInitializedError("sio")
        return self._sio

    @property
    def handler(self) -> SessionSocketHandler:
        """Get the registered session handler.

        Raises:
            PluginNotInitializedError: If on_app_init has not been called.
        """
        if self._handler is None:
            raise PluginNotInitializedError("handler")
        return self._handler
