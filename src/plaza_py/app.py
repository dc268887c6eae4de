"""Main application for plaza-py.

This module provides the application factories and the configured ASGI app
for running plaza-py as a standalone server. HTTP and Socket.IO share one
port, read from the ``PORT`` environment variable.

Running the server:
    uvicorn plaza_py.app:app --port 3000
    plaza-server
"""

from __future__ import annotations

import mimetypes

import socketio
from litestar import Litestar

from plaza_py.cli import PlazaCLIPlugin
from plaza_py.core.logging import configure_logging
from plaza_py.plugin import PlazaConfig, PlazaPlugin

# Register MIME types for static file serving (slim images may have incomplete mimetypes)
mimetypes.add_type("text/css", ".css")
mimetypes.add_type("application/javascript", ".js")
mimetypes.add_type("model/gltf-binary", ".glb")
mimetypes.add_type("model/gltf+json", ".gltf")


def create_app(config: PlazaConfig | None = None) -> Litestar:
    """Create and configure the Litestar application.

    Args:
        config: Server configuration. Read from the environment if None.

    Returns:
        Configured Litestar application instance. The Socket.IO endpoint is
        not part of it, see :func:`create_asgi_app`.
    """
    config = config or PlazaConfig.from_env()
    configure_logging(debug=config.debug, json_logs=config.json_logs)

    return Litestar(
        plugins=[PlazaPlugin(config), PlazaCLIPlugin()],
        debug=config.debug,
    )


def create_asgi_app(config: PlazaConfig | None = None) -> socketio.ASGIApp:
    """Create the combined HTTP and Socket.IO application.

    Args:
        config: Server configuration. Read from the environment if None.

    Returns:
        ASGI application serving Socket.IO and the Litestar routes on one port.
    """
    litestar_app = create_app(config)
    return litestar_app.plugins.get(PlazaPlugin).asgi_app(litestar_app)


app = create_asgi_app()


def main() -> None:
    """Run the server with uvicorn on the configured host and port."""
    import uvicorn

    config = PlazaConfig.from_env()
    uvicorn.run(
        create_asgi_app(config),
        host=config.host,
        port=config.port,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
