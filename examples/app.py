"""Minimal example showing plaza-py usage with Litestar.

This example demonstrates how to serve a shared space next to your own
Litestar routes using the plugin system.

The application will:
    - Create a ConnectionRegistry and a Socket.IO server
    - Mount the session API at /api and the health probes at the root
    - Serve the client assets from ./public when that directory exists

Running the Application:
    python examples/app.py

Then visit:
    - http://127.0.0.1:3000/health - Liveness probe
    - http://127.0.0.1:3000/api/sessions - Open sessions

Join as a headless participant from another terminal:
    plaza bot --url http://127.0.0.1:3000 --duration 30
"""

from __future__ import annotations

from litestar import Litestar, get

from plaza_py import ConnectionRegistry, PlazaConfig, PlazaPlugin
from plaza_py.core.logging import configure_logging


@get("/hello")
async def hello(registry: ConnectionRegistry) -> dict[str, int]:
    """Custom route using the injected registry."""
    return {"players": registry.total_connections}


configure_logging(debug=True)

plugin = PlazaPlugin(
    PlazaConfig(
        # Smaller spawn square than the default
        spawn_radius=3.0,
        # Only allow the local dev client to connect
        cors_allowed_origins=["http://127.0.0.1:3000", "http://localhost:3000"],
    )
)

# Socket.IO requests are answered by the wrapper, everything else by Litestar
app = plugin.asgi_app(Litestar(route_handlers=[hello], plugins=[plugin], debug=True))

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=3000,
        log_level="info",
    )
