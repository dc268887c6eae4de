"""CLI commands for plaza-py.

Adds a headless participant for exercising a running server and a helper
to inspect its open sessions.
"""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING

import httpx
import rich_click as click
from litestar.plugins import CLIPluginProtocol
from rich.console import Console
from rich.table import Table

from plaza_py.core.logging import configure_logging
from plaza_py.core.models import Vector3
from plaza_py.realtime.proxy import CallbackListener, ProxyConfig, SessionProxy

if TYPE_CHECKING:
    from collections.abc import Iterable

    from click import Group

    from plaza_py.core.models import SessionRecord

console = Console()


def circle_pose(elapsed: float, radius: float, speed: float) -> tuple[Vector3, float]:
    """Pose of a participant walking a circle around the origin.

    Args:
        elapsed: Seconds since the walk started.
        radius: Circle radius.
        speed: Angular speed in radians per second.

    Returns:
        Position on the circle and a facing tangent to it.
    """
    angle = elapsed * speed
    position = Vector3(x=math.cos(angle) * radius, y=0.0, z=math.sin(angle) * radius)
    return position, angle + math.pi / 2


def sessions_table(rows: Iterable[dict], title: str, own_id: str | None = None) -> Table:
    """Render wire-format session records as a rich table."""
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Color", style="magenta")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Z", justify="right")
    table.add_column("Facing", justify="right", style="cyan")

    for row in rows:
        session_id = str(row["id"])
        label = f"{session_id} (you)" if own_id is not None and session_id == own_id else session_id
        table.add_row(
            label,
            str(row.get("color", "-")),
            f"{row['x']:.2f}",
            f"{row['y']:.2f}",
            f"{row['z']:.2f}",
            f"{row.get('rotationY', 0.0):.2f}",
        )
    return table


@click.group(name="plaza", help="Live session tools.")
def plaza_group() -> None:
    """Live session tools."""


@plaza_group.command(name="bot", help="Join a server as a headless participant walking in a circle.")
@click.option("--url", "-u", default="http://localhost:3000", help="Server base URL")
@click.option("--duration", "-d", default=10.0, type=float, help="Seconds to stay connected")
@click.option("--rate", "-r", default=20.0, type=float, help="Movement updates per second")
@click.option("--radius", default=3.0, type=float, help="Radius of the walked circle")
@click.option("--speed", default=1.0, type=float, help="Angular speed in radians per second")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging")
def run_bot(url: str, duration: float, rate: float, radius: float, speed: float, debug: bool) -> None:  # noqa: FBT001
    """Join a server as a headless participant walking in a circle."""
    configure_logging(debug=debug)
    asyncio.run(_bot(url, duration=duration, rate=rate, radius=radius, speed=speed))


async def _bot(url: str, *, duration: float, rate: float, radius: float, speed: float) -> None:
    counts = {"joined": 0, "moved": 0, "left": 0}

    def on_new_player(player: SessionRecord) -> None:
        counts["joined"] += 1
        console.print(f"[green]+[/green] {player.id} joined")

    def on_player_moved(_update: object) -> None:
        counts["moved"] += 1

    def on_player_disconnected(player_id: str) -> None:
        counts["left"] += 1
        console.print(f"[red]-[/red] {player_id} left")

    listener = CallbackListener(
        new_player=on_new_player,
        player_moved=on_player_moved,
        player_disconnected=on_player_disconnected,
    )
    proxy = SessionProxy(
        ProxyConfig(url=url),
        listener,
        notifier=lambda notice: console.print(f"[bold red]{notice.message}[/bold red]"),
    )

    if not await proxy.connect():
        return

    console.print(f"Connected as [cyan]{proxy.player_id}[/cyan]")
    loop = asyncio.get_running_loop()
    started = loop.time()
    interval = 1.0 / rate if rate > 0 else 1.0
    try:
        while (elapsed := loop.time() - started) < duration:
            position, facing = circle_pose(elapsed, radius, speed)
            await proxy.send_movement(position, facing)
            await asyncio.sleep(interval)
    finally:
        rows = [record.to_dict() for record in proxy.players.values()]
        await proxy.close()

    console.print(sessions_table(rows, title=f"Players seen ({len(rows)})", own_id=proxy.player_id))
    console.print(f"joined={counts['joined']} moved={counts['moved']} left={counts['left']}")


@plaza_group.command(name="sessions", help="List the open sessions of a running server.")
@click.option("--url", "-u", default="http://localhost:3000", help="Server base URL")
@click.option("--api-path", default="/api", help="Base path of the session API")
def list_sessions(url: str, api_path: str) -> None:
    """List the open sessions of a running server."""
    try:
        response = httpx.get(f"{url.rstrip('/')}{api_path}/sessions", timeout=5.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[bold red]Could not fetch sessions:[/bold red] {e}")
        raise SystemExit(1) from e

    rows = response.json()
    console.print(sessions_table(rows, title=f"Open sessions ({len(rows)})"))


@plaza_group.command(name="serve", help="Run the plaza server (HTTP and Socket.IO on one port).")
@click.option("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
@click.option("--port", "-p", default=None, type=int, help="TCP port (default: PORT or 3000)")
def serve(host: str | None, port: int | None) -> None:
    """Run the plaza server."""
    import uvicorn

    from plaza_py.app import create_asgi_app
    from plaza_py.plugin import PlazaConfig

    config = PlazaConfig.from_env()
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port

    uvicorn.run(create_asgi_app(config), host=config.host, port=config.port)


class PlazaCLIPlugin(CLIPluginProtocol):
    """Registers the ``plaza`` command group on the Litestar CLI."""

    def on_cli_init(self, cli: Group) -> None:
        """Add the command group.

        Args:
            cli: The root Litestar CLI group.
        """
        cli.add_command(plaza_group)
