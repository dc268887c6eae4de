"""Example of consuming a live session without a renderer.

The client connects, prints every event it receives through ``events()``
and walks a short line, sending a pose ten times a second.

Running the Example:
    plaza-server                      # in one terminal
    python examples/headless_client.py
"""

from __future__ import annotations

import asyncio

from plaza_py import ProxyConfig, SessionProxy, Vector3
from plaza_py.core.logging import configure_logging
from plaza_py.realtime import Joined, Left, Moved, Snapshot


async def watch(proxy: SessionProxy) -> None:
    async for event in proxy.events():
        match event:
            case Snapshot(players=players):
                print(f"{len(players)} player(s) present")
            case Joined(player=player):
                print(f"{player.id} joined wearing {player.color}")
            case Moved(update=update):
                print(f"{update.id} -> ({update.position.x:.1f}, {update.position.z:.1f})")
            case Left(player_id=player_id):
                print(f"{player_id} left")


async def main() -> None:
    configure_logging(debug=False)
    proxy = SessionProxy(
        ProxyConfig(url="http://localhost:3000"),
        notifier=lambda notice: print(notice.message),
    )
    watcher = asyncio.create_task(watch(proxy))
    await asyncio.sleep(0)

    if await proxy.connect():
        for step in range(50):
            await proxy.send_movement(Vector3(x=step * 0.1, y=0.0, z=0.0), facing=0.0)
            await asyncio.sleep(0.1)

    await proxy.close()
    await watcher


if __name__ == "__main__":
    asyncio.run(main())
