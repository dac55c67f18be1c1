#!/usr/bin/env python3
"""
Live terminal — watch a second terminal's writes land in your store.

Opens a Socket.IO channel as the shop owner, then makes changes over the
HTTP API as if from another till, and prints the local store after each
event. Nothing here polls: the store only changes through broadcasts.

Run with: python examples/live_terminal.py
Server must be running: stocksync serve
"""

import asyncio

import httpx

from _common import BASE, SERVER, check_backend
from stocksync.client import ConsoleRenderer, RenderHooks, Session, build_terminal
from stocksync.config import Settings


async def main():
    check_backend()

    terminal = None

    def render_inventory():
        rows = terminal.store.inventory.snapshot()
        print("   store: " + ", ".join(f"{i.name}={i.quantity}" for i in rows))

    terminal = build_terminal(
        Settings(server_url=SERVER, notification_duration_seconds=1.0),
        session=Session(role="owner", name="Example"),
        renderer=ConsoleRenderer(),
        hooks=RenderHooks(render_inventory=render_inventory),
    )

    print("\n1. Opening channel...")
    await terminal.connection.open()
    await asyncio.sleep(1)
    if not terminal.connection.is_online():
        print("   Channel did not come up.")
        return

    async with httpx.AsyncClient(base_url=BASE, timeout=10) as api:
        print("\n2. Another till adds a product...")
        item = (await api.post("/inventory", json={"name": "Paver Block", "quantity": 200})).json()
        await asyncio.sleep(0.5)

        print("\n3. Another till sells 25 of them...")
        await api.post("/bills", json={
            "customer": {"name": "Meera"},
            "items": [{"id": item["id"], "quantity": 25}],
            "total": 1250.0,
        })
        await asyncio.sleep(0.5)

        print("\n4. Another till removes it...")
        await api.delete(f"/inventory/{item['id']}")
        await asyncio.sleep(0.5)

    bills = terminal.store.bills.snapshot()
    print(f"\nBills seen live: {[b.id for b in bills]}")
    await terminal.connection.close()


if __name__ == "__main__":
    asyncio.run(main())
