"""StockSync CLI — run the server, watch the live feed, inspect the shop.

Usage:
    stocksync serve                          # API + Socket.IO on :3000
    stocksync watch --role owner --name Asha # Live terminal: notices + stock table
    stocksync inventory                      # Current stock
    stocksync bills                          # Recent bills, newest first
    stocksync seed                           # Load the sample catalogue
    stocksync channels                       # Who is connected right now
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import os
import sys
from typing import Optional

import click
import httpx
import structlog

from stocksync import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("STOCKSYNC_SERVER_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the StockSync server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. Click's CliRunner inside an async
    test) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(_cell(row.get(k))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _cell(value) -> str:
    if value is None:
        return "—"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _stock_color(quantity: Optional[int], min_stock: Optional[int]) -> str:
    if quantity is None:
        return "white"
    if quantity == 0:
        return "red"
    if min_stock is not None and quantity <= min_stock:
        return "yellow"
    return "green"


INVENTORY_COLUMNS = [
    ("ID", "id", 4),
    ("Name", "name", 24),
    ("Size", "size", 8),
    ("Unit", "unit", 5),
    ("Qty", "quantity", 7),
    ("Min", "minStock", 6),
    ("Price", "price", 9),
    ("GST%", "gst", 5),
]


def _print_inventory(rows: list[dict]) -> None:
    if not rows:
        click.echo("Inventory is empty. Run `stocksync seed` to load samples.")
        return
    _print_table(rows, INVENTORY_COLUMNS)
    low = [r for r in rows if _stock_color(r.get("quantity"), r.get("minStock")) != "green"]
    for row in low:
        click.secho(
            f"  low stock: {row.get('name')} ({row.get('quantity')} left)",
            fg=_stock_color(row.get("quantity"), row.get("minStock")),
        )


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="stocksync")
def main():
    """StockSync — shared inventory and billing with live terminal updates."""


# ---------------------------------------------------------------------------
# stocksync serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: STOCKSYNC_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: STOCKSYNC_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP API and the Socket.IO hub in one process."""
    import uvicorn

    from stocksync.config import settings

    uvicorn.run(
        "stocksync.main:asgi_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# stocksync watch
# ---------------------------------------------------------------------------


@main.command()
@click.option("--role", type=click.Choice(["owner", "staff"]), default="staff", show_default=True)
@click.option("--name", "user_name", default="terminal", show_default=True, help="Shown to the hub")
@click.option("--url", default=None, help="Server URL (default: STOCKSYNC_SERVER_URL)")
@click.option("--verbose", "-v", is_flag=True, help="Log protocol traffic")
def watch(role: str, user_name: str, url: Optional[str], verbose: bool):
    """Open a live channel and print every change as it lands."""
    _configure_logging(verbose)
    try:
        _run(_watch_impl(role, user_name, url))
    except KeyboardInterrupt:
        click.echo("\nStopped.")


async def _watch_impl(role: str, user_name: str, url: Optional[str]):
    from stocksync.client.connection import status_label
    from stocksync.client.notifications import ConsoleRenderer
    from stocksync.client.reconciler import RenderHooks
    from stocksync.client.session import Session
    from stocksync.client.terminal import build_terminal
    from stocksync.config import Settings

    overrides = {"server_url": url} if url else {}
    settings = Settings(**overrides)

    terminal = None

    def render_inventory():
        rows = [item.to_wire() for item in terminal.store.inventory.snapshot()]
        click.echo()
        _print_inventory(rows)

    def render_sales():
        bills = terminal.store.bills.snapshot()
        click.secho(f"  {len(bills)} bill(s) on record", dim=True)

    def on_status(state):
        click.secho(f"[{status_label(state)}]", fg="cyan")

    terminal = build_terminal(
        settings,
        session=Session(role=role, name=user_name),
        renderer=ConsoleRenderer(),
        hooks=RenderHooks(render_inventory=render_inventory, render_sales=render_sales),
        on_status=on_status,
    )

    click.echo(f"Connecting to {settings.server_url} as {user_name} ({role})...")
    await terminal.connection.open()
    try:
        while True:
            await terminal.connection.wait()
            if not terminal.connection.is_online():
                click.secho("Channel closed. Reopening in 5s (Ctrl-C to quit)...", fg="yellow")
                await asyncio.sleep(5)
                await terminal.connection.open()
    finally:
        await terminal.connection.close()


# ---------------------------------------------------------------------------
# stocksync inventory / bills / seed / channels
# ---------------------------------------------------------------------------


@main.command()
def inventory():
    """Show current stock levels."""
    _run(_inventory_impl())


async def _inventory_impl():
    async with _client() as c:
        r = await c.get("/api/inventory")
        r.raise_for_status()
        _print_inventory(r.json())


@main.command()
@click.option("--limit", "-l", default=20, help="Max bills to show")
def bills(limit: int):
    """Show recent bills, newest first."""
    _run(_bills_impl(limit))


async def _bills_impl(limit: int):
    async with _client() as c:
        r = await c.get("/api/bills")
        r.raise_for_status()
        rows = []
        for bill in r.json()[:limit]:
            rows.append({
                "id": bill["id"],
                "customer": (bill.get("customer") or {}).get("name"),
                "lines": len(bill.get("items") or []),
                "total": bill.get("total"),
                "status": bill.get("paymentStatus"),
                "createdAt": (bill.get("createdAt") or "")[:19],
            })
        if not rows:
            click.echo("No bills yet.")
            return
        _print_table(rows, [
            ("Bill", "id", 5),
            ("Customer", "customer", 20),
            ("Lines", "lines", 5),
            ("Total", "total", 10),
            ("Status", "status", 8),
            ("Created", "createdAt", 19),
        ])


@main.command()
def seed():
    """Load the sample catalogue into an empty inventory."""
    _run(_seed_impl())


async def _seed_impl():
    async with _client() as c:
        r = await c.post("/api/initialize")
        r.raise_for_status()
        added = r.json().get("added", 0)
        if added:
            click.secho(f"Added {added} sample products.", fg="green")
        else:
            click.echo("Inventory already has products; nothing added.")


@main.command()
def channels():
    """List terminals currently holding a live channel."""
    _run(_channels_impl())


async def _channels_impl():
    async with _client() as c:
        r = await c.get("/api/realtime/channels")
        r.raise_for_status()
        data = r.json()
        if not data["channels"]:
            click.echo("No terminals connected.")
            return
        _print_table(data["channels"], [
            ("SID", "sid", 22),
            ("Role", "role", 6),
            ("Name", "name", 16),
            ("State", "state", 10),
            ("Since", "connectedAt", 19),
        ])


if __name__ == "__main__":
    sys.exit(main())
