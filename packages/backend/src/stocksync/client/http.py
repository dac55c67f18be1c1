"""HTTP helpers for terminals — snapshot fetches over the REST API.

The channel never replays missed events, so a terminal that has been
offline asks the API for the current inventory and bill list on every
(re)connect and hands the result to `Reconciler.resync`.
"""

import httpx

from stocksync.client.connection import Refresher
from stocksync.realtime.protocol import Bill, InventoryItem


def _client(base_url: str, timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)


async def fetch_inventory(http: httpx.AsyncClient) -> list[InventoryItem]:
    resp = await http.get("/api/inventory")
    resp.raise_for_status()
    return [InventoryItem.model_validate(row) for row in resp.json()]


async def fetch_bills(http: httpx.AsyncClient) -> list[Bill]:
    resp = await http.get("/api/bills")
    resp.raise_for_status()
    return [Bill.model_validate(row) for row in resp.json()]


def http_refresher(base_url: str, timeout: float = 10.0) -> Refresher:
    """Build a refresher that pulls both snapshots from the API."""

    async def refresh() -> tuple[list[InventoryItem], list[Bill]]:
        async with _client(base_url, timeout) as http:
            inventory = await fetch_inventory(http)
            bills = await fetch_bills(http)
        return inventory, bills

    return refresh
