"""
Shared helpers for StockSync examples.

Checks that the server is up and hands back an httpx client pointed at
the API, so each example can focus on its own workflow.
"""

import os
import sys

import httpx

SERVER = os.environ.get("STOCKSYNC_SERVER_URL", "http://localhost:3000").rstrip("/")
BASE = f"{SERVER}/api"


def check_backend() -> dict:
    """Verify the server is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Server not reachable at {SERVER}")
        print("Start it with:  stocksync serve")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Server health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Channels: {health['channels']} connected")
    return health


def create_client() -> httpx.Client:
    """Check the server and return an httpx Client for the API."""
    check_backend()
    return httpx.Client(base_url=BASE, timeout=10)


def ensure_catalogue(client: httpx.Client) -> list[dict]:
    """Seed the sample products if the inventory is empty; return the inventory."""
    added = client.post("/initialize").json().get("added", 0)
    if added:
        print(f"  Seeded {added} sample products")
    return client.get("/inventory").json()
