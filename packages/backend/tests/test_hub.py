"""Broadcast hub tests — channel records and fan-out."""

from unittest.mock import AsyncMock

import pytest

from stocksync.realtime.hub import ChannelState
from stocksync.realtime.protocol import Bill, InventoryItem


@pytest.mark.asyncio
async def test_channel_lifecycle(hub):
    await hub.on_connect("sid-1", {})
    record = hub.get_channel("sid-1")
    assert record.state is ChannelState.CONNECTED
    assert record.role is None

    await hub.on_register("sid-1", {"role": "staff", "name": "Kiran"})
    closed = await hub.on_disconnect("sid-1", "transport close")

    assert closed.state is ChannelState.CLOSED
    assert closed.name == "Kiran"
    assert hub.get_channel("sid-1") is None
    assert hub.channels() == []


@pytest.mark.asyncio
async def test_disconnect_of_unknown_channel_is_harmless(hub):
    assert await hub.on_disconnect("sid-never-seen") is None


@pytest.mark.asyncio
async def test_register_annotates_channel(hub):
    await hub.on_connect("sid-1", {})
    await hub.on_register("sid-1", {"role": "owner", "name": "Asha"})

    data = hub.get_channel("sid-1").to_dict()
    assert data["role"] == "owner"
    assert data["name"] == "Asha"
    assert data["registeredAt"] is not None


@pytest.mark.asyncio
async def test_register_is_optional_and_tolerant(hub):
    await hub.on_connect("sid-1", {})
    await hub.on_register("sid-1", {"role": "owner"})  # missing name
    await hub.on_register("sid-ghost", {"role": "staff", "name": "Kiran"})

    assert hub.get_channel("sid-1").role is None
    assert hub.get_channel("sid-ghost") is None


@pytest.mark.asyncio
async def test_bill_created_then_refresh(hub, broadcasts):
    bill = Bill(id=10, total=500.0)
    inventory = [InventoryItem(id=1, quantity=995)]

    await hub.bill_created(bill, inventory)

    kinds = [kind for kind, _ in broadcasts()]
    assert kinds == ["bill:created", "inventory:refresh"]
    assert broadcasts()[1][1] == {"inventory": [InventoryItem(id=1, quantity=995).to_wire()]}


@pytest.mark.asyncio
async def test_emit_failure_is_swallowed(hub):
    hub.sio.emit = AsyncMock(side_effect=RuntimeError("transport gone"))

    await hub.inventory_removed(3)

    hub.sio.emit.assert_awaited_once_with("inventory:updated", {"action": "delete", "itemId": 3})


@pytest.mark.asyncio
async def test_channels_endpoint(client, hub):
    await hub.on_connect("sid-1", {})
    await hub.on_register("sid-1", {"role": "staff", "name": "Kiran"})

    resp = await client.get("/api/realtime/channels")

    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 1
    assert data["channels"][0]["name"] == "Kiran"
    assert data["channels"][0]["state"] == "connected"
