"""Inventory API routes.

Learn: Routes handle HTTP concerns (status codes, 404s) and delegate to
InventoryService, which commits and then broadcasts. A successful response
therefore means every connected terminal has already been sent the event.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from stocksync.db.engine import get_db
from stocksync.realtime.hub import BroadcastHub, get_hub
from stocksync.realtime.protocol import InventoryItem
from stocksync.schemas.inventory import InventoryItemCreate, InventoryItemUpdate
from stocksync.services.inventory_service import (
    InventoryItemNotFoundError,
    InventoryService,
)

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    hub: BroadcastHub = Depends(get_hub),
) -> InventoryService:
    return InventoryService(db, hub)


@router.get("/inventory", response_model=list[InventoryItem])
async def list_inventory(svc: InventoryService = Depends(_svc)):
    return await svc.list_items()


@router.get("/inventory/{item_id}", response_model=InventoryItem)
async def get_inventory_item(item_id: int, svc: InventoryService = Depends(_svc)):
    try:
        return await svc.get_item(item_id)
    except InventoryItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/inventory", response_model=InventoryItem, status_code=201)
async def create_inventory_item(
    body: InventoryItemCreate,
    svc: InventoryService = Depends(_svc),
):
    """Add a product. Broadcasts `inventory:updated` (add)."""
    return await svc.create_item(body)


@router.put("/inventory/{item_id}", response_model=InventoryItem)
async def update_inventory_item(
    item_id: int,
    body: InventoryItemUpdate,
    svc: InventoryService = Depends(_svc),
):
    """Edit a product. Broadcasts `inventory:updated` (update)."""
    try:
        return await svc.update_item(item_id, body)
    except InventoryItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/inventory/{item_id}")
async def delete_inventory_item(item_id: int, svc: InventoryService = Depends(_svc)):
    """Remove a product. Broadcasts `inventory:updated` (delete)."""
    try:
        await svc.delete_item(item_id)
    except InventoryItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}


@router.post("/initialize")
async def initialize(svc: InventoryService = Depends(_svc)):
    """Seed the sample catalogue when the inventory table is empty."""
    added = await svc.seed_samples()
    return {"success": True, "added": added, "message": "Database initialized"}
