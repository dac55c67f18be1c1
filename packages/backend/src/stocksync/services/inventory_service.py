"""Inventory service — stock CRUD with commit-then-broadcast.

Learn: Service layer separates business logic from HTTP routing.
Every write follows the same two steps:
1. await the database commit
2. hand the committed row to the broadcast hub

The hub is only ever reached with data that is already durable, so a
terminal can never render an item that a failed transaction rolled back.
"""

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stocksync.db import models
from stocksync.db.models import utcnow
from stocksync.realtime.hub import BroadcastHub
from stocksync.realtime.protocol import InventoryItem
from stocksync.schemas.inventory import InventoryItemCreate, InventoryItemUpdate

logger = structlog.get_logger()


SAMPLE_INVENTORY = [
    {"name": "Steel Rebar", "description": "TMT Steel Rebar", "hsn": "72142000", "size": "12mm",
     "colour": "Silver", "unit": "kg", "quantity": 1000, "min_stock": 500, "price": 65.00, "gst": 18},
    {"name": "Portland Cement", "description": "OPC 53 Grade Cement", "hsn": "25232900", "size": "50kg",
     "colour": "Grey", "unit": "bag", "quantity": 500, "min_stock": 200, "price": 350.00, "gst": 28},
    {"name": "Plywood", "description": "Commercial Plywood", "hsn": "44121300", "size": "18mm",
     "colour": "Brown", "unit": "pcs", "quantity": 100, "min_stock": 50, "price": 1800.00, "gst": 18},
    {"name": "Concrete Mix", "description": "Ready Mix Concrete", "hsn": "38244090", "size": "M25",
     "colour": "Grey", "unit": "m3", "quantity": 50, "min_stock": 20, "price": 4500.00, "gst": 18},
    {"name": "Plastiwood Deck Board", "description": "Premium composite deck board", "hsn": "39259000",
     "size": "6ft", "colour": "Brown", "unit": "pcs", "quantity": 150, "min_stock": 50, "price": 2500.00,
     "gst": 18},
]


class InventoryItemNotFoundError(Exception):
    """Raised when an inventory id does not exist."""


class InventoryService:
    """Business logic for the shared stock list."""

    def __init__(self, db: AsyncSession, hub: BroadcastHub):
        self.db = db
        self.hub = hub

    # ─── Reads ──────────────────────────────────────────

    async def list_items(self) -> list[InventoryItem]:
        result = await self.db.execute(
            select(models.InventoryItem).order_by(models.InventoryItem.id)
        )
        return [InventoryItem.model_validate(row) for row in result.scalars().all()]

    async def get_item(self, item_id: int) -> InventoryItem:
        row = await self._get_row(item_id)
        return InventoryItem.model_validate(row)

    # ─── Writes ─────────────────────────────────────────

    async def create_item(self, data: InventoryItemCreate) -> InventoryItem:
        row = models.InventoryItem(**data.model_dump())
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)

        item = InventoryItem.model_validate(row)
        logger.info("inventory.created", item_id=item.id, name=item.name)
        await self.hub.inventory_added(item)
        return item

    async def update_item(self, item_id: int, data: InventoryItemUpdate) -> InventoryItem:
        row = await self._get_row(item_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(row, key, value)
        row.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(row)

        item = InventoryItem.model_validate(row)
        logger.info("inventory.updated", item_id=item.id)
        await self.hub.inventory_changed(item)
        return item

    async def delete_item(self, item_id: int) -> None:
        row = await self._get_row(item_id)
        await self.db.delete(row)
        await self.db.commit()

        logger.info("inventory.deleted", item_id=item_id)
        await self.hub.inventory_removed(item_id)

    async def seed_samples(self) -> int:
        """Insert the sample catalogue into an empty table. Returns rows added.

        Seeding is bulk setup, not a terminal-visible edit, so one
        `inventory:refresh` is sent instead of an add per row.
        """
        count = await self.db.scalar(select(func.count()).select_from(models.InventoryItem))
        if count:
            return 0
        self.db.add_all(models.InventoryItem(**sample) for sample in SAMPLE_INVENTORY)
        await self.db.commit()

        logger.info("inventory.seeded", rows=len(SAMPLE_INVENTORY))
        await self.hub.broadcast_inventory(await self.list_items())
        return len(SAMPLE_INVENTORY)

    async def _get_row(self, item_id: int) -> models.InventoryItem:
        row = await self.db.get(models.InventoryItem, item_id)
        if row is None:
            raise InventoryItemNotFoundError(f"Inventory item {item_id} not found")
        return row
