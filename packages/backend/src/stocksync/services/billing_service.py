"""Billing service — bill CRUD and the stock draw-down a sale causes.

Learn: Creating a bill touches two tables in one transaction: the bill row
is inserted and every referenced product's quantity drops. Once that
commit is observed the hub sends `bill:created` followed by a full
`inventory:refresh`, because the terminals have no other way to learn the
new stock levels.

Bill edits and deletions are bookkeeping corrections; they are not
broadcast and do not give stock back.
"""

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stocksync.db import models
from stocksync.realtime.hub import BroadcastHub
from stocksync.realtime.protocol import Bill, InventoryItem
from stocksync.schemas.bill import BillCreate, BillUpdate

logger = structlog.get_logger()


class BillNotFoundError(Exception):
    """Raised when a bill id does not exist."""


class InsufficientStockError(Exception):
    """Raised when a bill line asks for more than is in stock."""


class InvalidBillLineError(Exception):
    """Raised when a stocked line carries a quantity that is not a positive whole number."""


class BillingService:
    """Business logic for sales."""

    def __init__(self, db: AsyncSession, hub: BroadcastHub):
        self.db = db
        self.hub = hub

    async def list_bills(self) -> list[Bill]:
        result = await self.db.execute(select(models.Bill).order_by(models.Bill.id.desc()))
        return [Bill.model_validate(row) for row in result.scalars().all()]

    async def create_bill(self, data: BillCreate) -> Bill:
        row = models.Bill()
        self._apply(row, data)
        self.db.add(row)
        try:
            await self._draw_down_stock(data.items)
        except (InsufficientStockError, InvalidBillLineError):
            await self.db.rollback()
            raise
        await self.db.commit()
        await self.db.refresh(row)

        bill = Bill.model_validate(row)
        logger.info("bill.created", bill_id=bill.id, total=bill.total, lines=len(bill.items))

        inventory = await self._snapshot_inventory()
        await self.hub.bill_created(bill, inventory)
        return bill

    async def update_bill(self, bill_id: int, data: BillUpdate) -> Bill:
        row = await self._get_row(bill_id)
        self._apply(row, data)
        await self.db.commit()
        await self.db.refresh(row)
        logger.info("bill.updated", bill_id=bill_id)
        return Bill.model_validate(row)

    async def delete_bill(self, bill_id: int) -> None:
        row = await self._get_row(bill_id)
        await self.db.delete(row)
        await self.db.commit()
        logger.info("bill.deleted", bill_id=bill_id)

    # ─── Internals ──────────────────────────────────────

    @staticmethod
    def _apply(row: models.Bill, data: BillCreate) -> None:
        row.set_customer(data.customer.model_dump())
        row.items = list(data.items)
        row.subtotal = data.subtotal
        row.gst_breakdown = dict(data.gst_breakdown)
        row.total_gst = data.total_gst
        row.total = data.total
        row.payment_status = data.payment_status
        row.payment_tracking = dict(data.payment_tracking or {})

    async def _draw_down_stock(self, lines: list[dict[str, Any]]) -> None:
        for line in lines:
            item_id = line.get("id")
            quantity = line.get("quantity")
            if not isinstance(item_id, int) or isinstance(item_id, bool):
                continue
            product = await self.db.get(models.InventoryItem, item_id)
            if product is None:
                # Free-text line (e.g. a service charge), nothing to draw down.
                continue
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise InvalidBillLineError(
                    f"{product.name}: quantity must be a positive whole number, got {quantity!r}"
                )
            if quantity > product.quantity:
                raise InsufficientStockError(
                    f"{product.name}: requested {quantity}, {product.quantity} in stock"
                )
            product.quantity = product.quantity - quantity

    async def _snapshot_inventory(self) -> list[InventoryItem]:
        result = await self.db.execute(
            select(models.InventoryItem).order_by(models.InventoryItem.id)
        )
        return [InventoryItem.model_validate(row) for row in result.scalars().all()]

    async def _get_row(self, bill_id: int) -> models.Bill:
        row = await self.db.get(models.Bill, bill_id)
        if row is None:
            raise BillNotFoundError(f"Bill {bill_id} not found")
        return row
