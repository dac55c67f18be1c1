"""Bill API routes.

Learn: Only bill creation is broadcast (`bill:created` then
`inventory:refresh`). Edits and deletions are back-office corrections.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from stocksync.db.engine import get_db
from stocksync.realtime.hub import BroadcastHub, get_hub
from stocksync.realtime.protocol import Bill
from stocksync.schemas.bill import BillCreate, BillUpdate
from stocksync.services.billing_service import (
    BillingService,
    BillNotFoundError,
    InsufficientStockError,
    InvalidBillLineError,
)

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    hub: BroadcastHub = Depends(get_hub),
) -> BillingService:
    return BillingService(db, hub)


@router.get("/bills", response_model=list[Bill])
async def list_bills(svc: BillingService = Depends(_svc)):
    """All bills, newest first."""
    return await svc.list_bills()


@router.post("/bills", response_model=Bill, status_code=201)
async def create_bill(body: BillCreate, svc: BillingService = Depends(_svc)):
    try:
        return await svc.create_bill(body)
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidBillLineError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.put("/bills/{bill_id}", response_model=Bill)
async def update_bill(bill_id: int, body: BillUpdate, svc: BillingService = Depends(_svc)):
    try:
        return await svc.update_bill(bill_id, body)
    except BillNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/bills/{bill_id}")
async def delete_bill(bill_id: int, svc: BillingService = Depends(_svc)):
    try:
        await svc.delete_bill(bill_id)
    except BillNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}
