"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, the
database answers, and reports how many terminals hold a live channel.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from stocksync import __version__
from stocksync.db.engine import get_db
from stocksync.realtime.hub import BroadcastHub, get_hub

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    hub: BroadcastHub = Depends(get_hub),
):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"

    return {"status": status, "channels": len(hub.channels()), **checks}
