"""API route aggregation.

All routers registered here get mounted in main.py under /api, matching
the paths the billing screens already call. Authentication is handled
upstream of this service, so no router carries auth dependencies.
"""

from fastapi import APIRouter

from stocksync.api.bills import router as bills_router
from stocksync.api.health import router as health_router
from stocksync.api.inventory import router as inventory_router
from stocksync.api.realtime import router as realtime_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(inventory_router, tags=["inventory"])
api_router.include_router(bills_router, tags=["bills"])
api_router.include_router(realtime_router, tags=["realtime"])
