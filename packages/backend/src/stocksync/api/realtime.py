"""Realtime diagnostics — who is connected right now.

Identity comes from the terminals' own `user:register` message and is not
verified; treat it as a label, not as proof of who is at the counter.
"""

from fastapi import APIRouter, Depends

from stocksync.realtime.hub import BroadcastHub, get_hub

router = APIRouter()


@router.get("/realtime/channels")
async def list_channels(hub: BroadcastHub = Depends(get_hub)):
    channels = [record.to_dict() for record in hub.channels()]
    return {"count": len(channels), "channels": channels}
