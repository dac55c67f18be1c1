"""Broadcast hub — the single fan-out point for committed mutations.

Learn: One Socket.IO server per process. Services call the hub only after
their database commit has been observed, and the hub emits one event to
every connected channel, the committing terminal's own channel included.
There is no per-role routing: `user:register` only annotates the channel
record so operators can see who is connected.

Fan-out is single-process on purpose. Sends to a channel that has just
closed are dropped by the transport rather than raised.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import socketio
import structlog
from pydantic import ValidationError

from stocksync.realtime import protocol
from stocksync.realtime.protocol import Bill, InventoryItem, UserRegister

logger = structlog.get_logger()


class ChannelState(str, Enum):
    # A Socket.IO sid never resumes: a reconnecting terminal arrives under a
    # new sid, so a record goes connected → closed and is then dropped.
    CONNECTED = "connected"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChannelRecord:
    """Diagnostics-only view of one connected terminal."""

    sid: str
    state: ChannelState = ChannelState.CONNECTED
    role: Optional[str] = None
    name: Optional[str] = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    registered_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sid": self.sid,
            "state": self.state.value,
            "role": self.role,
            "name": self.name,
            "connectedAt": self.connected_at.isoformat(),
            "registeredAt": self.registered_at.isoformat() if self.registered_at else None,
        }


def build_server() -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins="*",
        logger=False,
        engineio_logger=False,
    )


class BroadcastHub:
    """Owns the Socket.IO server and the per-channel records."""

    def __init__(self, sio: Optional[socketio.AsyncServer] = None):
        self.sio = sio or build_server()
        self._channels: dict[str, ChannelRecord] = {}
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on(protocol.USER_REGISTER, self.on_register)

    # ─── Channel lifecycle ──────────────────────────────

    async def on_connect(self, sid: str, environ: dict, auth: Any = None) -> None:
        # No handshake payload; the channel is broadcast-eligible at once.
        self._channels[sid] = ChannelRecord(sid=sid)
        logger.info("realtime.channel_connected", sid=sid, channels=len(self._channels))

    async def on_disconnect(self, sid: str, reason: Any = None) -> Optional[ChannelRecord]:
        """Close the channel's record and drop it. Returns the closed record."""
        record = self._channels.pop(sid, None)
        closed = replace(record, state=ChannelState.CLOSED) if record else None
        logger.info(
            "realtime.channel_closed",
            sid=sid,
            role=closed.role if closed else None,
            name=closed.name if closed else None,
            reason=str(reason) if reason is not None else None,
            channels=len(self._channels),
        )
        return closed

    async def on_register(self, sid: str, data: Any) -> None:
        """Attach `{role, name}` to the channel. Advisory only."""
        record = self._channels.get(sid)
        if record is None:
            logger.warning("realtime.register_unknown_channel", sid=sid)
            return
        try:
            identity = UserRegister.model_validate(data)
        except ValidationError as e:
            logger.warning("realtime.register_malformed", sid=sid, error=str(e))
            return
        self._channels[sid] = replace(
            record,
            role=identity.role,
            name=identity.name,
            registered_at=datetime.now(timezone.utc),
        )
        logger.info("realtime.channel_registered", sid=sid, role=identity.role, name=identity.name)

    def channels(self) -> list[ChannelRecord]:
        return list(self._channels.values())

    def get_channel(self, sid: str) -> Optional[ChannelRecord]:
        return self._channels.get(sid)

    # ─── Fan-out ────────────────────────────────────────

    async def broadcast(self, kind: str, payload: dict[str, Any]) -> None:
        """Emit one event to every connected channel.

        The caller has already committed; a failed emit is logged and
        swallowed so the write is never reported as failed.
        """
        try:
            await self.sio.emit(kind, payload)
        except Exception:
            logger.exception("realtime.broadcast_failed", kind=kind)
            return
        logger.debug("realtime.broadcast", kind=kind, channels=len(self._channels))

    async def inventory_added(self, item: InventoryItem) -> None:
        await self.broadcast(protocol.INVENTORY_UPDATED, protocol.inventory_added(item))

    async def inventory_changed(self, item: InventoryItem) -> None:
        await self.broadcast(protocol.INVENTORY_UPDATED, protocol.inventory_changed(item))

    async def inventory_removed(self, item_id: int) -> None:
        await self.broadcast(protocol.INVENTORY_UPDATED, protocol.inventory_removed(item_id))

    async def broadcast_inventory(self, inventory: list[InventoryItem]) -> None:
        await self.broadcast(protocol.INVENTORY_REFRESH, protocol.inventory_refresh(inventory))

    async def bill_created(self, bill: Bill, inventory: list[InventoryItem]) -> None:
        """Announce the sale, then the stock it consumed — always in that order."""
        await self.broadcast(protocol.BILL_CREATED, protocol.bill_created(bill))
        await self.broadcast(protocol.INVENTORY_REFRESH, protocol.inventory_refresh(inventory))


# Process-wide hub (mounted by stocksync.main)
hub = BroadcastHub()


def get_hub() -> BroadcastHub:
    """FastAPI dependency — overridable in tests."""
    return hub
