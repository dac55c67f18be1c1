"""Event protocol — the closed vocabulary spoken over every channel.

Learn: Four named events plus the transport's own connect/disconnect/
connect_error signals. Payloads are validated with pydantic on the way in,
and dumped camelCase on the way out so browser and Python terminals read
the same JSON.

Delivery contract: every event is fire-and-forget. There are no sequence
numbers and no acks, so a consumer must treat any event as possibly
duplicated, reordered relative to other terminals' writes, or missed
entirely (recoverable only through an `inventory:refresh`).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

# ─── Event names ─────────────────────────────────────────

USER_REGISTER = "user:register"          # client → server
INVENTORY_UPDATED = "inventory:updated"  # server → clients
INVENTORY_REFRESH = "inventory:refresh"  # server → clients
BILL_CREATED = "bill:created"            # server → clients

# Transport signals (raised by the Socket.IO client itself)
CONNECT = "connect"
DISCONNECT = "disconnect"
CONNECT_ERROR = "connect_error"

SERVER_EVENTS = (INVENTORY_UPDATED, INVENTORY_REFRESH, BILL_CREATED)


class InventoryAction(str, Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


# ─── Entities ────────────────────────────────────────────

class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, unknown keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class InventoryItem(WireModel):
    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    hsn: Optional[str] = None
    size: Optional[str] = None
    colour: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[int] = None
    min_stock: Optional[int] = None
    price: Optional[float] = None
    gst: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Customer(WireModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    gst: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None


class Bill(WireModel):
    id: int
    customer: Optional[Customer] = None
    items: list[dict[str, Any]] = Field(default_factory=list)
    subtotal: Optional[float] = None
    gst_breakdown: dict[str, Any] = Field(default_factory=dict)
    total_gst: Optional[float] = Field(default=None, alias="totalGST")
    total: Optional[float] = None
    payment_status: Optional[str] = None
    payment_tracking: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


# ─── Payloads ────────────────────────────────────────────

class UserRegister(WireModel):
    role: str
    name: str


class InventoryUpdated(WireModel):
    action: InventoryAction
    item: Optional[InventoryItem] = None
    item_id: Optional[int] = None

    @model_validator(mode="after")
    def check_action_target(self):
        """add/update carry the entity; delete carries only its id."""
        if self.action is InventoryAction.DELETE:
            if self.item_id is None:
                raise ValueError("delete requires itemId")
        elif self.item is None:
            raise ValueError(f"{self.action.value} requires item")
        return self

    def to_wire(self) -> dict[str, Any]:
        if self.action is InventoryAction.DELETE:
            return {"action": self.action.value, "itemId": self.item_id}
        return {"action": self.action.value, "item": self.item.to_wire()}


class InventoryRefresh(WireModel):
    inventory: list[InventoryItem]


class BillCreated(WireModel):
    bill: Bill


PAYLOAD_MODELS: dict[str, type[WireModel]] = {
    USER_REGISTER: UserRegister,
    INVENTORY_UPDATED: InventoryUpdated,
    INVENTORY_REFRESH: InventoryRefresh,
    BILL_CREATED: BillCreated,
}


# ─── Parsing ─────────────────────────────────────────────

class UnknownEventError(Exception):
    """Raised when an event name is outside the protocol."""


class MalformedEventError(Exception):
    """Raised when a payload does not match its event's schema."""

    def __init__(self, kind: str, reason: str):
        super().__init__(f"{kind}: {reason}")
        self.kind = kind
        self.reason = reason


@dataclass(frozen=True)
class Event:
    """An immutable tagged message: `kind` plus its validated payload."""

    kind: str
    payload: WireModel


def parse_event(kind: str, payload: Any) -> Event:
    """Validate a raw (kind, payload) pair into an Event.

    Raises UnknownEventError for names outside the protocol and
    MalformedEventError when the payload fails validation.
    """
    model = PAYLOAD_MODELS.get(kind)
    if model is None:
        raise UnknownEventError(kind)
    if not isinstance(payload, dict):
        raise MalformedEventError(kind, f"expected object, got {type(payload).__name__}")
    try:
        return Event(kind=kind, payload=model.model_validate(payload))
    except ValidationError as e:
        raise MalformedEventError(kind, _summarize(e)) from e


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


# ─── Builders (server side) ──────────────────────────────

def inventory_added(item: InventoryItem) -> dict[str, Any]:
    return InventoryUpdated(action=InventoryAction.ADD, item=item).to_wire()


def inventory_changed(item: InventoryItem) -> dict[str, Any]:
    return InventoryUpdated(action=InventoryAction.UPDATE, item=item).to_wire()


def inventory_removed(item_id: int) -> dict[str, Any]:
    return InventoryUpdated(action=InventoryAction.DELETE, item_id=item_id).to_wire()


def inventory_refresh(items: list[InventoryItem]) -> dict[str, Any]:
    return {"inventory": [item.to_wire() for item in items]}


def bill_created(bill: Bill) -> dict[str, Any]:
    return {"bill": bill.to_wire()}
