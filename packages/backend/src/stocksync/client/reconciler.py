"""Reconciler — applies protocol events to the terminal's local store.

Learn: Every event may arrive twice (our own write echoed back, a
reconnect overlapping a refresh) or out of order relative to another
terminal's write. The merge rules are therefore keyed on id and
idempotent:

    inventory:updated add     insert only if the id is new
    inventory:updated update  replace in place, no-op if the id is unknown
    inventory:updated delete  remove, no-op if the id is unknown
    inventory:refresh         replace the whole snapshot (never merged)
    bill:created              prepend only if the id is new

A snapshot fetched after a reconnect replaces the inventory; inventory
events that landed while it was in flight are replayed on top of it.

Render hooks run after the merge has fully landed and only when something
changed; notifications are queued after rendering. Unknown event names are
ignored, malformed payloads are dropped with a diagnostic. Nothing here
raises into the channel.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from stocksync.client.notifications import NotificationPresenter, Severity
from stocksync.client.session import SessionProvider, no_session
from stocksync.client.store import SyncStore
from stocksync.realtime import protocol
from stocksync.realtime.protocol import (
    Bill,
    BillCreated,
    Event,
    InventoryAction,
    InventoryItem,
    InventoryRefresh,
    InventoryUpdated,
    MalformedEventError,
    UnknownEventError,
)

logger = structlog.get_logger()

Hook = Callable[[], None]

_INVENTORY_EVENTS = (protocol.INVENTORY_UPDATED, protocol.INVENTORY_REFRESH)


@dataclass
class RenderHooks:
    """Optional view callbacks. Unset hooks are skipped."""

    render_inventory: Optional[Hook] = None
    update_product_select: Optional[Hook] = None
    render_sales: Optional[Hook] = None


@dataclass(frozen=True)
class Diagnostic:
    """Record of an event that was dropped instead of applied."""

    kind: str
    reason: str
    payload: Any = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Reconciler:
    """Single writer for a SyncStore."""

    def __init__(
        self,
        store: Optional[SyncStore] = None,
        hooks: Optional[RenderHooks] = None,
        presenter: Optional[NotificationPresenter] = None,
        session: SessionProvider = no_session,
        max_diagnostics: int = 100,
    ):
        self.store = store or SyncStore()
        self.hooks = hooks or RenderHooks()
        self.presenter = presenter
        self.session = session
        self.diagnostics: deque[Diagnostic] = deque(maxlen=max_diagnostics)
        # Inventory events seen while a snapshot fetch is in flight.
        self._pending: Optional[list[Event]] = None

    # ─── Entry points ───────────────────────────────────

    def apply(self, kind: str, payload: Any) -> bool:
        """Validate and apply one raw event. Returns True if state changed."""
        try:
            event = protocol.parse_event(kind, payload)
        except UnknownEventError:
            logger.debug("sync.unknown_event", kind=kind)
            return False
        except MalformedEventError as e:
            self._drop(kind, e.reason, payload)
            return False
        return self.apply_event(event)

    def apply_event(self, event: Event) -> bool:
        if self._pending is not None and event.kind in _INVENTORY_EVENTS:
            self._pending.append(event)
        if event.kind == protocol.INVENTORY_UPDATED:
            return self._inventory_updated(event.payload)
        if event.kind == protocol.INVENTORY_REFRESH:
            return self._inventory_refresh(event.payload)
        if event.kind == protocol.BILL_CREATED:
            return self._bill_created(event.payload)
        # user:register is client → server; a terminal never applies it.
        logger.debug("sync.ignored_event", kind=event.kind)
        return False

    def begin_resync(self) -> None:
        """Start recording live inventory events ahead of a snapshot fetch."""
        if self._pending is None:
            self._pending = []

    def abort_resync(self) -> None:
        self._pending = None

    def resync(self, inventory: list[InventoryItem], bills: list[Bill]) -> None:
        """Heal after a gap: authoritative stock, plus any bills we missed.

        The snapshot may be older than events applied while it was being
        fetched, so those events are replayed on top of it.
        """
        pending, self._pending = self._pending or [], None
        self.store.inventory._reset(inventory)
        for event in pending:
            self._replay(event)
        self._render_inventory()
        added = self.store.bills._merge(bills)
        if added:
            self._run_hook(self.hooks.render_sales, "render_sales")
        logger.info(
            "sync.resynced",
            items=len(self.store.inventory),
            replayed=len(pending),
            bills_added=added,
        )

    # ─── Merge rules ────────────────────────────────────

    def _inventory_updated(self, payload: InventoryUpdated) -> bool:
        inventory = self.store.inventory

        if payload.action is InventoryAction.ADD:
            item = payload.item
            if not inventory._insert(item):
                logger.debug("sync.duplicate_add", item_id=item.id)
                return False
            self._render_inventory()
            self._notify("New Product Added", f"{item.name} added to inventory")
            return True

        if payload.action is InventoryAction.UPDATE:
            item = payload.item
            if inventory._replace(item) is None:
                logger.debug("sync.update_unknown_item", item_id=item.id)
                return False
            self._render_inventory()
            self._notify("Product Updated", f"{item.name} has been updated")
            return True

        removed = inventory._remove(payload.item_id)
        if removed is None:
            logger.debug("sync.delete_unknown_item", item_id=payload.item_id)
            return False
        self._render_inventory()
        self._notify("Product Removed", f"{removed.name} removed from inventory")
        return True

    def _inventory_refresh(self, payload: InventoryRefresh, announce: bool = True) -> bool:
        self.store.inventory._reset(payload.inventory)
        self._render_inventory()
        if announce and self._viewer_is_owner():
            self._notify("Stock Updated", "Inventory updated after sale")
        return True

    def _bill_created(self, payload: BillCreated) -> bool:
        bill = payload.bill
        if not self.store.bills._prepend(bill):
            logger.debug("sync.duplicate_bill", bill_id=bill.id)
            return False
        self._run_hook(self.hooks.render_sales, "render_sales")
        if self._viewer_is_owner():
            self._notify("New Sale!", describe_sale(bill), Severity.SUCCESS)
        return True

    def _replay(self, event: Event) -> None:
        """Re-apply a recorded inventory event to the store, without side effects."""
        inventory = self.store.inventory
        if event.kind == protocol.INVENTORY_REFRESH:
            inventory._reset(event.payload.inventory)
            return
        payload = event.payload
        if payload.action is InventoryAction.ADD:
            inventory._insert(payload.item)
        elif payload.action is InventoryAction.UPDATE:
            inventory._replace(payload.item)
        else:
            inventory._remove(payload.item_id)

    # ─── Side effects ───────────────────────────────────

    def _render_inventory(self) -> None:
        self._run_hook(self.hooks.render_inventory, "render_inventory")
        self._run_hook(self.hooks.update_product_select, "update_product_select")

    def _run_hook(self, hook: Optional[Hook], name: str) -> None:
        if hook is None:
            return
        try:
            hook()
        except Exception:
            logger.exception("sync.render_hook_failed", hook=name)

    def _notify(self, title: str, message: str, severity: Severity = Severity.INFO) -> None:
        if self.presenter is not None:
            self.presenter.show(title, message, severity)

    def _viewer_is_owner(self) -> bool:
        session = self.session()
        return session is not None and session.is_owner

    def _drop(self, kind: str, reason: str, payload: Any) -> None:
        self.diagnostics.append(Diagnostic(kind=kind, reason=reason, payload=payload))
        logger.warning("sync.event_dropped", kind=kind, reason=reason)


def describe_sale(bill: Bill) -> str:
    """`Bill #10 - ₹500.00 by Ravi`, tolerating missing fields."""
    total = f"₹{bill.total:.2f}" if bill.total is not None else "₹—"
    customer = bill.customer.name if bill.customer and bill.customer.name else "walk-in customer"
    return f"Bill #{bill.id} - {total} by {customer}"
