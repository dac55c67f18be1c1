"""Terminal client — the staff/owner side of the live channel.

Learn: Four pieces, wired together by `build_terminal()`:
1. SyncStore — the local inventory and bill log (read-only to callers)
2. Reconciler — the only writer to the store, driven by protocol events
3. NotificationPresenter — short-lived feedback, never blocks a merge
4. ConnectionManager — one Socket.IO channel, reconnects on its own
"""

from stocksync.client.connection import ConnectionManager, ConnectionState, ReconnectPolicy
from stocksync.client.notifications import (
    ConsoleRenderer,
    Notification,
    NotificationPresenter,
    Severity,
)
from stocksync.client.reconciler import Reconciler, RenderHooks
from stocksync.client.session import Session
from stocksync.client.store import BillLog, InventoryStore, SyncStore
from stocksync.client.terminal import Terminal, build_terminal

__all__ = [
    "BillLog",
    "ConnectionManager",
    "ConnectionState",
    "ConsoleRenderer",
    "InventoryStore",
    "Notification",
    "NotificationPresenter",
    "ReconnectPolicy",
    "Reconciler",
    "RenderHooks",
    "Session",
    "Severity",
    "SyncStore",
    "Terminal",
    "build_terminal",
]
