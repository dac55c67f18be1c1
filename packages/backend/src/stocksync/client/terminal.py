"""Wire a complete terminal from settings."""

from dataclasses import dataclass
from typing import Optional

from stocksync.client.connection import ConnectionManager, ReconnectPolicy, StatusListener
from stocksync.client.http import http_refresher
from stocksync.client.notifications import NotificationPresenter, Renderer
from stocksync.client.reconciler import Reconciler, RenderHooks
from stocksync.client.session import Session, static_session
from stocksync.client.store import SyncStore
from stocksync.config import Settings


@dataclass
class Terminal:
    store: SyncStore
    reconciler: Reconciler
    presenter: NotificationPresenter
    connection: ConnectionManager


def build_terminal(
    settings: Settings,
    session: Optional[Session] = None,
    renderer: Optional[Renderer] = None,
    hooks: Optional[RenderHooks] = None,
    on_status: Optional[StatusListener] = None,
) -> Terminal:
    store = SyncStore()
    provider = static_session(session)
    presenter = NotificationPresenter(
        renderer=renderer,
        duration=settings.notification_duration_seconds,
        transition=settings.notification_transition_seconds,
    )
    reconciler = Reconciler(store=store, hooks=hooks, presenter=presenter, session=provider)
    connection = ConnectionManager(
        settings.server_url,
        reconciler,
        presenter=presenter,
        policy=ReconnectPolicy.from_settings(settings),
        session=provider,
        refresher=http_refresher(settings.server_url) if settings.refresh_on_reconnect else None,
        on_status=on_status,
        socketio_path=settings.socketio_path,
    )
    return Terminal(store=store, reconciler=reconciler, presenter=presenter, connection=connection)
