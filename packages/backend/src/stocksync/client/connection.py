"""Connection manager — one Socket.IO channel per terminal.

Learn: The transport (python-socketio's AsyncClient) owns the retry loop:
exponential backoff from 1s up to 5s, at most 5 attempts. This class only
watches the three transport signals and turns them into state:

    connect        → retries reset, state connected, `user:register` sent,
                     snapshot re-fetched so anything missed offline heals
    disconnect     → state disconnected (transport starts reconnecting)
    connect_error  → retries + 1; at the cap, one terminal "reload" notice

Every transport failure stops here. Reconciliation and rendering never see
an exception from the channel; while offline the terminal keeps working
against its last-known store.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import socketio
import structlog

from stocksync.client.notifications import NotificationPresenter, Severity
from stocksync.client.reconciler import Reconciler
from stocksync.client.session import Session, SessionProvider, no_session
from stocksync.config import Settings
from stocksync.realtime import protocol
from stocksync.realtime.protocol import Bill, InventoryItem

logger = structlog.get_logger()


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ReconnectPolicy:
    auto_reconnect: bool = True
    initial_retry_delay: float = 1.0  # seconds
    max_retry_delay: float = 5.0
    max_retry_attempts: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReconnectPolicy":
        return cls(
            auto_reconnect=settings.reconnection,
            initial_retry_delay=settings.reconnection_delay,
            max_retry_delay=settings.reconnection_delay_max,
            max_retry_attempts=settings.reconnection_attempts,
        )

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for socketio.AsyncClient."""
        return {
            "reconnection": self.auto_reconnect,
            "reconnection_attempts": self.max_retry_attempts,
            "reconnection_delay": self.initial_retry_delay,
            "reconnection_delay_max": self.max_retry_delay,
        }


Refresher = Callable[[], Awaitable[tuple[list[InventoryItem], list[Bill]]]]
StatusListener = Callable[[ConnectionState], None]


class ConnectionManager:
    """Lifecycle, status, and event dispatch for a terminal's channel."""

    def __init__(
        self,
        url: str,
        reconciler: Reconciler,
        presenter: Optional[NotificationPresenter] = None,
        policy: Optional[ReconnectPolicy] = None,
        session: SessionProvider = no_session,
        refresher: Optional[Refresher] = None,
        on_status: Optional[StatusListener] = None,
        on_terminal_failure: Optional[Callable[[], None]] = None,
        client_factory: Callable[..., socketio.AsyncClient] = socketio.AsyncClient,
        socketio_path: str = "socket.io",
    ):
        self.url = url
        self.reconciler = reconciler
        self.presenter = presenter
        self.policy = policy or ReconnectPolicy()
        self.session = session
        self.refresher = refresher
        self.on_status = on_status
        self.on_terminal_failure = on_terminal_failure
        self.client_factory = client_factory
        self.socketio_path = socketio_path

        self._client: Optional[socketio.AsyncClient] = None
        self._state = ConnectionState.DISCONNECTED
        self._retry_count = 0
        self._failure_reported = False
        self._identity: Optional[Session] = None
        self._closing = False

    # ─── Public surface ─────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def identity(self) -> Optional[Session]:
        """Identity registered on the current connection, if any."""
        return self._identity

    def is_online(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    async def open(self) -> None:
        """Establish the channel. A no-op while one is open or retrying.

        After the transport has given up (terminal failure) a fresh call
        starts over with a new client.
        """
        if self._client is not None:
            if not self._failure_reported:
                return
            stale, self._client = self._client, None
            self._closing = True
            try:
                await stale.disconnect()
            except Exception:
                logger.debug("sync.stale_client_close_failed", exc_info=True)

        try:
            client = self.client_factory(
                **self.policy.client_kwargs(),
                logger=False,
                engineio_logger=False,
            )
        except Exception:
            logger.exception("sync.transport_init_failed", url=self.url)
            self._set_state(ConnectionState.DISCONNECTED)
            return

        self._bind(client)
        self._client = client
        self._closing = False
        self._set_state(ConnectionState.CONNECTING)
        logger.info("sync.opening", url=self.url, policy=self.policy.client_kwargs())

        try:
            await client.connect(
                self.url,
                socketio_path=self.socketio_path,
                retry=self.policy.auto_reconnect,
            )
        except Exception as e:
            # Retries (if any) are exhausted; open() may be called again later.
            logger.warning("sync.open_failed", url=self.url, error=str(e))
            self._client = None
            self._set_state(ConnectionState.DISCONNECTED)

    async def close(self) -> None:
        """Explicit teardown. No reconnect follows."""
        client, self._client = self._client, None
        if client is None:
            return
        self._closing = True
        try:
            await client.disconnect()
        except Exception:
            logger.exception("sync.close_failed")
        self._identity = None
        self._set_state(ConnectionState.DISCONNECTED)

    async def wait(self) -> None:
        """Block until the channel is closed for good."""
        if self._client is not None:
            await self._client.wait()

    # ─── Transport signals ──────────────────────────────

    def _bind(self, client: socketio.AsyncClient) -> None:
        client.on(protocol.CONNECT, self._on_connect)
        client.on(protocol.DISCONNECT, self._on_disconnect)
        client.on(protocol.CONNECT_ERROR, self._on_connect_error)
        for kind in protocol.SERVER_EVENTS:
            client.on(kind, self._dispatcher(kind))

    async def _on_connect(self) -> None:
        self._retry_count = 0
        self._failure_reported = False
        self._set_state(ConnectionState.CONNECTED)
        logger.info("sync.connected", url=self.url)
        self._notify("Connected", "Real-time updates enabled", Severity.SUCCESS)

        # Identity lives and dies with this connection.
        self._identity = None
        session = self.session()
        if session is not None and self._client is not None:
            try:
                await self._client.emit(protocol.USER_REGISTER, session.to_register_payload())
                self._identity = session
            except Exception:
                logger.exception("sync.register_failed", role=session.role)

        if self.refresher is not None:
            await self._resync()

    def _on_disconnect(self, reason: Any = None) -> None:
        self._identity = None
        self._set_state(ConnectionState.DISCONNECTED)
        if self._closing:
            logger.info("sync.closed")
            return
        logger.warning("sync.disconnected", reason=str(reason) if reason is not None else None)
        self._notify("Disconnected", "Attempting to reconnect...", Severity.WARNING)

    def _on_connect_error(self, data: Any = None) -> None:
        self._retry_count += 1
        self._set_state(ConnectionState.DISCONNECTED)
        logger.warning(
            "sync.connect_error",
            attempt=self._retry_count,
            max_attempts=self.policy.max_retry_attempts,
            error=str(data) if data is not None else None,
        )
        if self._retry_count >= self.policy.max_retry_attempts and not self._failure_reported:
            self._failure_reported = True
            logger.error("sync.connection_failed", attempts=self._retry_count)
            self._notify("Connection Failed", "Please refresh the page", Severity.ERROR)
            if self.on_terminal_failure is not None:
                try:
                    self.on_terminal_failure()
                except Exception:
                    logger.exception("sync.terminal_failure_hook_failed")

    def _dispatcher(self, kind: str) -> Callable[[Any], None]:
        def dispatch(payload: Any = None) -> None:
            logger.debug("sync.event_received", kind=kind)
            try:
                self.reconciler.apply(kind, payload)
            except Exception:
                logger.exception("sync.apply_failed", kind=kind)

        return dispatch

    # ─── Helpers ────────────────────────────────────────

    async def _resync(self) -> None:
        # Events keep arriving during the fetch; the reconciler replays them.
        self.reconciler.begin_resync()
        try:
            inventory, bills = await self.refresher()
        except Exception as e:
            self.reconciler.abort_resync()
            logger.warning("sync.resync_failed", error=str(e))
            return
        self.reconciler.resync(inventory, bills)

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        if self.on_status is None:
            return
        try:
            self.on_status(state)
        except Exception:
            logger.exception("sync.status_listener_failed", state=state.value)

    def _notify(self, title: str, message: str, severity: Severity) -> None:
        if self.presenter is not None:
            self.presenter.show(title, message, severity)


def status_label(state: ConnectionState) -> str:
    """Short label for a status indicator."""
    if state is ConnectionState.CONNECTED:
        return "Live"
    if state is ConnectionState.DISCONNECTED:
        return "Offline"
    return "Connecting..."
