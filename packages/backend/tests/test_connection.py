"""Connection manager tests — driven by a fake Socket.IO client.

Learn: The fake records what the manager asks of the transport and lets the
test raise transport signals (`connect`, `disconnect`, `connect_error`,
server events) by hand, so the retry accounting can be checked without a
server or real timers.
"""

import asyncio
import inspect

import pytest

from stocksync.client.connection import (
    ConnectionManager,
    ConnectionState,
    ReconnectPolicy,
    status_label,
)
from stocksync.client.notifications import NotificationPresenter, Severity
from stocksync.client.reconciler import Reconciler
from stocksync.client.session import Session, static_session
from stocksync.config import Settings
from stocksync.realtime.protocol import Bill, InventoryItem


class FakeClient:
    def __init__(self, fail_connect: bool = False, **kwargs):
        self.kwargs = kwargs
        self.fail_connect = fail_connect
        self.handlers = {}
        self.emitted = []
        self.connect_calls = []
        self.disconnected = False

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def connect(self, url, socketio_path="socket.io", retry=False, **kwargs):
        self.connect_calls.append((url, socketio_path, retry))
        if self.fail_connect:
            raise ConnectionError("server unreachable")

    async def emit(self, event, data=None, namespace=None, callback=None):
        self.emitted.append((event, data))

    async def disconnect(self):
        self.disconnected = True
        await self.fire("disconnect", "client disconnect")

    async def wait(self):
        return None

    async def fire(self, event, *args):
        result = self.handlers[event](*args)
        if inspect.isawaitable(result):
            await result


class Factory:
    """client_factory that remembers every client it built."""

    def __init__(self, **client_options):
        self.client_options = client_options
        self.clients: list[FakeClient] = []

    def __call__(self, **kwargs):
        client = FakeClient(**self.client_options, **kwargs)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeClient:
        return self.clients[-1]


def _manager(factory=None, **kwargs):
    presenter = kwargs.pop("presenter", NotificationPresenter())
    reconciler = kwargs.pop("reconciler", Reconciler(presenter=presenter))
    return ConnectionManager(
        "http://shop.local:3000",
        reconciler,
        presenter=presenter,
        client_factory=factory or Factory(),
        **kwargs,
    )


# ═══════════════════════════════════════════════════════════
# Opening the channel
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_open_passes_reconnect_policy_to_transport():
    factory = Factory()
    manager = _manager(factory)

    await manager.open()

    client = factory.last
    assert client.kwargs["reconnection"] is True
    assert client.kwargs["reconnection_attempts"] == 5
    assert client.kwargs["reconnection_delay"] == 1.0
    assert client.kwargs["reconnection_delay_max"] == 5.0
    assert client.connect_calls == [("http://shop.local:3000", "socket.io", True)]
    assert manager.state is ConnectionState.CONNECTING


@pytest.mark.asyncio
async def test_open_is_noop_while_channel_exists():
    factory = Factory()
    manager = _manager(factory)

    await manager.open()
    await manager.open()

    assert len(factory.clients) == 1


@pytest.mark.asyncio
async def test_transport_construction_failure_is_absorbed():
    def broken_factory(**kwargs):
        raise RuntimeError("socket.io client unavailable")

    manager = _manager(broken_factory)
    await manager.open()

    assert manager.state is ConnectionState.DISCONNECTED
    assert not manager.is_online()


@pytest.mark.asyncio
async def test_connect_failure_is_absorbed_and_open_can_retry():
    factory = Factory(fail_connect=True)
    manager = _manager(factory)

    await manager.open()
    assert manager.state is ConnectionState.DISCONNECTED

    factory.client_options["fail_connect"] = False
    await manager.open()
    assert len(factory.clients) == 2
    assert manager.state is ConnectionState.CONNECTING


# ═══════════════════════════════════════════════════════════
# Transport signals
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_connect_registers_identity():
    factory = Factory()
    presenter = NotificationPresenter()
    manager = _manager(
        factory,
        presenter=presenter,
        session=static_session(Session("owner", "Asha")),
    )
    await manager.open()

    await factory.last.fire("connect")

    assert manager.is_online()
    assert factory.last.emitted == [("user:register", {"role": "owner", "name": "Asha"})]
    assert manager.identity == Session("owner", "Asha")
    assert presenter.active[-1].title == "Connected"
    assert presenter.active[-1].severity is Severity.SUCCESS


@pytest.mark.asyncio
async def test_connect_without_session_does_not_register():
    factory = Factory()
    manager = _manager(factory)
    await manager.open()

    await factory.last.fire("connect")

    assert factory.last.emitted == []
    assert manager.identity is None


@pytest.mark.asyncio
async def test_disconnect_clears_identity_and_warns():
    factory = Factory()
    presenter = NotificationPresenter()
    manager = _manager(factory, presenter=presenter, session=static_session(Session("staff", "Kiran")))
    await manager.open()
    await factory.last.fire("connect")

    await factory.last.fire("disconnect", "transport close")

    assert manager.state is ConnectionState.DISCONNECTED
    assert manager.identity is None
    assert (presenter.active[-1].title, presenter.active[-1].message) == (
        "Disconnected",
        "Attempting to reconnect...",
    )


@pytest.mark.asyncio
async def test_reconnect_registers_again():
    factory = Factory()
    manager = _manager(factory, session=static_session(Session("staff", "Kiran")))
    await manager.open()
    client = factory.last

    await client.fire("connect")
    await client.fire("disconnect", "ping timeout")
    await client.fire("connect")

    assert [e for e, _ in client.emitted] == ["user:register", "user:register"]
    assert manager.identity == Session("staff", "Kiran")


@pytest.mark.asyncio
async def test_terminal_failure_after_max_attempts_reported_once():
    factory = Factory()
    presenter = NotificationPresenter()
    failures = []
    manager = _manager(factory, presenter=presenter, on_terminal_failure=lambda: failures.append(1))
    await manager.open()
    client = factory.last

    for _ in range(4):
        await client.fire("connect_error", "refused")
    assert manager.retry_count == 4
    assert failures == []
    assert not any(n.severity is Severity.ERROR for n in presenter.active)

    await client.fire("connect_error", "refused")
    await client.fire("connect_error", "refused")

    assert manager.retry_count == 6
    assert failures == [1]
    errors = [n for n in presenter.active if n.severity is Severity.ERROR]
    assert [(n.title, n.message) for n in errors] == [("Connection Failed", "Please refresh the page")]


@pytest.mark.asyncio
async def test_successful_connect_resets_retry_count():
    factory = Factory()
    manager = _manager(factory)
    await manager.open()
    client = factory.last

    await client.fire("connect_error", "refused")
    await client.fire("connect_error", "refused")
    await client.fire("connect")

    assert manager.retry_count == 0
    assert manager.is_online()


@pytest.mark.asyncio
async def test_open_after_terminal_failure_starts_fresh():
    factory = Factory()
    manager = _manager(factory, policy=ReconnectPolicy(max_retry_attempts=1))
    await manager.open()
    await factory.last.fire("connect_error", "refused")

    await manager.open()

    assert len(factory.clients) == 2
    assert factory.clients[0].disconnected is True


# ═══════════════════════════════════════════════════════════
# Event dispatch and resync
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_server_events_reach_reconciler():
    factory = Factory()
    reconciler = Reconciler()
    manager = _manager(factory, reconciler=reconciler)
    await manager.open()
    client = factory.last

    await client.fire("inventory:updated", {"action": "add", "item": {"id": 2, "name": "Cement"}})
    await client.fire("bill:created", {"bill": {"id": 10, "total": 500}})
    await client.fire("inventory:refresh", {"inventory": [{"id": 2, "quantity": 450}]})

    assert reconciler.store.inventory.get(2).quantity == 450
    assert [b.id for b in reconciler.store.bills.snapshot()] == [10]


@pytest.mark.asyncio
async def test_malformed_server_event_does_not_break_channel():
    factory = Factory()
    reconciler = Reconciler()
    manager = _manager(factory, reconciler=reconciler)
    await manager.open()

    await factory.last.fire("inventory:updated", "garbage")

    assert len(reconciler.diagnostics) == 1
    assert manager.state is ConnectionState.CONNECTING


@pytest.mark.asyncio
async def test_connect_pulls_fresh_snapshot():
    factory = Factory()
    reconciler = Reconciler()

    async def refresher():
        return [InventoryItem(id=1, quantity=3)], [Bill(id=8), Bill(id=9)]

    manager = _manager(factory, reconciler=reconciler, refresher=refresher)
    await manager.open()
    await factory.last.fire("connect")

    assert [i.id for i in reconciler.store.inventory.snapshot()] == [1]
    assert [b.id for b in reconciler.store.bills.snapshot()] == [9, 8]


@pytest.mark.asyncio
async def test_failed_snapshot_keeps_last_known_state():
    factory = Factory()
    reconciler = Reconciler()
    reconciler.apply("inventory:refresh", {"inventory": [{"id": 4, "quantity": 1}]})

    async def refresher():
        raise ConnectionError("api down")

    manager = _manager(factory, reconciler=reconciler, refresher=refresher)
    await manager.open()
    await factory.last.fire("connect")

    assert manager.is_online()
    assert [i.id for i in reconciler.store.inventory.snapshot()] == [4]


# ═══════════════════════════════════════════════════════════
# Status and teardown
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_status_listener_sees_transitions():
    factory = Factory()
    seen = []
    manager = _manager(factory, on_status=seen.append)

    await manager.open()
    await factory.last.fire("connect")
    await factory.last.fire("disconnect", "transport close")

    assert seen == [
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
    ]
    assert [status_label(s) for s in seen] == ["Connecting...", "Live", "Offline"]


@pytest.mark.asyncio
async def test_close_is_quiet():
    factory = Factory()
    presenter = NotificationPresenter()
    manager = _manager(factory, presenter=presenter)
    await manager.open()
    await factory.last.fire("connect")

    await manager.close()

    assert factory.last.disconnected is True
    assert manager.state is ConnectionState.DISCONNECTED
    assert all(n.title != "Disconnected" for n in presenter.active)


def test_policy_from_settings():
    settings = Settings(reconnection_attempts=3, reconnection_delay=0.5, reconnection_delay_max=2.0)
    policy = ReconnectPolicy.from_settings(settings)
    assert policy == ReconnectPolicy(
        auto_reconnect=True,
        initial_retry_delay=0.5,
        max_retry_delay=2.0,
        max_retry_attempts=3,
    )


@pytest.mark.asyncio
async def test_live_events_during_snapshot_fetch_survive_resync():
    factory = Factory()
    reconciler = Reconciler()
    reconciler.apply("inventory:refresh", {"inventory": [{"id": 1, "quantity": 10}, {"id": 2, "quantity": 5}]})
    fetch_started = asyncio.Event()
    release = asyncio.Event()

    async def slow_refresher():
        fetch_started.set()
        await release.wait()
        # Snapshot taken before any of the live events below.
        return [InventoryItem(id=1, quantity=10), InventoryItem(id=2, quantity=5)], []

    manager = _manager(factory, reconciler=reconciler, refresher=slow_refresher)
    await manager.open()
    client = factory.last

    connecting = asyncio.create_task(client.fire("connect"))
    await fetch_started.wait()

    await client.fire("inventory:updated", {"action": "add", "item": {"id": 7, "name": "Paver Block"}})
    await client.fire("inventory:updated", {"action": "update", "item": {"id": 1, "quantity": 4}})
    await client.fire("inventory:updated", {"action": "delete", "itemId": 2})
    assert 7 in reconciler.store.inventory

    release.set()
    await connecting

    inventory = reconciler.store.inventory
    assert [i.id for i in inventory.snapshot()] == [1, 7]
    assert inventory.get(1).quantity == 4


@pytest.mark.asyncio
async def test_failed_snapshot_stops_recording_live_events():
    factory = Factory()
    reconciler = Reconciler()

    async def refresher():
        raise ConnectionError("api down")

    manager = _manager(factory, reconciler=reconciler, refresher=refresher)
    await manager.open()
    await factory.last.fire("connect")

    await factory.last.fire("inventory:updated", {"action": "add", "item": {"id": 3}})
    reconciler.resync([], [])

    assert reconciler.store.inventory.snapshot() == ()


@pytest.mark.asyncio
async def test_reopen_after_terminal_failure_shows_no_disconnect_warning():
    factory = Factory()
    presenter = NotificationPresenter()
    manager = _manager(factory, presenter=presenter, policy=ReconnectPolicy(max_retry_attempts=1))
    await manager.open()
    await factory.last.fire("connect_error", "refused")

    await manager.open()

    assert all(n.title != "Disconnected" for n in presenter.active)
    assert manager.state is ConnectionState.CONNECTING
