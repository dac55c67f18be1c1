"""Test fixtures — an in-memory database and a hub that records its emits.

Learn: Testing pattern for async SQLAlchemy + FastAPI + Socket.IO:

1. Each test gets its own in-memory SQLite engine (StaticPool keeps the one
   connection alive), with tables created up front.
2. The hub wraps a real socketio.AsyncServer whose `emit` is an AsyncMock,
   so every broadcast is captured in order without a network.
3. `get_db` and `get_hub` are overridden on the app; the HTTP client talks
   to it through httpx's ASGITransport.
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import socketio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from stocksync.db.engine import get_db
from stocksync.db.models import Base
from stocksync.main import app
from stocksync.realtime.hub import BroadcastHub, get_hub


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a throwaway in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture()
def hub():
    """A hub whose server records every emit instead of sending it."""
    server = socketio.AsyncServer(async_mode="asgi")
    server.emit = AsyncMock()
    return BroadcastHub(sio=server)


@pytest.fixture()
def broadcasts(hub):
    """Callable returning (event, payload) pairs in the order the hub emitted them."""

    def _broadcasts() -> list[tuple[str, dict]]:
        return [(call.args[0], call.args[1]) for call in hub.sio.emit.await_args_list]

    return _broadcasts


@pytest_asyncio.fixture()
async def client(db_session, hub):
    """HTTP client with the app's get_db and get_hub overridden for testing."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_hub] = lambda: hub

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
