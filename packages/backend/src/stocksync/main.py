"""FastAPI application factory and the Socket.IO mount.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (tables, engine disposal).

Socket.IO must sit above FastAPI because it speaks both HTTP long-polling
and WebSocket upgrades on its own path. `asgi_app` is what uvicorn serves;
every other path falls through to the FastAPI `app`.
"""

from contextlib import asynccontextmanager

import socketio
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stocksync import __version__
from stocksync.api import api_router
from stocksync.config import settings
from stocksync.realtime.hub import hub

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "stocksync.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        socketio_path=settings.socketio_path,
    )

    from stocksync.db.engine import create_tables, engine

    await create_tables()
    logger.info("stocksync.tables_ready", url=settings.database_url)

    yield

    logger.info("stocksync.shutdown", channels=len(hub.channels()))
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="StockSync",
        description="Shared inventory and billing with live terminal updates",
        version=__version__,
        lifespan=lifespan,
    )

    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler
    from stocksync.middleware.request_id import RequestIdMiddleware
    from stocksync.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


def create_asgi_app(fastapi_app: FastAPI) -> socketio.ASGIApp:
    return socketio.ASGIApp(
        hub.sio,
        other_asgi_app=fastapi_app,
        socketio_path=settings.socketio_path,
    )


# Default instances (served by uvicorn: stocksync.main:asgi_app)
app = create_app()
asgi_app = create_asgi_app(app)
