"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with STOCKSYNC_ prefix.
The same Settings object serves the server (database, Socket.IO mount) and
the terminal client (server URL, reconnect policy, notification timing).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via STOCKSYNC_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./stocksync.db"

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS
    cors_origins: list[str] = ["*"]

    # Socket.IO
    socketio_path: str = "socket.io"

    # Terminal client
    server_url: str = "http://localhost:3000"
    reconnection: bool = True
    reconnection_delay: float = 1.0  # seconds
    reconnection_delay_max: float = 5.0
    reconnection_attempts: int = 5
    refresh_on_reconnect: bool = True

    # Notifications
    notification_duration_seconds: float = 4.0
    notification_transition_seconds: float = 0.3

    model_config = {"env_prefix": "STOCKSYNC_"}

    @model_validator(mode="after")
    def validate_reconnect_policy(self):
        """Reject a reconnect window that cannot grow."""
        if self.reconnection_delay_max < self.reconnection_delay:
            raise ValueError(
                "STOCKSYNC_RECONNECTION_DELAY_MAX must be >= "
                "STOCKSYNC_RECONNECTION_DELAY"
            )
        if self.reconnection_attempts < 1:
            raise ValueError("STOCKSYNC_RECONNECTION_ATTEMPTS must be at least 1")
        return self


# Singleton, import this everywhere
settings = Settings()
