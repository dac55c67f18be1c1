"""Who is sitting at this terminal.

The identity is whatever the login screen established; the channel only
forwards it in `user:register` so the hub can label the connection.
"""

from dataclasses import dataclass
from typing import Callable, Optional

OWNER = "owner"
STAFF = "staff"


@dataclass(frozen=True)
class Session:
    role: str
    name: str

    @property
    def is_owner(self) -> bool:
        return self.role == OWNER

    def to_register_payload(self) -> dict[str, str]:
        return {"role": self.role, "name": self.name}


SessionProvider = Callable[[], Optional[Session]]


def no_session() -> Optional[Session]:
    return None


def static_session(session: Optional[Session]) -> SessionProvider:
    """Provider that always answers with the same session."""
    return lambda: session
