"""Toast-style notifications for protocol events.

Learn: A notification is shown, left up for a fixed time, then dismissed
with a short exit transition. Several can be on screen at once (newest
last) and nothing is de-duplicated. The presenter is strictly additive:
if the renderer blows up, the failure is logged and the caller (usually
the Reconciler, mid-event) carries on as if nothing happened.
"""

import asyncio
import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import click
import structlog

logger = structlog.get_logger()


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def icon(self) -> str:
        return _ICONS[self]


_ICONS = {
    Severity.SUCCESS: "✅",
    Severity.ERROR: "❌",
    Severity.WARNING: "⚠️",
    Severity.INFO: "ℹ️",
}

_COLOURS = {
    Severity.SUCCESS: "green",
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}

_ids = itertools.count(1)


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    severity: Severity = Severity.INFO
    id: int = field(default_factory=lambda: next(_ids))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dismissing: bool = False


Renderer = Callable[[Notification], None]


class ConsoleRenderer:
    """Prints each notification as one coloured terminal line."""

    def __call__(self, notification: Notification) -> None:
        sev = notification.severity
        click.secho(
            f"{sev.icon} {notification.title}: {notification.message}",
            fg=_COLOURS[sev],
            bold=sev is Severity.ERROR,
        )


class NotificationPresenter:
    """Keeps the stack of visible notifications and their timers."""

    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        on_dismiss: Optional[Renderer] = None,
        duration: float = 4.0,
        transition: float = 0.3,
    ):
        self.renderer = renderer
        self.on_dismiss = on_dismiss
        self.duration = duration
        self.transition = transition
        self._active: list[Notification] = []
        self._timers: dict[int, asyncio.TimerHandle] = {}

    @property
    def active(self) -> tuple[Notification, ...]:
        return tuple(self._active)

    def show(self, title: str, message: str, severity: Severity | str = Severity.INFO) -> Notification:
        """Display a notification. Never raises."""
        try:
            notification = Notification(title=title, message=message, severity=Severity(severity))
        except ValueError:
            logger.warning("notify.bad_severity", severity=severity, title=title)
            notification = Notification(title=title, message=message)

        self._active.append(notification)
        self._safe_call(self.renderer, notification, "notify.render_failed")
        self._schedule(self.duration, self._begin_dismiss, notification.id)
        return notification

    def dismiss(self, notification_id: int) -> None:
        """Dismiss now, skipping the remaining display time."""
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        self._begin_dismiss(notification_id)

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._active.clear()

    # ─── Internals ──────────────────────────────────────

    def _begin_dismiss(self, notification_id: int) -> None:
        self._timers.pop(notification_id, None)
        for index, notification in enumerate(self._active):
            if notification.id == notification_id and not notification.dismissing:
                self._active[index] = replace(notification, dismissing=True)
                if not self._schedule(self.transition, self._remove, notification_id):
                    self._remove(notification_id)
                return

    def _remove(self, notification_id: int) -> None:
        self._timers.pop(notification_id, None)
        for index, notification in enumerate(self._active):
            if notification.id == notification_id:
                del self._active[index]
                self._safe_call(self.on_dismiss, notification, "notify.dismiss_failed")
                return

    def _schedule(self, delay: float, callback: Callable[[int], None], notification_id: int) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync caller): stays visible until dismiss() is called.
            return False
        self._timers[notification_id] = loop.call_later(delay, callback, notification_id)
        return True

    @staticmethod
    def _safe_call(fn: Optional[Renderer], notification: Notification, event: str) -> None:
        if fn is None:
            return
        try:
            fn(notification)
        except Exception:
            logger.exception(event, notification_id=notification.id, title=notification.title)
