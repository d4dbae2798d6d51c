"""User-facing notifications, passed to the controller as a dependency.

The controller never reaches for a global notification service; hosts hand
it any :class:`Notifier` (a toast adapter, a logger, a test recorder).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, ConfigDict

_logger = logging.getLogger(__name__)


class NotificationLevel(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: NotificationLevel
    title: str
    message: str
    tag: str | None = None


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


_LOG_LEVELS: dict[NotificationLevel, int] = {
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


class LoggingNotifier:
    """Default notifier: writes notifications to the ``tasksync.notifications`` logger."""

    def notify(self, notification: Notification) -> None:
        _logger.log(_LOG_LEVELS[notification.level], "%s: %s", notification.title, notification.message)


class RateLimitedNotifier:
    """Wraps a notifier to avoid flooding the user.

    At most *max_per_minute* notifications pass per rolling minute, and a
    notification carrying a tag already shown within *repeat_window* seconds
    is dropped.
    """

    def __init__(
        self,
        inner: Notifier,
        *,
        max_per_minute: int = 5,
        repeat_window: float = 120.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._inner = inner
        self._max_per_minute = max_per_minute
        self._repeat_window = repeat_window
        self._clock = clock
        self._window_start = clock()
        self._count = 0
        self._recent: dict[str, float] = {}

    def _prune(self, now: float) -> None:
        # Forget tags after an hour so the map does not grow forever.
        expired = [tag for tag, shown_at in self._recent.items() if now - shown_at > 3600.0]
        for tag in expired:
            del self._recent[tag]

    def can_show(self, tag: str | None) -> bool:
        now = self._clock()
        if now - self._window_start > 60.0:
            self._count = 0
            self._window_start = now
        if self._count >= self._max_per_minute:
            return False
        if tag is not None:
            shown_at = self._recent.get(tag)
            if shown_at is not None and now - shown_at < self._repeat_window:
                return False
        return True

    def notify(self, notification: Notification) -> None:
        now = self._clock()
        self._prune(now)
        if not self.can_show(notification.tag):
            _logger.debug("Suppressed notification %r", notification.tag or notification.title)
            return
        self._count += 1
        if notification.tag is not None:
            self._recent[notification.tag] = now
        self._inner.notify(notification)
