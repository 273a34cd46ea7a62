"""
User-visible notifications.

The feed raises short, transient messages (saved settings, fallback to test
data, refresh results). They are logged, kept in a small ring buffer for
polling clients and pushed to any registered listener.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Literal

from pydantic import BaseModel, Field

from config import to_iso8601

logger = logging.getLogger(__name__)

NotificationLevel = Literal["success", "info", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notification(BaseModel):
    level: NotificationLevel
    message: str
    created_at: str = Field(default_factory=lambda: to_iso8601(datetime.now(timezone.utc)))


NotificationListener = Callable[[Notification], None]


class NotificationCenter:
    """Collects notifications and fans them out to listeners."""

    def __init__(self, history_size: int = 50) -> None:
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._listeners: list[NotificationListener] = []

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        logger.log(_LOG_LEVELS[level], "Notification: %s", message, extra={"level": level})
        self._history.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Notification listener failed")
        return notification

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def warning(self, message: str) -> Notification:
        return self.notify("warning", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    def recent(self, limit: int = 20) -> list[Notification]:
        """Most recent notifications, newest first."""
        return list(reversed(self._history))[:limit]

    def add_listener(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove
