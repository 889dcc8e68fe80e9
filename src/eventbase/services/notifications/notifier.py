"""Notification sink for pipeline, verification and refund transitions."""

import logging
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Notification severity as shown to the operator."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class Notification(BaseModel):
    """A single user-facing notification."""

    level: NotificationLevel = Field(..., description="Severity")
    message: str = Field(..., description="Human readable message")
    context: dict[str, Any] = Field(default_factory=dict, description="Extra data")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation time",
    )


Subscriber = Callable[[Notification], None]


class Notifier:
    """Fans notifications out to subscribers and mirrors them to the log.

    Subscribers are plain callables (a websocket broadcaster, a toast queue,
    a test collector). A subscriber that raises is logged and skipped.
    """

    _LOG_LEVELS = {
        NotificationLevel.INFO: logging.INFO,
        NotificationLevel.SUCCESS: logging.INFO,
        NotificationLevel.ERROR: logging.ERROR,
    }

    def __init__(self, max_history: int = 500):
        """Initialize notifier.

        Args:
            max_history: Number of notifications kept for inspection
        """
        self._subscribers: list[Subscriber] = []
        self._history: deque[Notification] = deque(maxlen=max_history)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> bool:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            return True
        return False

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()

    def publish(
        self,
        level: NotificationLevel,
        message: str,
        **context: Any,
    ) -> Notification:
        """Publish one notification.

        Args:
            level: Severity
            message: Message text
            **context: Extra structured data

        Returns:
            The published notification
        """
        notification = Notification(level=level, message=message, context=context)
        self._history.append(notification)

        logger.log(
            self._LOG_LEVELS[level],
            f"[{level.value.upper()}] {message}",
        )

        for subscriber in list(self._subscribers):
            try:
                subscriber(notification)
            except Exception as e:
                logger.warning(f"Notification subscriber {subscriber!r} failed: {e}")

        return notification

    def info(self, message: str, **context: Any) -> Notification:
        return self.publish(NotificationLevel.INFO, message, **context)

    def success(self, message: str, **context: Any) -> Notification:
        return self.publish(NotificationLevel.SUCCESS, message, **context)

    def error(self, message: str, **context: Any) -> Notification:
        return self.publish(NotificationLevel.ERROR, message, **context)


_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """Get or create the process-wide notifier."""
    global _notifier
    if _notifier is None:
        _notifier = Notifier()
    return _notifier


def reset_notifier() -> None:
    """Reset notifier singleton (for testing)."""
    global _notifier
    _notifier = None
