"""Notification sink module."""

from eventbase.services.notifications.notifier import (
    Notification,
    NotificationLevel,
    Notifier,
    get_notifier,
    reset_notifier,
)

__all__ = [
    "Notification",
    "NotificationLevel",
    "Notifier",
    "get_notifier",
    "reset_notifier",
]
