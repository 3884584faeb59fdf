"""Notifications package."""

from .center import (
    AuthorizationStatus,
    InMemoryNotificationCenter,
    NotificationCenter,
    NotificationError,
    NotificationRequest,
)
from .scheduler import NotificationScheduler, notification_identifier

__all__ = [
    "AuthorizationStatus",
    "InMemoryNotificationCenter",
    "NotificationCenter",
    "NotificationError",
    "NotificationRequest",
    "NotificationScheduler",
    "notification_identifier",
]
