"""User-facing notifications (toasts) for board outcomes."""

from src.dealboard.notifications.sink import (
    LogNotificationSink,
    NotificationAction,
    NotificationSink,
)

__all__ = ["NotificationSink", "NotificationAction", "LogNotificationSink"]
