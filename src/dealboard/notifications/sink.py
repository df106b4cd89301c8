"""Notification sink contract and a structlog-backed default.

The board reports every outcome through a NotificationSink: success toasts
(optionally carrying an action such as Undo), failure toasts, and dismissal
of an earlier toast once an undo supersedes it.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class NotificationAction(BaseModel):
    """Action button attached to a success notification."""

    label: str = "Undo"
    move_id: int


class NotificationSink(ABC):
    """Abstract interface for user-facing notifications.

    Methods:
        notify_success: Show a success message, return its notification id.
        notify_failure: Show a failure message, return its notification id.
        dismiss: Remove a previously shown notification.
    """

    @abstractmethod
    def notify_success(self, message: str, action: NotificationAction | None = None) -> str:
        """Show a success message, optionally with an action button."""
        ...

    @abstractmethod
    def notify_failure(self, message: str) -> str:
        """Show a failure message."""
        ...

    @abstractmethod
    def dismiss(self, notification_id: str) -> None:
        """Remove a previously shown notification."""
        ...


class LogNotificationSink(NotificationSink):
    """Sink that writes notifications to the structured log.

    Used when the board runs headless (scripts, workers) with nobody to
    show a toast to.
    """

    def notify_success(self, message: str, action: NotificationAction | None = None) -> str:
        notification_id = str(uuid.uuid4())
        logger.info(
            "notification.success",
            notification_id=notification_id,
            message=message,
            action=action.label if action else None,
            move_id=action.move_id if action else None,
        )
        return notification_id

    def notify_failure(self, message: str) -> str:
        notification_id = str(uuid.uuid4())
        logger.warning(
            "notification.failure",
            notification_id=notification_id,
            message=message,
        )
        return notification_id

    def dismiss(self, notification_id: str) -> None:
        logger.info("notification.dismissed", notification_id=notification_id)
