"""Shared fixtures for deal board tests.

Provides:
- notifier: MagicMock NotificationSink returning stable notification ids
"""

from __future__ import annotations

from itertools import count
from unittest.mock import MagicMock

import pytest

from src.dealboard.notifications.sink import NotificationSink


@pytest.fixture
def notifier() -> MagicMock:
    """NotificationSink mock; success toasts get ids toast-1, toast-2, ..."""
    sink = MagicMock(spec=NotificationSink)
    ids = count(1)
    sink.notify_success.side_effect = lambda *args, **kwargs: f"toast-{next(ids)}"
    sink.notify_failure.return_value = "toast-failure"
    return sink
