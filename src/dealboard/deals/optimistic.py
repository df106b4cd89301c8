"""Optimistic update with rollback.

Applies a local mutation before the remote write resolves, so the board
shows the new state immediately, and restores the captured snapshot if the
write fails. Used for both stage moves and undo.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

S = TypeVar("S")
R = TypeVar("R")


async def apply_optimistically(
    *,
    snapshot: Callable[[], S],
    mutate: Callable[[], None],
    persist: Callable[[], Awaitable[R]],
    revert: Callable[[S], None],
) -> R:
    """Run a mutate-then-persist sequence, reverting on failure.

    Steps:
    1. ``snapshot()`` captures the prior local state.
    2. ``mutate()`` applies the change locally.
    3. ``persist()`` is awaited.
    4. If it raises, ``revert(prior)`` restores local state and the
       exception is re-raised for the caller to report.

    Args:
        snapshot: Captures the state ``revert`` will need.
        mutate: Applies the optimistic change.
        persist: Coroutine factory performing the remote write.
        revert: Restores the captured snapshot.

    Returns:
        Whatever ``persist()`` returned.
    """
    prior = snapshot()
    mutate()
    try:
        return await persist()
    except Exception as exc:
        revert(prior)
        logger.debug("optimistic.reverted", error=str(exc))
        raise
