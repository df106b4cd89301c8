"""Bounded session history of completed stage moves.

Backed by a ``deque(maxlen=capacity)`` so the "most recent N" bound is
structural: appending past capacity silently drops the oldest move.
Iteration and ``moves()`` return newest first.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from src.dealboard.deals.errors import MoveNotFoundError
from src.dealboard.deals.schemas import StageMove

DEFAULT_HISTORY_LIMIT = 5


class MoveHistory:
    """Fixed-capacity history of StageMove entries.

    Args:
        capacity: Maximum number of moves retained. Defaults to 5.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_LIMIT) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self._moves: deque[StageMove] = deque(maxlen=capacity)

    def __iter__(self) -> Iterator[StageMove]:
        return reversed(self._moves)

    def record(self, move: StageMove) -> None:
        """Append a move, evicting the oldest one when full."""
        self._moves.append(move)

    def get(self, move_id: int) -> StageMove:
        """Return the move with ``move_id``.

        Raises:
            MoveNotFoundError: If the move was undone, aged out, or never existed.
        """
        for move in self._moves:
            if move.id == move_id:
                return move
        raise MoveNotFoundError(move_id)

    def remove(self, move_id: int) -> StageMove:
        """Remove and return the move with ``move_id``.

        Raises:
            MoveNotFoundError: If the move is not in history.
        """
        move = self.get(move_id)
        self._moves.remove(move)
        return move

    def discard_deal(self, deal_id: int) -> int:
        """Drop every move for ``deal_id``; return how many were dropped."""
        kept = [move for move in self._moves if move.deal_id != deal_id]
        dropped = len(self._moves) - len(kept)
        if dropped:
            self._moves.clear()
            self._moves.extend(kept)
        return dropped

    def moves(self) -> list[StageMove]:
        """Return a newest-first copy of the history."""
        return list(self)
