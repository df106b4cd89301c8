"""Error taxonomy for the deal pipeline board.

All errors derive from PipelineError. The engine catches them at its
boundary and turns them into MoveResult statuses and user notifications;
store adapters raise them.
"""

from __future__ import annotations

from src.dealboard.deals.schemas import DealStage


class PipelineError(Exception):
    """Base exception for the deal pipeline board."""


class InvalidStageTransitionError(PipelineError, ValueError):
    """Raised when a deal stage transition violates the adjacency rule."""

    def __init__(self, from_stage: DealStage, to_stage: DealStage) -> None:
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(
            f"Cannot move a deal from {from_stage.value} to {to_stage.value}. "
            "Deals move one stage at a time, or straight to won or lost."
        )


class PersistenceError(PipelineError):
    """Raised when the record store rejects or cannot perform a write or read."""


class DealNotFoundError(PipelineError, LookupError):
    """Raised when a deal id does not resolve in the working set."""

    def __init__(self, deal_id: int) -> None:
        self.deal_id = deal_id
        super().__init__(f"Deal not found: {deal_id}")


class MoveNotFoundError(PipelineError, LookupError):
    """Raised when a move id is not (or no longer) in history."""

    def __init__(self, move_id: int) -> None:
        self.move_id = move_id
        super().__init__(f"Move not found in history: {move_id}")


class EngineBusyError(PipelineError):
    """Raised when a move or undo is requested while another is in flight."""

    def __init__(self, deal_id: int | None) -> None:
        self.deal_id = deal_id
        super().__init__(
            f"Another stage change is in progress (deal {deal_id}). "
            "Wait for it to finish and try again."
        )
