"""Deal stage transition rules for the kanban board.

A deal may move to an adjacent column in either direction, or straight to
WON or LOST from anywhere. Stage order is used only for adjacency; it says
nothing about how far along a deal is.

Same-stage moves are not transitions at all -- the engine short-circuits
them before validation.
"""

from __future__ import annotations

from src.dealboard.deals.errors import InvalidStageTransitionError
from src.dealboard.deals.schemas import DealStage

# ── Stage Order ─────────────────────────────────────────────────────────────

STAGE_ORDER: list[DealStage] = [
    DealStage.LEAD,
    DealStage.QUALIFIED,
    DealStage.PROPOSAL,
    DealStage.NEGOTIATION,
    DealStage.WON,
    DealStage.LOST,
]

# Reachable from any stage.
CLOSING_STAGES: frozenset[DealStage] = frozenset({DealStage.WON, DealStage.LOST})

_POSITION: dict[DealStage, int] = {stage: idx for idx, stage in enumerate(STAGE_ORDER)}


def stage_position(stage: DealStage) -> int:
    """Return the zero-based column index of a stage."""
    return _POSITION[stage]


def validate_transition(source: DealStage, destination: DealStage) -> bool:
    """Return True if a deal may move from ``source`` to ``destination``.

    Rules:
    - Any move into WON or LOST is legal.
    - Otherwise the two stages must be at most one column apart.

    Args:
        source: Stage the deal is currently in.
        destination: Stage the deal is being dropped on.

    Returns:
        True if the move is legal, False otherwise.
    """
    if destination in CLOSING_STAGES:
        return True
    return abs(stage_position(destination) - stage_position(source)) <= 1


def ensure_transition(source: DealStage, destination: DealStage) -> None:
    """Validate a transition, raising instead of returning False.

    Raises:
        InvalidStageTransitionError: If the move is not legal.
    """
    if not validate_transition(source, destination):
        raise InvalidStageTransitionError(source, destination)
