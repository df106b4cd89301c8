"""Pydantic schemas for the deal pipeline board.

Defines all structured types the stage-transition engine works with:
- Enums: DealStage, MoveStatus, EngineState
- Records: Deal, Contact, Company (display joins only)
- Board types: StageMove, StageSummary, MoveResult
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


# ── Enums ───────────────────────────────────────────────────────────────────


class DealStage(str, Enum):
    """Pipeline stages, declared in board column order."""

    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class MoveStatus(str, Enum):
    """Outcome of a move, undo, or other board mutation attempt."""

    NOOP = "noop"
    APPLIED = "applied"
    UNDONE = "undone"
    REJECTED = "rejected"
    BUSY = "busy"
    FAILED = "failed"
    NOT_FOUND = "not_found"


class EngineState(str, Enum):
    """Board engine state. MOVING carries the in-flight deal id on the engine."""

    IDLE = "idle"
    MOVING = "moving"


# ── Records ─────────────────────────────────────────────────────────────────


class Deal(BaseModel):
    """A sales opportunity as held in the board's working set."""

    id: int
    title: str = Field(min_length=1)
    value: float = Field(default=0.0, ge=0.0)
    stage: DealStage = DealStage.LEAD
    probability: int = Field(default=0, ge=0, le=100)
    contact_id: int | None = None
    company_id: int | None = None
    expected_close_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tags: str = ""


class Contact(BaseModel):
    """Contact record, used for deal card display joins and search."""

    id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    position: str = ""
    company_id: int | None = None
    lead_type: str = "contact"
    score: int = 50
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Company(BaseModel):
    """Company record, used for deal card display joins and search."""

    id: int
    name: str = ""
    industry: str = ""
    website: str = ""
    employee_count: str = ""
    created_at: datetime | None = None


# ── Board Types ─────────────────────────────────────────────────────────────


class StageMove(BaseModel):
    """One persisted stage transition, kept in session history for undo.

    ``deal_title`` is a display copy taken when the move was made; prefer the
    live deal's title when it is still in the working set.
    """

    id: int
    deal_id: int
    deal_title: str
    old_stage: DealStage
    new_stage: DealStage
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notification_id: str | None = None


class StageSummary(BaseModel):
    """Column header figures: number of deals and their summed value."""

    stage: DealStage
    count: int = 0
    total_value: float = 0.0


class MoveResult(BaseModel):
    """What happened to a request_move / undo_move call."""

    status: MoveStatus
    deal_id: int | None = None
    move: StageMove | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (MoveStatus.APPLIED, MoveStatus.UNDONE)
