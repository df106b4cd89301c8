"""Kanban stage-transition engine for the deal pipeline board.

Owns the working set of deals for one board session: grouping into stage
columns, per-column totals, legality of a proposed move, optimistic
application with rollback, persistence through the record store, and undo
of recent moves from a bounded history.

The engine is a two-state machine -- IDLE or MOVING(deal_id). Only one
move or undo may be in flight at a time; overlapping requests are rejected
with BUSY rather than queued. The check-and-set happens before the first
await, so it is atomic on the event loop.

Every error is caught here and reported as a MoveResult plus a notification;
nothing propagates to the presentation layer.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from src.dealboard.deals.errors import (
    DealNotFoundError,
    EngineBusyError,
    InvalidStageTransitionError,
    MoveNotFoundError,
)
from src.dealboard.deals.history import DEFAULT_HISTORY_LIMIT, MoveHistory
from src.dealboard.deals.optimistic import apply_optimistically
from src.dealboard.deals.schemas import (
    Company,
    Contact,
    Deal,
    DealStage,
    EngineState,
    MoveResult,
    MoveStatus,
    StageMove,
    StageSummary,
)
from src.dealboard.deals.transitions import STAGE_ORDER, ensure_transition, validate_transition
from src.dealboard.notifications.sink import NotificationAction, NotificationSink
from src.dealboard.store.adapter import DealStore, RecordStore

logger = structlog.get_logger(__name__)

UNKNOWN_CONTACT = "Unknown Contact"
UNKNOWN_COMPANY = "Unknown Company"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StageTransitionEngine:
    """Working set, stage columns, moves, and undo for one deal board session.

    Args:
        deal_store: Record store for deals; ``update_stage`` persists moves.
        notifier: Sink for success/failure toasts and undo affordances.
        contact_store: Optional contact store for display joins and search.
        company_store: Optional company store for display joins and search.
        history_limit: Number of recent moves kept for undo. Defaults to 5.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        deal_store: DealStore,
        notifier: NotificationSink,
        contact_store: RecordStore[Contact] | None = None,
        company_store: RecordStore[Company] | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._deal_store = deal_store
        self._notifier = notifier
        self._contact_store = contact_store
        self._company_store = company_store
        self._clock = clock

        self._deals: list[Deal] = []
        self._contacts: dict[int, Contact] = {}
        self._companies: dict[int, Company] = {}
        self._history = MoveHistory(history_limit)
        self._move_ids = itertools.count(1)

        self._state = EngineState.IDLE
        self._in_flight: int | None = None

        self.loading = False
        self.load_error: str | None = None

    # ── State ───────────────────────────────────────────────────────────────

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def in_flight_deal_id(self) -> int | None:
        """Deal currently being moved or undone, or None when idle."""
        return self._in_flight

    @property
    def is_busy(self) -> bool:
        return self._state is not EngineState.IDLE

    @property
    def deals(self) -> tuple[Deal, ...]:
        """Read-only view of the working set, in fetch order."""
        return tuple(self._deals)

    @property
    def history(self) -> list[StageMove]:
        """Recent moves, newest first."""
        return self._history.moves()

    def _begin(self, deal_id: int) -> None:
        self._state = EngineState.MOVING
        self._in_flight = deal_id

    def _end(self) -> None:
        self._state = EngineState.IDLE
        self._in_flight = None

    def _busy(self, deal_id: int | None) -> MoveResult:
        error = EngineBusyError(self._in_flight)
        logger.info(
            "board.busy_rejected",
            deal_id=deal_id,
            in_flight_deal_id=self._in_flight,
        )
        return MoveResult(status=MoveStatus.BUSY, deal_id=deal_id, message=str(error))

    # ── Notifications ───────────────────────────────────────────────────────
    # A failing sink is logged and swallowed; the store write it reports on
    # has already happened.

    def _notify_success(
        self, message: str, action: NotificationAction | None = None
    ) -> str | None:
        try:
            return self._notifier.notify_success(message, action=action)
        except Exception as exc:
            logger.error("board.notify_failed", kind="success", message=message, error=str(exc))
            return None

    def _notify_failure(self, message: str) -> str | None:
        try:
            return self._notifier.notify_failure(message)
        except Exception as exc:
            logger.error("board.notify_failed", kind="failure", message=message, error=str(exc))
            return None

    def _dismiss(self, notification_id: str) -> None:
        try:
            self._notifier.dismiss(notification_id)
        except Exception as exc:
            logger.error(
                "board.notify_failed",
                kind="dismiss",
                notification_id=notification_id,
                error=str(exc),
            )

    # ── Working Set ─────────────────────────────────────────────────────────

    def get_deal(self, deal_id: int) -> Deal | None:
        for deal in self._deals:
            if deal.id == deal_id:
                return deal
        return None

    def _require(self, deal_id: int) -> Deal:
        deal = self.get_deal(deal_id)
        if deal is None:
            raise DealNotFoundError(deal_id)
        return deal

    def _put(self, deal: Deal) -> None:
        """Replace the working-set entry with the same id, keeping its position."""
        for idx, existing in enumerate(self._deals):
            if existing.id == deal.id:
                self._deals[idx] = deal
                return

    def _display_title(self, deal_id: int, fallback: str) -> str:
        deal = self.get_deal(deal_id)
        return deal.title if deal is not None else fallback

    async def load_deals(self) -> None:
        """Replace the working set with the store's current snapshot.

        Deals, contacts, and companies are fetched concurrently. On failure
        the previous working set is kept and ``load_error`` carries a
        retryable message; nothing is raised.
        """
        self.loading = True
        try:
            deals, contacts, companies = await asyncio.gather(
                self._deal_store.list(),
                self._list_or_empty(self._contact_store),
                self._list_or_empty(self._company_store),
            )
        except Exception as exc:
            self.load_error = str(exc) or "Failed to load deals"
            logger.error("board.load_failed", error=str(exc))
            return
        finally:
            self.loading = False

        self._deals = list(deals)
        self._contacts = {contact.id: contact for contact in contacts}
        self._companies = {company.id: company for company in companies}
        self.load_error = None
        logger.info(
            "board.loaded",
            deals=len(self._deals),
            contacts=len(self._contacts),
            companies=len(self._companies),
        )

    @staticmethod
    async def _list_or_empty(store: RecordStore | None) -> list:
        if store is None:
            return []
        return await store.list()

    # ── Display Joins & Search ──────────────────────────────────────────────

    def contact_name(self, contact_id: int | None) -> str:
        contact = self._contacts.get(contact_id) if contact_id is not None else None
        return contact.full_name if contact is not None else UNKNOWN_CONTACT

    def company_name(self, company_id: int | None) -> str:
        company = self._companies.get(company_id) if company_id is not None else None
        return company.name if company is not None else UNKNOWN_COMPANY

    def search(self, term: str | None) -> list[Deal]:
        """Filter the working set by title, contact name, or company name.

        Matching is a case-insensitive substring test. A blank term returns
        the whole working set.
        """
        needle = (term or "").strip().lower()
        if not needle:
            return list(self._deals)
        return [
            deal
            for deal in self._deals
            if needle in deal.title.lower()
            or needle in self.contact_name(deal.contact_id).lower()
            or needle in self.company_name(deal.company_id).lower()
        ]

    # ── Stage Columns ───────────────────────────────────────────────────────

    def deals_in_stage(self, stage: DealStage | str, search: str | None = None) -> list[Deal]:
        """Deals in one column, in working-set order."""
        stage = DealStage(stage)
        return [deal for deal in self.search(search) if deal.stage == stage]

    def stage_summary(self, stage: DealStage | str, search: str | None = None) -> StageSummary:
        """Count and summed value for one column, recomputed on every call."""
        column = self.deals_in_stage(stage, search)
        return StageSummary(
            stage=DealStage(stage),
            count=len(column),
            total_value=sum(deal.value for deal in column),
        )

    def pipeline_summary(self, search: str | None = None) -> list[StageSummary]:
        """One StageSummary per column, in board order."""
        return [self.stage_summary(stage, search) for stage in STAGE_ORDER]

    def can_move(self, deal_id: int, destination: DealStage | str) -> bool:
        """True if dropping ``deal_id`` on ``destination`` would start a move.

        Lets the board highlight legal drop targets without side effects.
        """
        deal = self.get_deal(deal_id)
        if self.is_busy or deal is None:
            return False
        try:
            target = DealStage(destination)
        except ValueError:
            return False
        return target != deal.stage and validate_transition(deal.stage, target)

    # ── Moves ───────────────────────────────────────────────────────────────

    async def _persist_stage(self, deal_id: int, stage: DealStage) -> Deal:
        """Optimistically set a deal's stage, persist it, revert on failure.

        Only ``stage`` and ``updated_at`` are taken from the store's reply;
        the write may echo back a partial row, so every other field keeps
        its working-set value.
        """
        stored = await apply_optimistically(
            snapshot=lambda: self._require(deal_id),
            mutate=lambda: self._put(
                self._require(deal_id).model_copy(
                    update={"stage": stage, "updated_at": self._clock()}
                )
            ),
            persist=lambda: self._deal_store.update_stage(deal_id, stage),
            revert=self._put,
        )
        current = self.get_deal(deal_id)
        if current is None:
            # Dropped by a reload while the write was in flight.
            return stored
        merged = current.model_copy(
            update={"stage": stage, "updated_at": stored.updated_at or current.updated_at}
        )
        self._put(merged)
        return merged

    async def request_move(self, deal_id: int, destination: DealStage | str) -> MoveResult:
        """Move a deal to another stage column.

        Steps:
        1. Reject with BUSY if another move or undo is in flight.
        2. Resolve the deal; same-stage drops are a silent NOOP.
        3. Validate adjacency; illegal moves are REJECTED before any store call.
        4. Apply optimistically, persist, and on success record the move in
           history and notify with an Undo action. On failure the deal is
           restored exactly and the failure is notified.

        Args:
            deal_id: Id of a deal in the working set.
            destination: Target stage (enum member or its string value).

        Returns:
            MoveResult describing the outcome.
        """
        if self.is_busy:
            return self._busy(deal_id)

        deal = self.get_deal(deal_id)
        if deal is None:
            logger.warning("board.move_unknown_deal", deal_id=deal_id)
            return MoveResult(
                status=MoveStatus.NOT_FOUND,
                deal_id=deal_id,
                message=str(DealNotFoundError(deal_id)),
            )

        try:
            target = DealStage(destination)
        except ValueError:
            message = f"Unknown deal stage: {destination}"
            self._notify_failure(message)
            return MoveResult(status=MoveStatus.REJECTED, deal_id=deal_id, message=message)

        source = deal.stage
        if target == source:
            return MoveResult(status=MoveStatus.NOOP, deal_id=deal_id)

        try:
            ensure_transition(source, target)
        except InvalidStageTransitionError as exc:
            logger.info(
                "board.move_rejected",
                deal_id=deal_id,
                from_stage=source.value,
                to_stage=target.value,
            )
            self._notify_failure(str(exc))
            return MoveResult(status=MoveStatus.REJECTED, deal_id=deal_id, message=str(exc))

        self._begin(deal_id)
        try:
            stored = await self._persist_stage(deal_id, target)
        except Exception as exc:
            message = f'Failed to move "{deal.title}" to {target.label}: {exc}'
            logger.error(
                "board.move_failed",
                deal_id=deal_id,
                from_stage=source.value,
                to_stage=target.value,
                error=str(exc),
            )
            self._notify_failure(message)
            return MoveResult(status=MoveStatus.FAILED, deal_id=deal_id, message=message)
        finally:
            self._end()

        move = StageMove(
            id=next(self._move_ids),
            deal_id=deal_id,
            deal_title=stored.title,
            old_stage=source,
            new_stage=target,
            timestamp=self._clock(),
        )
        self._history.record(move)
        message = f'Moved "{stored.title}" to {target.label}'
        move.notification_id = self._notify_success(
            message, action=NotificationAction(move_id=move.id)
        )

        logger.info(
            "board.move_applied",
            deal_id=deal_id,
            move_id=move.id,
            from_stage=source.value,
            to_stage=target.value,
        )
        return MoveResult(status=MoveStatus.APPLIED, deal_id=deal_id, move=move, message=message)

    async def undo_move(self, move_id: int) -> MoveResult:
        """Return a moved deal to the stage it came from.

        Undo is a reversal, so adjacency is not re-checked. It uses the same
        optimistic apply/revert as request_move: on failure the deal keeps
        its pre-undo stage and the move stays in history for another try.
        Unknown or expired move ids are a silent NOT_FOUND.

        Args:
            move_id: Id of a StageMove currently in history.

        Returns:
            MoveResult describing the outcome.
        """
        if self.is_busy:
            return self._busy(None)

        try:
            move = self._history.get(move_id)
        except MoveNotFoundError:
            logger.debug("board.undo_unknown_move", move_id=move_id)
            return MoveResult(status=MoveStatus.NOT_FOUND)

        if self.get_deal(move.deal_id) is None:
            # Deal vanished on reload; the move can never be undone.
            self._history.remove(move_id)
            logger.info("board.undo_deal_gone", move_id=move_id, deal_id=move.deal_id)
            return MoveResult(status=MoveStatus.NOT_FOUND, deal_id=move.deal_id, move=move)

        title = self._display_title(move.deal_id, move.deal_title)
        self._begin(move.deal_id)
        try:
            await self._persist_stage(move.deal_id, move.old_stage)
        except Exception as exc:
            message = f'Failed to undo move of "{title}": {exc}'
            logger.error(
                "board.undo_failed",
                deal_id=move.deal_id,
                move_id=move_id,
                error=str(exc),
            )
            self._notify_failure(message)
            return MoveResult(
                status=MoveStatus.FAILED, deal_id=move.deal_id, move=move, message=message
            )
        finally:
            self._end()

        self._history.remove(move_id)
        if move.notification_id is not None:
            self._dismiss(move.notification_id)
        message = f'Moved "{title}" back to {move.old_stage.label}'
        self._notify_success(message)

        logger.info(
            "board.move_undone",
            deal_id=move.deal_id,
            move_id=move_id,
            restored_stage=move.old_stage.value,
        )
        return MoveResult(
            status=MoveStatus.UNDONE, deal_id=move.deal_id, move=move, message=message
        )

    # ── Deletion ────────────────────────────────────────────────────────────

    async def delete_deal(self, deal_id: int) -> bool:
        """Delete a deal from the store and the working set.

        Rejected while a move is in flight. The deal's history entries are
        discarded so its moves can no longer be undone.

        Returns:
            True if the deal was deleted.
        """
        if self.is_busy:
            self._busy(deal_id)
            return False

        deal = self.get_deal(deal_id)
        if deal is None:
            logger.warning("board.delete_unknown_deal", deal_id=deal_id)
            return False

        try:
            deleted = await self._deal_store.delete(deal_id)
        except Exception as exc:
            logger.error("board.delete_failed", deal_id=deal_id, error=str(exc))
            self._notify_failure(f'Failed to delete "{deal.title}": {exc}')
            return False

        if not deleted:
            self._notify_failure(f'Failed to delete "{deal.title}"')
            return False

        self._deals = [d for d in self._deals if d.id != deal_id]
        dropped = self._history.discard_deal(deal_id)
        self._notify_success(f'Deleted "{deal.title}"')
        logger.info("board.deal_deleted", deal_id=deal_id, history_dropped=dropped)
        return True
