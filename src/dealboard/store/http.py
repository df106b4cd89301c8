"""Async HTTP record-store client for deals, contacts, and companies.

Speaks the record API the dashboard already uses: per-table fetch, get,
create, update, and delete calls wrapped in a ``{success, message, data}``
envelope, with per-record ``results`` for writes.

Key implementation details:
- httpx.AsyncClient per call with a configurable timeout
- Reads (list/get) retried with tenacity on transient transport errors
- Writes are never retried -- the user re-initiates a failed move
- Every failure surfaces as PersistenceError carrying the store's message
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from src.dealboard.config import Settings, get_settings
from src.dealboard.deals.errors import PersistenceError
from src.dealboard.deals.schemas import Company, Contact, Deal, DealStage
from src.dealboard.store.adapter import DealStore, RecordStore
from src.dealboard.store.field_mapping import (
    COMPANY_FIELD_MAP,
    COMPANY_TABLE,
    CONTACT_FIELD_MAP,
    CONTACT_TABLE,
    DEAL_FIELD_MAP,
    DEAL_TABLE,
    ID_COLUMN,
    NAME_COLUMN,
    company_from_record,
    contact_from_record,
    deal_from_record,
    deal_to_record,
    to_record,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS = (httpx.HTTPStatusError, httpx.ConnectError, httpx.TimeoutException)


class HttpRecordStore(RecordStore[T]):
    """RecordStore for one table of the remote record API.

    Args:
        table: Record-store table name (e.g. ``deal_c``).
        field_map: Model field -> column mapping, used for the fetch field list.
        parse: Converts one returned row to a model instance.
        serialize: Converts model field names to a row for create/update.
        settings: Connection settings. Defaults to get_settings().
        retry_wait: tenacity wait strategy between read attempts.
        extra_columns: Unmapped columns to fetch as well (e.g. ``Name``).
    """

    def __init__(
        self,
        table: str,
        field_map: dict[str, str],
        parse: Callable[[dict[str, Any]], T],
        serialize: Callable[[dict[str, Any]], dict[str, Any]],
        settings: Settings | None = None,
        retry_wait: wait_base | None = None,
        extra_columns: tuple[str, ...] = (),
    ) -> None:
        settings = settings or get_settings()
        self._table = table
        mapped = list(field_map.values())
        self._columns = mapped + [column for column in extra_columns if column not in mapped]
        self._parse = parse
        self._serialize = serialize
        self._base_url = settings.RECORD_STORE_URL.rstrip("/")
        self._timeout = settings.RECORD_STORE_TIMEOUT
        self._read_attempts = max(1, settings.RECORD_STORE_READ_RETRIES)
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self._headers = {
            "X-Project-Id": settings.RECORD_STORE_PROJECT_ID,
            "X-Public-Key": settings.RECORD_STORE_PUBLIC_KEY,
            "Content-Type": "application/json",
        }

    @property
    def table(self) -> str:
        return self._table

    def _records_url(self, suffix: str = "") -> str:
        return f"{self._base_url}/tables/{self._table}/records{suffix}"

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client with the configured timeout."""
        return httpx.AsyncClient(headers=self._headers, timeout=self._timeout)

    # ── Transport ───────────────────────────────────────────────────────────

    async def _send(self, method: str, url: str, payload: dict[str, Any] | None) -> dict[str, Any]:
        """Issue one request and return the decoded envelope (raises httpx errors)."""
        async with self._client() as client:
            response = await client.request(method, url, json=payload)
            response.raise_for_status()
            return response.json()

    async def _read(self, url: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Retrying read; POST when a query payload is given, GET otherwise."""
        method = "GET" if payload is None else "POST"
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._read_attempts),
                wait=self._retry_wait,
                retry=retry_if_exception_type(_TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    envelope = await self._send(method, url, payload)
        except httpx.HTTPError as exc:
            raise self._transport_error("read", exc) from exc
        return self._check_envelope(envelope, "read")

    async def _write(self, method: str, payload: dict[str, Any], action: str) -> dict[str, Any]:
        """Single-attempt write returning the first successful result row."""
        try:
            envelope = await self._send(method, self._records_url(), payload)
        except httpx.HTTPError as exc:
            raise self._transport_error(action, exc) from exc
        self._check_envelope(envelope, action)
        return self._first_success(envelope, action)

    def _transport_error(self, action: str, exc: httpx.HTTPError) -> PersistenceError:
        if isinstance(exc, httpx.HTTPStatusError):
            message = f"Record store returned HTTP {exc.response.status_code}"
        else:
            message = f"Record store unreachable: {exc}"
        logger.error(
            "record_store.request_failed",
            table=self._table,
            action=action,
            error=str(exc),
        )
        return PersistenceError(message)

    def _check_envelope(self, envelope: dict[str, Any], action: str) -> dict[str, Any]:
        if not envelope.get("success"):
            message = envelope.get("message") or f"Failed to {action} {self._table} records"
            logger.error(
                "record_store.rejected",
                table=self._table,
                action=action,
                error=message,
            )
            raise PersistenceError(message)
        return envelope

    def _first_success(self, envelope: dict[str, Any], action: str) -> dict[str, Any]:
        """Raise on the first failed per-record result, else return the first success."""
        results = envelope.get("results") or []
        failed = [r for r in results if not r.get("success")]
        if failed:
            logger.error(
                "record_store.records_failed",
                table=self._table,
                action=action,
                failed=len(failed),
            )
            record = failed[0]
            errors = record.get("errors") or []
            if errors:
                first = errors[0]
                raise PersistenceError(f"{first.get('fieldLabel')}: {first.get('message')}")
            raise PersistenceError(record.get("message") or f"Failed to {action} record")

        for result in results:
            if result.get("data") is not None:
                return result["data"]
        raise PersistenceError(f"Record store returned no data for {action}")

    # ── RecordStore ─────────────────────────────────────────────────────────

    async def list(self) -> list[T]:
        """Fetch every row, newest id first."""
        query = {
            "fields": [{"field": {"Name": column}} for column in self._columns],
            "orderBy": [{"fieldName": ID_COLUMN, "sorttype": "DESC"}],
        }
        envelope = await self._read(self._records_url("/fetch"), query)
        rows = envelope.get("data") or []
        parsed: list[T] = []
        for row in rows:
            try:
                parsed.append(self._parse(row))
            except ValidationError as exc:
                # One bad row (e.g. an unknown stage label) must not hide the rest.
                logger.warning(
                    "record_store.row_skipped",
                    table=self._table,
                    record_id=row.get(ID_COLUMN),
                    error=str(exc),
                )
        logger.debug(
            "record_store.listed",
            table=self._table,
            count=len(parsed),
            skipped=len(rows) - len(parsed),
        )
        return parsed

    async def get(self, record_id: int) -> T | None:
        envelope = await self._read(self._records_url(f"/{int(record_id)}"))
        row = envelope.get("data")
        return self._parse(row) if row else None

    async def create(self, data: dict[str, Any]) -> T:
        row = await self._write("POST", {"records": [self._serialize(data)]}, "create")
        logger.info("record_store.created", table=self._table, record_id=row.get(ID_COLUMN))
        return self._parse(row)

    async def update(self, record_id: int, data: dict[str, Any]) -> T:
        record = {ID_COLUMN: int(record_id), **self._serialize(data)}
        row = await self._write("PATCH", {"records": [record]}, "update")
        logger.info("record_store.updated", table=self._table, record_id=record_id)
        return self._parse(row)

    async def delete(self, record_id: int) -> bool:
        payload = {"RecordIds": [int(record_id)]}
        try:
            envelope = await self._send("DELETE", self._records_url(), payload)
        except httpx.HTTPError as exc:
            raise self._transport_error("delete", exc) from exc
        self._check_envelope(envelope, "delete")

        results = envelope.get("results") or []
        failed = [r for r in results if not r.get("success")]
        if failed:
            raise PersistenceError(failed[0].get("message") or "Failed to delete record")
        logger.info("record_store.deleted", table=self._table, record_id=record_id)
        return any(r.get("success") for r in results)


class HttpDealStore(HttpRecordStore[Deal], DealStore):
    """Deal table client with the single-field stage update."""

    def __init__(
        self,
        settings: Settings | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        super().__init__(
            DEAL_TABLE,
            DEAL_FIELD_MAP,
            deal_from_record,
            deal_to_record,
            settings=settings,
            retry_wait=retry_wait,
            extra_columns=(NAME_COLUMN,),
        )

    async def update_stage(self, deal_id: int, stage: DealStage) -> Deal:
        """Send only ``stage_c`` and ``updated_at_c`` for one deal."""
        record = {
            ID_COLUMN: int(deal_id),
            **to_record(
                {"stage": stage, "updated_at": datetime.now(timezone.utc)},
                DEAL_FIELD_MAP,
            ),
        }
        row = await self._write("PATCH", {"records": [record]}, "update deal stage")
        logger.info("record_store.stage_updated", deal_id=deal_id, stage=DealStage(stage).value)
        return deal_from_record(row)


def contact_store(settings: Settings | None = None) -> HttpRecordStore[Contact]:
    """HttpRecordStore for the ``contact_c`` table."""
    return HttpRecordStore(
        CONTACT_TABLE,
        CONTACT_FIELD_MAP,
        contact_from_record,
        lambda data: to_record(data, CONTACT_FIELD_MAP),
        settings=settings,
    )


def company_store(settings: Settings | None = None) -> HttpRecordStore[Company]:
    """HttpRecordStore for the ``company_c`` table."""
    return HttpRecordStore(
        COMPANY_TABLE,
        COMPANY_FIELD_MAP,
        company_from_record,
        lambda data: to_record(data, COMPANY_FIELD_MAP),
        settings=settings,
    )
