"""Record-store column mappings for deals, contacts, and companies.

Defines:
- *_TABLE: record-store table names.
- *_FIELD_MAP: internal model field name -> record-store column name.
- from_record(): converts a record-store row to model field names.
- to_record(): converts model field names to a record-store row.
- deal_from_record() / contact_from_record() / company_from_record():
  typed conversions used by HttpRecordStore.

Reference columns (``contact_id_c``, ``company_id_c``) come back either as
a bare id or as an expanded ``{"Id": ..., "Name": ...}`` lookup object; both
are normalized to an int.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from src.dealboard.deals.schemas import Company, Contact, Deal

DEAL_TABLE = "deal_c"
CONTACT_TABLE = "contact_c"
COMPANY_TABLE = "company_c"

ID_COLUMN = "Id"
NAME_COLUMN = "Name"


# ── Field Maps ──────────────────────────────────────────────────────────────

DEAL_FIELD_MAP: dict[str, str] = {
    "title": "title_c",
    "value": "value_c",
    "stage": "stage_c",
    "probability": "probability_c",
    "expected_close_date": "expected_close_date_c",
    "created_at": "created_at_c",
    "updated_at": "updated_at_c",
    "contact_id": "contact_id_c",
    "company_id": "company_id_c",
    "tags": "Tags",
}

CONTACT_FIELD_MAP: dict[str, str] = {
    "first_name": "first_name_c",
    "last_name": "last_name_c",
    "email": "email_c",
    "phone": "phone_c",
    "position": "position_c",
    "lead_type": "lead_type_c",
    "score": "score_c",
    "company_id": "company_id_c",
    "created_at": "created_at_c",
    "updated_at": "updated_at_c",
}

COMPANY_FIELD_MAP: dict[str, str] = {
    "name": NAME_COLUMN,
    "industry": "industry_c",
    "website": "website_c",
    "employee_count": "employee_count_c",
    "created_at": "created_at_c",
}

REFERENCE_COLUMNS: frozenset[str] = frozenset({"contact_id_c", "company_id_c"})


# ── Conversion Functions ────────────────────────────────────────────────────


def _normalize_reference(value: Any) -> int | None:
    """Collapse a lookup value (bare id or {"Id": ...} object) to an int."""
    if isinstance(value, dict):
        value = value.get(ID_COLUMN)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def from_record(
    record: dict[str, Any],
    field_map: dict[str, str],
) -> dict[str, Any]:
    """Convert a record-store row to a dict keyed by model field names.

    Empty values (None or "") are omitted so model defaults apply, matching
    the store's habit of returning blanks for unset columns.

    Args:
        record: Row as returned by the record store.
        field_map: Model field -> column mapping for the entity.

    Returns:
        Dict with ``id`` plus every mapped, non-empty field.
    """
    data: dict[str, Any] = {"id": record[ID_COLUMN]}

    for field_name, column in field_map.items():
        if column not in record:
            continue
        value = record[column]
        if column in REFERENCE_COLUMNS:
            value = _normalize_reference(value)
        if value is None or value == "":
            continue
        data[field_name] = value

    return data


def to_record(
    data: dict[str, Any],
    field_map: dict[str, str],
) -> dict[str, Any]:
    """Convert a dict keyed by model field names to a record-store row.

    Unknown fields are dropped. Dates and datetimes are sent as ISO strings,
    enum members as their values, reference ids as ints.

    Args:
        data: Model field names to values.
        field_map: Model field -> column mapping for the entity.

    Returns:
        Dict suitable for the ``records`` array of a create/update call.
    """
    record: dict[str, Any] = {}

    for field_name, value in data.items():
        column = field_map.get(field_name)
        if column is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif column in REFERENCE_COLUMNS:
            value = _normalize_reference(value)
            if value is None:
                continue
        record[column] = value

    return record


def deal_from_record(record: dict[str, Any]) -> Deal:
    """Build a Deal from a ``deal_c`` row.

    The title falls back to the record's Name, then to ``Deal #<id>``, so a
    blank title never blocks loading the board.
    """
    data = from_record(record, DEAL_FIELD_MAP)
    if "title" not in data:
        data["title"] = record.get(NAME_COLUMN) or f"Deal #{record[ID_COLUMN]}"
    return Deal(**data)


def deal_to_record(data: dict[str, Any]) -> dict[str, Any]:
    """Convert deal fields to a ``deal_c`` row; Name mirrors the title."""
    record = to_record(data, DEAL_FIELD_MAP)
    if "title_c" in record:
        record[NAME_COLUMN] = record["title_c"]
    return record


def contact_from_record(record: dict[str, Any]) -> Contact:
    """Build a Contact from a ``contact_c`` row."""
    return Contact(**from_record(record, CONTACT_FIELD_MAP))


def company_from_record(record: dict[str, Any]) -> Company:
    """Build a Company from a ``company_c`` row."""
    data = from_record(record, COMPANY_FIELD_MAP)
    if "employee_count" in data:
        data["employee_count"] = str(data["employee_count"])
    return Company(**data)
