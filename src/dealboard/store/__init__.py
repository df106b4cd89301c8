"""Record-store layer -- the narrow contract the board consumes and its HTTP client.

Provides:
- RecordStore / DealStore: abstract per-entity CRUD contract (+ update_stage)
- HttpRecordStore / HttpDealStore: async httpx client for the record API
- contact_store() / company_store(): display-join table clients
- field mapping helpers between record columns and model fields
"""

from src.dealboard.store.adapter import DealStore, RecordStore
from src.dealboard.store.field_mapping import (
    DEAL_FIELD_MAP,
    deal_from_record,
    deal_to_record,
)
from src.dealboard.store.http import (
    HttpDealStore,
    HttpRecordStore,
    company_store,
    contact_store,
)

__all__ = [
    "RecordStore",
    "DealStore",
    "HttpRecordStore",
    "HttpDealStore",
    "contact_store",
    "company_store",
    "DEAL_FIELD_MAP",
    "deal_from_record",
    "deal_to_record",
]
