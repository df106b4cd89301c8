"""Record store abstract base classes -- the narrow contract the board consumes.

Every record-store backend implements RecordStore per entity type (deals,
contacts, companies). DealStore adds ``update_stage``, a single-field write
that is cheaper than a full ``update`` and is the only write the
stage-transition engine performs for moves and undo.

All failures surface as PersistenceError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from src.dealboard.deals.schemas import Deal, DealStage

T = TypeVar("T")


class RecordStore(ABC, Generic[T]):
    """Abstract CRUD interface for one entity type.

    Methods:
        list: Full snapshot fetch.
        get: Fetch one record by id, or None.
        create: Create a record, return it as stored.
        update: Update a record's fields by id, return it as stored.
        delete: Delete a record by id, return True if deleted.
    """

    @abstractmethod
    async def list(self) -> list[T]:
        """Fetch every record of this entity type."""
        ...

    @abstractmethod
    async def get(self, record_id: int) -> T | None:
        """Fetch one record by id."""
        ...

    @abstractmethod
    async def create(self, data: dict[str, Any]) -> T:
        """Create a record from model field names, return it as stored."""
        ...

    @abstractmethod
    async def update(self, record_id: int, data: dict[str, Any]) -> T:
        """Update a record from model field names, return it as stored."""
        ...

    @abstractmethod
    async def delete(self, record_id: int) -> bool:
        """Delete a record by id."""
        ...


class DealStore(RecordStore[Deal]):
    """Deal record store with the single-field stage write."""

    @abstractmethod
    async def update_stage(self, deal_id: int, stage: DealStage) -> Deal:
        """Persist a deal's stage (and refresh its updated_at), return the stored deal."""
        ...
