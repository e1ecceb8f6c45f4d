"""
In-Memory Record Store

Process-local backend for development and tests. All state is lost when
the process exits.

One map from record id to record is shared by every caller of a store
instance. A lock internal to the store keeps the map consistent under
concurrent access from tasks and threads; each method holds it for a
single map operation, so nothing is atomic across calls.
"""

import threading
from typing import Optional

from budget_tracker.models.records import OwnedRecord
from budget_tracker.services.storage.interface import (
    ConfigurationError,
    ConflictError,
    RecordStore,
    RecordT,
    check_writable,
)


REQUIRED_FIELDS = ("id", "owner_id")


class InMemoryRecordStore(RecordStore[RecordT]):
    """
    In-memory implementation of the record store.

    Records are copied on the way in and on the way out, so callers can
    never mutate stored state through an object they hold.
    """

    def __init__(self, record_type: type[RecordT]):
        """
        Args:
            record_type: The record model this store holds.

        Raises:
            ConfigurationError: If the type does not have an id and an owner.
        """
        if not isinstance(record_type, type) or not issubclass(record_type, OwnedRecord):
            raise ConfigurationError(
                f"{record_type!r} must be an OwnedRecord subclass"
            )
        missing = [name for name in REQUIRED_FIELDS if name not in record_type.model_fields]
        if missing:
            raise ConfigurationError(
                f"{record_type.__name__} is missing required fields: {', '.join(missing)}"
            )

        self._record_type = record_type
        self._items: dict[str, RecordT] = {}
        self._lock = threading.RLock()

    @property
    def record_type(self) -> type[RecordT]:
        return self._record_type

    async def list_by_owner(self, owner_id: str) -> list[RecordT]:
        with self._lock:
            return [
                item.model_copy(deep=True)
                for item in self._items.values()
                if item.owner_id == owner_id
            ]

    async def get_by_id(self, record_id: str, owner_id: str) -> Optional[RecordT]:
        with self._lock:
            item = self._items.get(record_id)
            if item is None or item.owner_id != owner_id:
                return None
            return item.model_copy(deep=True)

    async def create(self, record: RecordT) -> RecordT:
        check_writable(record)
        with self._lock:
            if record.id in self._items:
                raise ConflictError(record.id)
            self._items[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    async def update(self, record_id: str, record: RecordT) -> None:
        check_writable(record, record_id)
        with self._lock:
            self._items[record_id] = record.model_copy(deep=True)

    async def delete(self, record_id: str, owner_id: str) -> None:
        with self._lock:
            item = self._items.get(record_id)
            if item is not None and item.owner_id == owner_id:
                del self._items[record_id]

    def clear(self) -> None:
        """Drop every record. Intended for tests and dev resets."""
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
