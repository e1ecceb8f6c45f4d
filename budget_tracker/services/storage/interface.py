"""
Abstract Record Store Interface

DESIGN DECISION: Every collection (budgets, expenses) is reached through
the same generic contract. Two backends implement it:
1. Cosmos DB, partitioned by owner, for durable storage
2. An in-process map for development and tests

Callers must not be able to tell them apart. In particular:
- "Not found" is an absent result (None), never an exception
- A record is only visible with its owner's id
- Duplicate ids on create are a ConflictError, never an overwrite.
  Cosmos DB only checks within the owner's partition, the in-memory
  store checks the whole collection

The interface is intentionally small. The only query is
"everything this owner has".
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from budget_tracker.models.records import OwnedRecord


RecordT = TypeVar("RecordT", bound=OwnedRecord)


class RecordStore(ABC, Generic[RecordT]):
    """
    Abstract interface for per-owner record storage.

    All operations are coroutines and independent units of work.
    Nothing spans more than one call: a list racing a create may or may
    not see it, and concurrent writes to one id are last-write-wins.
    """

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[RecordT]:
        """
        Return every record owned by `owner_id`.

        Order is unspecified unless the backend documents one.
        """
        pass

    @abstractmethod
    async def get_by_id(self, record_id: str, owner_id: str) -> Optional[RecordT]:
        """
        Retrieve a record by id.

        Args:
            record_id: The record's identifier
            owner_id: The caller the record must belong to

        Returns:
            The record if it exists AND belongs to `owner_id`, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, record: RecordT) -> RecordT:
        """
        Persist a new record.

        Id uniqueness differs per backend: the in-memory store rejects an id
        used anywhere in the collection, Cosmos DB only one already used in
        the same owner's partition.

        Returns:
            The stored form of the record

        Raises:
            ConflictError: If a record with the same id already exists
                (collection-wide in memory, per owner on Cosmos DB)
            StorageError: If the record has no owner
            BackendUnavailableError: Outcome unknown, the write may have landed
        """
        pass

    @abstractmethod
    async def update(self, record_id: str, record: RecordT) -> None:
        """
        Replace the whole record stored at `record_id`.

        The caller must already have checked that the record exists and
        belongs to `record.owner_id`; the store does not re-check.
        The write is always addressed with `record.owner_id`.

        Raises:
            StorageError: If `record.id` differs from `record_id` or the
                record has no owner
            BackendUnavailableError: Outcome unknown, the write may have landed
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str, owner_id: str) -> None:
        """
        Delete a record matching both id and owner.

        Deleting a missing or foreign record is a no-op.
        """
        pass

    async def close(self) -> None:
        """Release backend resources. Nothing to do by default."""
        return None


def check_writable(record: OwnedRecord, record_id: Optional[str] = None) -> None:
    """
    Reject records that cannot be written safely.

    Shared by both backends so they fail the same way.
    """
    if not record.owner_id:
        raise StorageError(f"Record {record.id} has no owner")
    if record_id is not None and record.id != record_id:
        raise StorageError(
            f"Record id {record.id} does not match target id {record_id}"
        )


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConflictError(StorageError):
    """A record with the same id already exists where the backend enforces uniqueness."""

    def __init__(self, record_id: str, message: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message or f"Record already exists: {record_id}")


class BackendUnavailableError(StorageError):
    """
    Could not reach the storage backend (network, timeout, throttling).

    For writes the outcome is unknown: the change may or may not
    have been applied.
    """
    pass


class ConfigurationError(StorageError):
    """Store cannot be built: bad record type or missing settings."""
    pass
