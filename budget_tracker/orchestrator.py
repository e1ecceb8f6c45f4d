"""
Main Orchestrator for Budget Tracker

This module ties the record stores to their callers and defines the
flows the HTTP layer runs for each collection:
1. List / get (ownership enforced by the store)
2. Create (identity and timestamps assigned here, never by the client)
3. Update / delete (fetch as the caller first, then write)

DESIGN DECISION: Ownership is re-checked here, not in the store.
Update and delete first read the record with the caller's id; only if
that succeeds is the write issued. The two calls are not atomic: a
concurrent delete between them is resolved by the backend as
last-write-wins.

The backend is picked exactly once, in create_app_components().
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generic, Iterator, Optional
from uuid import UUID

from pydantic import BaseModel

from budget_tracker.audit import AuditLogger
from budget_tracker.config import Settings, get_settings
from budget_tracker.models.records import Budget, Expense
from budget_tracker.services.storage import (
    BackendUnavailableError,
    ConfigurationError,
    ConflictError,
    CosmosRecordStore,
    CosmosStoreClient,
    InMemoryRecordStore,
    RecordStore,
    StorageError,
)
from budget_tracker.services.storage.interface import RecordT


class RecordFlow(Generic[RecordT]):
    """
    Orchestrates the operations of one collection for one caller at a time.

    Every mutation and every storage failure is audited. Errors are
    re-raised unchanged for the HTTP layer to map.
    """

    def __init__(
        self,
        store: RecordStore[RecordT],
        record_type: type[RecordT],
        entity_type: str,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._record_type = record_type
        self._entity_type = entity_type
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def store(self) -> RecordStore[RecordT]:
        return self._store

    @property
    def entity_type(self) -> str:
        return self._entity_type

    @contextmanager
    def _audit_failures(
        self,
        operation: str,
        owner_id: str,
        correlation_id: Optional[UUID],
    ) -> Iterator[None]:
        try:
            yield
        except ConflictError:
            raise
        except BackendUnavailableError as e:
            self._audit_logger.log_backend_unavailable(
                self._entity_type, operation, str(e), owner_id, correlation_id
            )
            raise
        except StorageError as e:
            self._audit_logger.log_storage_error(
                self._entity_type, operation, str(e), owner_id, correlation_id
            )
            raise

    async def list_records(
        self,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[RecordT]:
        """Everything the caller owns."""
        with self._audit_failures("list", owner_id, correlation_id):
            return await self._store.list_by_owner(owner_id)

    async def get(
        self,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[RecordT]:
        """The caller's record, or None."""
        with self._audit_failures("get", owner_id, correlation_id):
            return await self._store.get_by_id(record_id, owner_id)

    async def create(
        self,
        payload: BaseModel,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> RecordT:
        """
        Create a record for the caller.

        A fresh id, the caller's owner id and the creation timestamps are
        assigned here; whatever the client sent for them is ignored.

        Raises:
            ConflictError: If the generated id already exists
        """
        record = self._record_type.from_payload(payload, owner_id=owner_id)
        with self._audit_failures("create", owner_id, correlation_id):
            try:
                created = await self._store.create(record)
            except ConflictError:
                self._audit_logger.log_create_conflict(
                    self._entity_type, record.id, owner_id, correlation_id
                )
                raise

        self._audit_logger.log_record_created(
            self._entity_type, created.id, owner_id, correlation_id
        )
        return created

    async def update(
        self,
        record_id: str,
        payload: BaseModel,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Replace the caller's record with `payload`.

        Full replace: attributes missing from the payload take their
        defaults, they do not keep the old values. `created_at` is kept.

        Returns:
            False if the caller has no record with this id
        """
        existing = await self.get(record_id, owner_id, correlation_id)
        if existing is None:
            self._audit_logger.log_not_found(
                self._entity_type, record_id, owner_id, "update", correlation_id
            )
            return False

        replacement = self._record_type.from_payload(
            payload,
            owner_id=existing.owner_id,
            record_id=existing.id,
            created_at=existing.created_at,
        )
        with self._audit_failures("update", owner_id, correlation_id):
            await self._store.update(record_id, replacement)

        self._audit_logger.log_record_updated(
            self._entity_type, record_id, owner_id, correlation_id
        )
        return True

    async def delete(
        self,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete the caller's record.

        Returns:
            False if the caller has no record with this id
        """
        existing = await self.get(record_id, owner_id, correlation_id)
        if existing is None:
            self._audit_logger.log_not_found(
                self._entity_type, record_id, owner_id, "delete", correlation_id
            )
            return False

        with self._audit_failures("delete", owner_id, correlation_id):
            await self._store.delete(record_id, owner_id)

        self._audit_logger.log_record_deleted(
            self._entity_type, record_id, owner_id, correlation_id
        )
        return True


@dataclass
class AppComponents:
    """Everything the HTTP layer needs, built once at startup."""

    budgets: RecordFlow[Budget]
    expenses: RecordFlow[Expense]
    audit_logger: AuditLogger
    cosmos_client: Optional[CosmosStoreClient] = None

    async def close(self) -> None:
        if self.cosmos_client is not None:
            await self.cosmos_client.close()


def create_app_components(
    settings: Optional[Settings] = None,
    use_in_memory_db: Optional[bool] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to read from (defaults to get_settings())
        use_in_memory_db: Override the configured backend choice

    Raises:
        ConfigurationError: If Cosmos DB is selected but not configured.
            Fatal at startup.
    """
    settings = settings or get_settings()
    if use_in_memory_db is None:
        use_in_memory_db = settings.app.use_in_memory_db

    audit_logger = AuditLogger()
    cosmos_client = None

    if use_in_memory_db:
        budget_store: RecordStore[Budget] = InMemoryRecordStore(Budget)
        expense_store: RecordStore[Expense] = InMemoryRecordStore(Expense)
    else:
        try:
            cosmos_settings = settings.cosmos
        except ValueError as e:
            raise ConfigurationError(f"Cosmos DB is not configured: {e}") from e
        cosmos_client = CosmosStoreClient(cosmos_settings)
        budget_store = CosmosRecordStore(
            cosmos_client.get_budgets_container(),
            Budget,
        )
        expense_store = CosmosRecordStore(
            cosmos_client.get_expenses_container(),
            Expense,
            order_by="date",
        )

    return AppComponents(
        budgets=RecordFlow(budget_store, Budget, "budget", audit_logger),
        expenses=RecordFlow(expense_store, Expense, "expense", audit_logger),
        audit_logger=audit_logger,
        cosmos_client=cosmos_client,
    )
