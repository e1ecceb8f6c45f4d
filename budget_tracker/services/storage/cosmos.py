"""
Cosmos DB Record Store

DESIGN DECISION: Each collection is a Cosmos container partitioned on the
owner (/userId). Almost every query is "all records for this owner", so:
1. Listing is a single-partition query, never a cross-partition fan-out
2. Reads and deletes are point operations on (id, partition key = owner)
3. Writes carry the owner in the document, so they land in the owner's
   partition

The partition key is ALWAYS the owner id. Addressing a write with anything
else (e.g. the record id) would route it to the wrong partition and either
fail or silently create a second copy there.

TRADEOFFS:
- Cosmos only enforces id uniqueness within a partition. Ids are random
  UUIDs assigned at creation, so collisions across owners are not guarded
  against here.
- Writes are never retried. After a transport failure their outcome is
  unknown and a blind retry could double-apply a create.
"""

import asyncio
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import (
    CosmosClientTimeoutError,
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_tracker.config import CosmosSettings, get_settings
from budget_tracker.services.storage.interface import (
    BackendUnavailableError,
    ConfigurationError,
    ConflictError,
    RecordStore,
    RecordT,
    check_writable,
)


# Document field holding the owner; containers use "/userId" as partition key path
PARTITION_KEY_FIELD = "userId"

# Request timeout, throttled, retry-with, service unavailable
TRANSIENT_STATUS_CODES = frozenset({408, 429, 449, 503})

logger = structlog.get_logger(__name__)


def _log_read_retry(retry_state) -> None:
    logger.warning(
        "cosmos_read_retry",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


# Only reads are retried; see module docstring
retry_read = retry(
    retry=retry_if_exception_type(BackendUnavailableError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    before_sleep=_log_read_retry,
    reraise=True,
)


@contextmanager
def translate_transport_errors(operation: str) -> Iterator[None]:
    """
    Turn network failures, timeouts and throttling into BackendUnavailableError.

    Every other Cosmos error propagates unchanged.
    """
    try:
        yield
    except (
        ServiceRequestError,
        ServiceResponseError,
        CosmosClientTimeoutError,
        asyncio.TimeoutError,
    ) as e:
        raise BackendUnavailableError(f"Cosmos DB unreachable during {operation}: {e}") from e
    except CosmosHttpResponseError as e:
        if e.status_code in TRANSIENT_STATUS_CODES:
            raise BackendUnavailableError(
                f"Cosmos DB unavailable during {operation} (status {e.status_code}): {e.message}"
            ) from e
        raise


class CosmosStoreClient:
    """
    Low-level Cosmos DB client wrapper.

    Builds the async client lazily and hands out container proxies.
    One instance is shared by all record stores of the application.
    """

    def __init__(self, settings: Optional[CosmosSettings] = None):
        if settings is None:
            try:
                settings = get_settings().cosmos
            except ValueError as e:
                raise ConfigurationError(f"Cosmos DB is not configured: {e}") from e
        self._settings = settings
        self._client: Optional[CosmosClient] = None

    @property
    def settings(self) -> CosmosSettings:
        return self._settings

    def connect(self) -> CosmosClient:
        """Get or create the Cosmos client."""
        if self._client is None:
            self._client = CosmosClient(
                self._settings.endpoint,
                credential=self._settings.key,
                connection_timeout=self._settings.request_timeout_seconds,
                read_timeout=self._settings.request_timeout_seconds,
                timeout=self._settings.request_timeout_seconds,
            )
        return self._client

    def get_container(self, container_name: str) -> ContainerProxy:
        """Get a container of the configured database."""
        database = self.connect().get_database_client(self._settings.database_name)
        return database.get_container_client(container_name)

    def get_budgets_container(self) -> ContainerProxy:
        return self.get_container(self._settings.budgets_container)

    def get_expenses_container(self) -> ContainerProxy:
        return self.get_container(self._settings.expenses_container)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class CosmosRecordStore(RecordStore[RecordT]):
    """
    Cosmos DB implementation of the record store.

    Records are stored as their camelCase JSON documents. Cosmos adds
    system properties (_rid, _etag, _ts...) which are dropped on read.
    """

    def __init__(
        self,
        container: ContainerProxy,
        record_type: type[RecordT],
        order_by: Optional[str] = None,
    ):
        """
        Args:
            container: Container partitioned on /userId
            record_type: The record model this store holds
            order_by: Optional document field to sort listings by,
                newest first. Backend-specific; not part of the contract.
        """
        if order_by is not None and not order_by.isidentifier():
            raise ConfigurationError(f"Invalid order_by field: {order_by!r}")
        self._container = container
        self._record_type = record_type
        self._order_by = order_by

    @property
    def record_type(self) -> type[RecordT]:
        return self._record_type

    def _list_query(self) -> str:
        query = f"SELECT * FROM c WHERE c.{PARTITION_KEY_FIELD} = @userId"
        if self._order_by:
            query += f" ORDER BY c.{self._order_by} DESC"
        return query

    def _to_record(self, document: dict[str, Any]) -> RecordT:
        return self._record_type.from_document(document)

    @retry_read
    async def list_by_owner(self, owner_id: str) -> list[RecordT]:
        """List all records in the owner's partition."""
        results = []
        with translate_transport_errors("list"):
            items = self._container.query_items(
                query=self._list_query(),
                parameters=[{"name": "@userId", "value": owner_id}],
                partition_key=owner_id,
            )
            async for document in items:
                results.append(self._to_record(document))
        return results

    @retry_read
    async def get_by_id(self, record_id: str, owner_id: str) -> Optional[RecordT]:
        """Point read on (id, owner partition). Missing means None."""
        with translate_transport_errors("get"):
            try:
                document = await self._container.read_item(
                    item=record_id,
                    partition_key=owner_id,
                )
            except CosmosResourceNotFoundError:
                return None
        record = self._to_record(document)
        # A document in this partition always belongs to this owner
        if record.owner_id != owner_id:
            return None
        return record

    async def create(self, record: RecordT) -> RecordT:
        """Insert a new document into the owner's partition."""
        check_writable(record)
        with translate_transport_errors("create"):
            try:
                created = await self._container.create_item(body=record.to_document())
            except CosmosResourceExistsError as e:
                raise ConflictError(record.id) from e
        return self._to_record(created)

    async def update(self, record_id: str, record: RecordT) -> None:
        """
        Replace the document at (record_id, record.owner_id).

        The SDK routes the write by the document's userId, which is the
        record's own owner and therefore the partition it was created in.
        """
        check_writable(record, record_id)
        with translate_transport_errors("update"):
            await self._container.upsert_item(body=record.to_document())

    async def delete(self, record_id: str, owner_id: str) -> None:
        """Point delete on (id, owner partition). Missing is a no-op."""
        with translate_transport_errors("delete"):
            try:
                await self._container.delete_item(
                    item=record_id,
                    partition_key=owner_id,
                )
            except CosmosResourceNotFoundError:
                logger.debug("cosmos_delete_missing", record_id=record_id)
