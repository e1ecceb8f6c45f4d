"""Tests for the Cosmos DB record store, run against FakeCosmosContainer."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from azure.core.exceptions import ServiceRequestError
from azure.cosmos.exceptions import CosmosClientTimeoutError, CosmosHttpResponseError

from budget_tracker.config import CosmosSettings
from budget_tracker.models.records import Budget, Expense
from budget_tracker.services.storage import (
    BackendUnavailableError,
    ConfigurationError,
    ConflictError,
    CosmosRecordStore,
    CosmosStoreClient,
    StorageError,
)


class TestPartitioning:
    """Every operation targets the owner's partition."""

    @pytest.mark.asyncio
    async def test_list_is_single_partition_query(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        await store.create(groceries)

        assert await store.list_by_owner("u1") == [groceries]
        assert await store.list_by_owner("u2") == []

        queries = [call for call in container.calls if call[0] == "query"]
        assert queries == [("query", "u1"), ("query", "u2")]
        assert container.queries[0] == "SELECT * FROM c WHERE c.userId = @userId"

    @pytest.mark.asyncio
    async def test_create_lands_in_owner_partition(self, container, coffee):
        store = CosmosRecordStore(container, Expense)
        await store.create(coffee)
        assert list(container.documents) == [("u1", coffee.id)]

    @pytest.mark.asyncio
    async def test_point_read_uses_owner_partition(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        await store.create(groceries)

        assert await store.get_by_id(groceries.id, "u1") == groceries
        assert ("read", "u1") in container.calls

    @pytest.mark.asyncio
    async def test_update_is_retrievable_with_create_key(self, container):
        """An updated record is found again with the (id, owner) used at create."""
        store = CosmosRecordStore(container, Budget)
        original = Budget(name="Groceries", amount=Decimal("500"), category="food", owner_id="u1")
        await store.create(original)
        replacement = Budget(id=original.id, name="Food", amount=Decimal("650"), owner_id="u1")

        await store.update(original.id, replacement)

        assert ("upsert", "u1") in container.calls
        assert list(container.documents) == [("u1", original.id)]
        stored = await store.get_by_id(original.id, "u1")
        assert stored == replacement
        assert stored.category is None

    @pytest.mark.asyncio
    async def test_update_never_uses_record_id_as_partition(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        await store.create(groceries)

        await store.update(groceries.id, groceries.model_copy(update={"name": "Renamed"}))

        partitions = {partition for _, partition in container.calls}
        assert groceries.id not in partitions


class TestAbsence:
    """Not found is an absent result, never an error."""

    @pytest.mark.asyncio
    async def test_missing_record_is_none(self, container):
        store = CosmosRecordStore(container, Budget)
        assert await store.get_by_id("missing", "u1") is None

    @pytest.mark.asyncio
    async def test_other_owner_sees_nothing(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        await store.create(groceries)
        assert await store.get_by_id(groceries.id, "u2") is None

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, container, coffee):
        store = CosmosRecordStore(container, Expense)
        await store.create(coffee)

        await store.delete(coffee.id, "u1")
        await store.delete(coffee.id, "u1")

        assert container.documents == {}

    @pytest.mark.asyncio
    async def test_delete_with_wrong_owner_keeps_record(self, container, coffee):
        store = CosmosRecordStore(container, Expense)
        await store.create(coffee)

        await store.delete(coffee.id, "u2")

        assert await store.get_by_id(coffee.id, "u1") == coffee


class TestWrites:
    """Create conflicts and write validation."""

    @pytest.mark.asyncio
    async def test_create_duplicate_conflicts(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        await store.create(groceries)

        with pytest.raises(ConflictError):
            await store.create(groceries.model_copy(update={"name": "Overwrite attempt"}))

        assert (await store.get_by_id(groceries.id, "u1")).name == "Groceries"

    @pytest.mark.asyncio
    async def test_duplicate_id_is_per_owner_partition(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        await store.create(groceries)

        await store.create(groceries.model_copy(update={"owner_id": "u2", "name": "Theirs"}))

        assert (await store.get_by_id(groceries.id, "u1")).name == "Groceries"
        assert (await store.get_by_id(groceries.id, "u2")).name == "Theirs"

    @pytest.mark.asyncio
    async def test_create_returns_stored_form(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        created = await store.create(groceries)
        assert created == groceries

    @pytest.mark.asyncio
    async def test_create_requires_owner(self, container):
        store = CosmosRecordStore(container, Budget)
        with pytest.raises(StorageError):
            await store.create(Budget(name="Orphan", amount=Decimal("1")))
        assert container.calls == []

    @pytest.mark.asyncio
    async def test_update_rejects_id_mismatch(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        with pytest.raises(StorageError):
            await store.update("another-id", groceries)
        assert container.calls == []


class TestOrdering:
    """Expense listings are sorted newest first by the backend."""

    @pytest.mark.asyncio
    async def test_order_by_date_descending(self, container):
        store = CosmosRecordStore(container, Expense, order_by="date")
        for day in (3, 1, 2):
            await store.create(Expense(
                description=f"day {day}",
                amount=Decimal("1"),
                date=datetime(2024, 5, day, tzinfo=timezone.utc),
                owner_id="u1",
            ))

        listed = await store.list_by_owner("u1")

        assert [expense.description for expense in listed] == ["day 3", "day 2", "day 1"]
        assert container.queries[-1].endswith("ORDER BY c.date DESC")

    def test_rejects_unsafe_order_field(self, container):
        with pytest.raises(ConfigurationError):
            CosmosRecordStore(container, Expense, order_by="date; DROP")


class TestTransportFailures:
    """Network trouble becomes BackendUnavailableError."""

    @pytest.mark.asyncio
    async def test_reads_are_retried(self, container, groceries):
        store = CosmosRecordStore(container, Budget)
        await store.create(groceries)
        container.fail_next(CosmosHttpResponseError(status_code=503, message="busy"))

        assert await store.get_by_id(groceries.id, "u1") == groceries
        assert container.calls.count(("read", "u1")) == 2

    @pytest.mark.asyncio
    async def test_reads_give_up_after_three_attempts(self, container):
        store = CosmosRecordStore(container, Budget)
        container.fail_next(ServiceRequestError("connection refused"), times=3)

        with pytest.raises(BackendUnavailableError):
            await store.list_by_owner("u1")
        assert len(container.calls) == 3

    @pytest.mark.asyncio
    async def test_client_timeout_is_unavailable(self, container):
        store = CosmosRecordStore(container, Budget)
        container.fail_next(CosmosClientTimeoutError(), times=3)

        with pytest.raises(BackendUnavailableError):
            await store.get_by_id("x", "u1")
        assert len(container.calls) == 3

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self, container, coffee):
        store = CosmosRecordStore(container, Expense)
        container.fail_next(CosmosHttpResponseError(status_code=408, message="timeout"))

        with pytest.raises(BackendUnavailableError):
            await store.create(coffee)
        assert container.calls == [("create", "u1")]

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, container, coffee):
        store = CosmosRecordStore(container, Expense)
        error = CosmosHttpResponseError(status_code=400, message="bad request")
        container.fail_next(error)

        with pytest.raises(CosmosHttpResponseError) as exc_info:
            await store.create(coffee)
        assert exc_info.value is error


class FakeDatabase:
    def __init__(self, name):
        self.name = name

    def get_container_client(self, container_name):
        return (self.name, container_name)


class FakeClient:
    def __init__(self):
        self.closed = False

    def get_database_client(self, name):
        return FakeDatabase(name)

    async def close(self):
        self.closed = True


class TestCosmosStoreClient:
    """Connection settings handling."""

    def test_missing_settings_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CosmosStoreClient()

    def test_reads_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("COSMOS_DB_ENDPOINT", "https://example.documents.azure.com:443/")
        monkeypatch.setenv("COSMOS_DB_KEY", "secret")
        client = CosmosStoreClient()
        assert client.settings.database_name == "BudgetTrackerDB"

    @pytest.mark.asyncio
    async def test_containers_come_from_settings(self):
        settings = CosmosSettings(
            endpoint="https://example.documents.azure.com:443/",
            key="secret",
            database_name="TestDB",
        )
        client = CosmosStoreClient(settings)
        fake = FakeClient()
        client._client = fake

        assert client.get_budgets_container() == ("TestDB", "Budgets")
        assert client.get_expenses_container() == ("TestDB", "Expenses")

        await client.close()
        assert fake.closed

    @pytest.mark.asyncio
    async def test_timeouts_come_from_settings(self):
        settings = CosmosSettings(
            endpoint="https://example.documents.azure.com:443/",
            key="c2VjcmV0",
            request_timeout_seconds=5,
        )
        client = CosmosStoreClient(settings)

        policy = client.connect().client_connection.connection_policy
        try:
            assert policy.RequestTimeout == 5
            assert policy.ReadTimeout == 5
        finally:
            await client.close()
