"""
Shared fixtures.

No test talks to a real Cosmos DB account: the durable store is exercised
against FakeCosmosContainer, which mimics the async container API and
raises the SDK's own exception types.
"""

import base64
import copy
import json
from decimal import Decimal
from typing import Any, Optional

import pytest
from azure.cosmos.exceptions import (
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from budget_tracker.config import get_settings
from budget_tracker.models.records import Budget, Expense


SETTINGS_ENV_VARS = (
    "COSMOS_DB_ENDPOINT",
    "COSMOS_DB_KEY",
    "COSMOS_DB_DATABASE_NAME",
    "COSMOS_DB_REQUEST_TIMEOUT_SECONDS",
    "USE_IN_MEMORY_DB",
    "AUTH_REQUIRED",
    "FRONTEND_URL",
    "DEBUG_MODE",
)


class FakeCosmosContainer:
    """
    In-process stand-in for azure.cosmos.aio.ContainerProxy.

    Documents are keyed by (partition key, id), exactly as Cosmos
    addresses them, and every call records the partition it targeted.
    """

    def __init__(self):
        self.documents: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, Optional[str]]] = []
        self.queries: list[str] = []
        self._failures: list[BaseException] = []

    def fail_next(self, error: BaseException, times: int = 1) -> None:
        """Make the next `times` calls raise `error`."""
        self._failures.extend([error] * times)

    def _record(self, operation: str, partition_key: Optional[str]) -> None:
        self.calls.append((operation, partition_key))
        if self._failures:
            raise self._failures.pop(0)

    @staticmethod
    def _stored(document: dict[str, Any]) -> dict[str, Any]:
        stored = copy.deepcopy(document)
        stored.update({"_rid": "rid", "_etag": "\"etag\"", "_ts": 1700000000})
        return stored

    def query_items(self, query, parameters=None, partition_key=None, **kwargs):
        self._record("query", partition_key)
        self.queries.append(query)
        owner = {p["name"]: p["value"] for p in parameters or []}.get("@userId")
        matches = [
            copy.deepcopy(doc)
            for (pk, _), doc in self.documents.items()
            if pk == partition_key and doc.get("userId") == owner
        ]
        if "ORDER BY c.date DESC" in query:
            matches.sort(key=lambda doc: doc["date"], reverse=True)

        async def iterate():
            for doc in matches:
                yield doc

        return iterate()

    async def read_item(self, item, partition_key, **kwargs):
        self._record("read", partition_key)
        try:
            return copy.deepcopy(self.documents[(partition_key, item)])
        except KeyError:
            raise CosmosResourceNotFoundError(status_code=404, message="Entity not found")

    async def create_item(self, body, **kwargs):
        partition_key = body["userId"]
        self._record("create", partition_key)
        key = (partition_key, body["id"])
        if key in self.documents:
            raise CosmosResourceExistsError(status_code=409, message="Entity already exists")
        self.documents[key] = self._stored(body)
        return copy.deepcopy(self.documents[key])

    async def upsert_item(self, body, **kwargs):
        partition_key = body["userId"]
        self._record("upsert", partition_key)
        key = (partition_key, body["id"])
        self.documents[key] = self._stored(body)
        return copy.deepcopy(self.documents[key])

    async def delete_item(self, item, partition_key, **kwargs):
        self._record("delete", partition_key)
        try:
            del self.documents[(partition_key, item)]
        except KeyError:
            raise CosmosResourceNotFoundError(status_code=404, message="Entity not found")


class RecordingLogger:
    """Captures what AuditLogger writes."""

    def __init__(self):
        self.entries: list[tuple[str, str, dict]] = []

    def _write(self, level, event, **kwargs):
        self.entries.append((level, event, kwargs))

    def debug(self, event, **kwargs):
        self._write("debug", event, **kwargs)

    def info(self, event, **kwargs):
        self._write("info", event, **kwargs)

    def warning(self, event, **kwargs):
        self._write("warning", event, **kwargs)

    def error(self, event, **kwargs):
        self._write("error", event, **kwargs)

    def critical(self, event, **kwargs):
        self._write("critical", event, **kwargs)

    @property
    def event_types(self) -> list[str]:
        return [kwargs["event_type"] for _, _, kwargs in self.entries]


def make_token(claims: dict) -> str:
    """Unsigned JWT carrying `claims`; signatures are checked upstream."""
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=")
    return f"e30.{payload.decode()}.signature"


def auth_header(owner_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token({'sub': owner_id})}"}


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    """Isolate every test from the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def container() -> FakeCosmosContainer:
    return FakeCosmosContainer()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def groceries() -> Budget:
    return Budget(name="Groceries", amount=Decimal("500"), owner_id="u1")


@pytest.fixture
def coffee() -> Expense:
    return Expense(description="Coffee", amount=Decimal("4.50"), owner_id="u1")
