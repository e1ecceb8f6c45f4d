"""Services package."""

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

__all__ = [
    "BackendUnavailableError",
    "ConfigurationError",
    "ConflictError",
    "CosmosRecordStore",
    "CosmosStoreClient",
    "InMemoryRecordStore",
    "RecordStore",
    "StorageError",
]
