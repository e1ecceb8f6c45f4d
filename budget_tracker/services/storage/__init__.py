"""
Storage Services Package

Provides the per-owner record store contract and its two backends:
Cosmos DB (durable, partitioned by owner) and an in-memory map.
"""

from budget_tracker.services.storage.interface import (
    BackendUnavailableError,
    ConfigurationError,
    ConflictError,
    RecordStore,
    StorageError,
)
from budget_tracker.services.storage.memory import InMemoryRecordStore
from budget_tracker.services.storage.cosmos import (
    CosmosRecordStore,
    CosmosStoreClient,
)

__all__ = [
    # Interface
    "RecordStore",
    # Exceptions
    "BackendUnavailableError",
    "ConfigurationError",
    "ConflictError",
    "StorageError",
    # In-memory implementation
    "InMemoryRecordStore",
    # Cosmos DB implementation
    "CosmosRecordStore",
    "CosmosStoreClient",
]
