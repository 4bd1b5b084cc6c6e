"""Services package."""

from budgetwatch.services.storage import (
    ConnectionError,
    CorruptSnapshotError,
    InMemoryStorage,
    JsonFileStorage,
    SnapshotStorageInterface,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "CorruptSnapshotError",
    "InMemoryStorage",
    "JsonFileStorage",
    "SnapshotStorageInterface",
    "StorageError",
]
