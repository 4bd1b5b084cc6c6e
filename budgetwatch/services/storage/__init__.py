"""
Storage Services Package

Provides the abstract snapshot interface and concrete implementations.
Local JSON files are the durable backend; the in-memory backend serves
tests and ephemeral sessions.
"""

from budgetwatch.services.storage.interface import (
    ConnectionError,
    CorruptSnapshotError,
    SnapshotStorageInterface,
    StorageError,
)
from budgetwatch.services.storage.json_file import JsonFileStorage
from budgetwatch.services.storage.memory import InMemoryStorage

__all__ = [
    # Interfaces
    "SnapshotStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptSnapshotError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
