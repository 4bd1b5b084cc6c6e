"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for snapshot storage.
This allows us to:
1. Swap the local JSON files for another key-value backend later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from storage implementation

The interface is intentionally tiny. Each ledger owns one key and
rewrites its whole snapshot on every mutation; there is no delta
format and no partial update.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for keyed snapshot storage.

    Any storage implementation (local files, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def read(self, key: str) -> Optional[dict[str, Any]]:
        """
        Read the snapshot stored under a key.

        Args:
            key: Snapshot key (e.g. 'expenses.v1')

        Returns:
            The decoded snapshot, or None if nothing is stored

        Raises:
            CorruptSnapshotError: If stored content cannot be decoded
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def write(self, key: str, snapshot: dict[str, Any]) -> None:
        """
        Replace the snapshot stored under a key.

        Args:
            key: Snapshot key
            snapshot: JSON-compatible snapshot

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove the snapshot stored under a key.

        Returns:
            True if something was removed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptSnapshotError(StorageError):
    """Stored snapshot exists but cannot be decoded."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Snapshot {key} is corrupt: {message}")


class ConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
