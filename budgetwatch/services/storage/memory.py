"""
In-Memory Storage Implementation

Keeps snapshots as serialized JSON strings so that reads and writes go
through the same encode/decode path as durable storage. Used for tests
and for running without a data directory.
"""

import asyncio
import json
from typing import Any, Optional

from budgetwatch.services.storage.interface import (
    CorruptSnapshotError,
    SnapshotStorageInterface,
    StorageError,
)


class InMemoryStorage(SnapshotStorageInterface):
    """Process-local snapshot storage."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        # key -> raw serialized snapshot
        self.raw: dict[str, str] = dict(initial or {})
        self.write_count = 0

    async def read(self, key: str) -> Optional[dict[str, Any]]:
        await asyncio.sleep(0)
        raw = self.raw.get(key)
        if raw is None:
            return None
        try:
            snapshot = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptSnapshotError(key, str(e))
        except RecursionError:
            raise CorruptSnapshotError(key, "nesting too deep")
        if not isinstance(snapshot, dict):
            raise CorruptSnapshotError(key, f"expected an object, got {type(snapshot).__name__}")
        return snapshot

    async def write(self, key: str, snapshot: dict[str, Any]) -> None:
        try:
            encoded = json.dumps(snapshot)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Failed to encode snapshot {key}: {e}")
        await asyncio.sleep(0)
        self.raw[key] = encoded
        self.write_count += 1

    async def delete(self, key: str) -> bool:
        await asyncio.sleep(0)
        return self.raw.pop(key, None) is not None
