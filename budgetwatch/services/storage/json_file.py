"""
Local JSON File Storage Implementation

DESIGN DECISION: Each snapshot key maps to one JSON file in a data
directory. Files are written to a temporary sibling and renamed into
place, so a crash mid-write leaves the previous snapshot intact.

TRADEOFFS:
- Whole-file rewrites on every mutation (fine for personal ledgers)
- Blocking file I/O is pushed to a worker thread to keep the event
  loop responsive
"""

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any, Optional

from budgetwatch.services.storage.interface import (
    ConnectionError,
    CorruptSnapshotError,
    SnapshotStorageInterface,
    StorageError,
)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class JsonFileStorage(SnapshotStorageInterface):
    """Stores each snapshot as ``<data_dir>/<key>.json``."""

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid snapshot key: {key!r}")
        return self._data_dir / f"{key}.json"

    def _read_sync(self, key: str) -> Optional[dict[str, Any]]:
        path = self.path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptSnapshotError(key, f"not valid UTF-8: {e}")
        except OSError as e:
            raise ConnectionError(f"Failed to read {path}: {e}")

        try:
            snapshot = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptSnapshotError(key, str(e))
        except RecursionError:
            raise CorruptSnapshotError(key, "nesting too deep")
        if not isinstance(snapshot, dict):
            raise CorruptSnapshotError(key, f"expected an object, got {type(snapshot).__name__}")
        return snapshot

    def _write_sync(self, key: str, snapshot: dict[str, Any]) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}: {e}")

    def _delete_sync(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}")

    async def read(self, key: str) -> Optional[dict[str, Any]]:
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, snapshot: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_sync, key, snapshot)

    async def delete(self, key: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, key)
