"""Tests for snapshot storage backends."""

import json

import pytest

from budgetwatch.services.storage import (
    CorruptSnapshotError,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
)


SNAPSHOT = {"state": {"expenses": []}, "version": 1}


class TestJsonFileStorage:
    """Tests for the local JSON file backend."""

    @pytest.mark.asyncio
    async def test_read_missing_key(self, tmp_path):
        """Test reading a key that was never written."""
        storage = JsonFileStorage(tmp_path)
        assert await storage.read("expenses.v1") is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        """Test a written snapshot reads back unchanged."""
        storage = JsonFileStorage(tmp_path / "data")
        await storage.write("expenses.v1", SNAPSHOT)

        assert (tmp_path / "data" / "expenses.v1.json").exists()
        assert await storage.read("expenses.v1") == SNAPSHOT

    @pytest.mark.asyncio
    async def test_write_replaces_previous_snapshot(self, tmp_path):
        """Test whole-record replacement leaves no temp file behind."""
        storage = JsonFileStorage(tmp_path)
        await storage.write("budgets.v1", {"state": {"budgets": [1]}, "version": 1})
        await storage.write("budgets.v1", {"state": {"budgets": []}, "version": 1})

        assert await storage.read("budgets.v1") == {"state": {"budgets": []}, "version": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["budgets.v1.json"]

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path):
        """Test undecodable content raises CorruptSnapshotError."""
        (tmp_path / "expenses.v1.json").write_text("{broken", encoding="utf-8")
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(CorruptSnapshotError):
            await storage.read("expenses.v1")

    @pytest.mark.asyncio
    async def test_invalid_utf8_file(self, tmp_path):
        """Test bytes that are not UTF-8 raise CorruptSnapshotError."""
        (tmp_path / "expenses.v1.json").write_bytes(b"\xff\xfe")
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(CorruptSnapshotError):
            await storage.read("expenses.v1")

    @pytest.mark.asyncio
    async def test_deeply_nested_file(self, tmp_path):
        """Test pathological nesting raises CorruptSnapshotError."""
        depth = 200_000
        (tmp_path / "expenses.v1.json").write_text("[" * depth + "]" * depth, encoding="utf-8")
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(CorruptSnapshotError):
            await storage.read("expenses.v1")

    @pytest.mark.asyncio
    async def test_non_object_snapshot(self, tmp_path):
        """Test a JSON array is not accepted as a snapshot."""
        (tmp_path / "expenses.v1.json").write_text("[1, 2]", encoding="utf-8")
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(CorruptSnapshotError):
            await storage.read("expenses.v1")

    @pytest.mark.asyncio
    async def test_unsafe_key_rejected(self, tmp_path):
        """Test keys cannot escape the data directory."""
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(StorageError):
            await storage.write("../outside", SNAPSHOT)

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        """Test delete reports whether something was removed."""
        storage = JsonFileStorage(tmp_path)
        await storage.write("expenses.v1", SNAPSHOT)
        assert await storage.delete("expenses.v1")
        assert not await storage.delete("expenses.v1")
        assert await storage.read("expenses.v1") is None


class TestInMemoryStorage:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_write_stores_serialized_json(self):
        """Test writes go through JSON encoding."""
        storage = InMemoryStorage()
        await storage.write("expenses.v1", SNAPSHOT)
        assert json.loads(storage.raw["expenses.v1"]) == SNAPSHOT
        assert storage.write_count == 1

    @pytest.mark.asyncio
    async def test_unencodable_snapshot(self):
        """Test non-JSON values raise StorageError."""
        storage = InMemoryStorage()
        with pytest.raises(StorageError):
            await storage.write("expenses.v1", {"state": object()})
        assert "expenses.v1" not in storage.raw

    @pytest.mark.asyncio
    async def test_corrupt_initial_content(self):
        """Test seeded garbage raises CorruptSnapshotError on read."""
        storage = InMemoryStorage({"budgets.v1": "nope"})
        with pytest.raises(CorruptSnapshotError):
            await storage.read("budgets.v1")

    @pytest.mark.asyncio
    async def test_delete(self):
        """Test delete of present and absent keys."""
        storage = InMemoryStorage({"budgets.v1": "{}"})
        assert await storage.delete("budgets.v1")
        assert not await storage.delete("budgets.v1")
