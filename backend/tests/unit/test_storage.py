"""
Unit tests for JSON collection storage and the undo history
"""
import json
from unittest.mock import patch

import pytest

from loomsheet.exceptions import StorageError
from loomsheet.services.history import SnapshotHistory
from loomsheet.services.storage import JsonCollectionStore


class TestJsonCollectionStore:
    """Whole-file reads and writes"""

    def test_missing_file_reads_empty(self, tmp_path):
        store = JsonCollectionStore(tmp_path / "none.json")

        assert store.read() == []

    def test_write_then_read(self, tmp_path):
        store = JsonCollectionStore(tmp_path / "data" / "rolls.json")

        store.write([{"id": "a"}, {"id": "b"}])

        assert store.read() == [{"id": "a"}, {"id": "b"}]
        assert json.loads((tmp_path / "data" / "rolls.json").read_text()) == [{"id": "a"}, {"id": "b"}]

    def test_write_replaces_whole_collection(self, tmp_path):
        store = JsonCollectionStore(tmp_path / "rolls.json")
        store.write([{"id": "a"}, {"id": "b"}])

        store.write([{"id": "c"}])

        assert store.read() == [{"id": "c"}]

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "rolls.json"
        path.write_text("{not json")

        with pytest.raises(StorageError):
            JsonCollectionStore(path).read()

    def test_non_array_raises(self, tmp_path):
        path = tmp_path / "rolls.json"
        path.write_text('{"id": "a"}')

        with pytest.raises(StorageError):
            JsonCollectionStore(path).read()

    def test_failed_write_keeps_old_file(self, tmp_path):
        store = JsonCollectionStore(tmp_path / "rolls.json")
        store.write([{"id": "a"}])

        with patch("loomsheet.services.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                store.write([{"id": "b"}])

        assert store.read() == [{"id": "a"}]
        assert [p.name for p in tmp_path.iterdir()] == ["rolls.json"]

    def test_unserialisable_records(self, tmp_path):
        with pytest.raises(StorageError):
            JsonCollectionStore(tmp_path / "rolls.json").write([{"id": object()}])


class TestSnapshotHistory:
    """Bounded undo stack"""

    def test_pop_returns_latest(self):
        history = SnapshotHistory(limit=3)
        history.push([{"id": "a"}], [])
        history.push([{"id": "b"}], [{"id": "wo"}])

        snapshot = history.pop()

        assert snapshot.rolls == [{"id": "b"}]
        assert snapshot.work_orders == [{"id": "wo"}]
        assert len(history) == 1

    def test_empty_pop(self):
        assert SnapshotHistory().pop() is None

    def test_oldest_dropped_at_limit(self):
        history = SnapshotHistory(limit=2)
        for n in range(3):
            history.push([{"n": n}], [])

        assert len(history) == 2
        assert history.pop().rolls == [{"n": 2}]
        assert history.pop().rolls == [{"n": 1}]
        assert history.pop() is None
