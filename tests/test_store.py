"""Tests for key-value persistence."""

import json
from unittest.mock import patch

import pytest

from cellguard.core.errors import ErrorCodes, PersistenceError
from cellguard.persistence.store import (
    InMemoryStore,
    JsonFileStore,
    THRESHOLDS_KEY,
    create_store,
)


class TestInMemoryStore:
    def test_get_default(self, store):
        assert store.get("missing") is None
        assert store.get("missing", 5) == 5

    def test_values_are_copied(self, store):
        value = {"items": [1, 2]}
        store.set("key", value)
        value["items"].append(3)
        store.get("key")["items"].append(4)

        assert store.get("key") == {"items": [1, 2]}

    def test_delete(self, store):
        store.set("key", 1)
        store.delete("key")
        store.delete("never-set")

        assert store.get("key") is None
        assert store.keys() == []


class TestJsonFileStore:
    """Test the JSON file backend."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "state.json"
        JsonFileStore(path).set(THRESHOLDS_KEY, {"outlier": 0.87, "trend": 0.1 + 0.2})

        reloaded = JsonFileStore(path)
        assert reloaded.get(THRESHOLDS_KEY) == {"outlier": 0.87, "trend": 0.1 + 0.2}

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileStore(tmp_path / "none.json").get("anything") is None

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "state.json"
        JsonFileStore(path).set("ml_enabled", True)

        assert json.loads(path.read_text()) == {"ml_enabled": True}

    def test_delete(self, tmp_path):
        path = tmp_path / "state.json"
        store = JsonFileStore(path)
        store.set("a", 1)
        store.set("b", 2)
        store.delete("a")

        assert json.loads(path.read_text()) == {"b": 2}

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(PersistenceError) as exc_info:
            JsonFileStore(path)
        assert exc_info.value.error_code is ErrorCodes.STORAGE_READ_FAILED

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(PersistenceError):
            JsonFileStore(path)

    def test_failed_write_keeps_previous_state(self, tmp_path):
        path = tmp_path / "state.json"
        store = JsonFileStore(path)
        store.set("key", "old")

        with patch("cellguard.persistence.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError) as exc_info:
                store.set("key", "new")

        assert exc_info.value.error_code is ErrorCodes.STORAGE_WRITE_FAILED
        assert store.get("key") == "old"
        assert json.loads(path.read_text()) == {"key": "old"}
        assert list(tmp_path.glob("*.tmp")) == []


class TestCreateStore:
    def test_memory_without_path(self):
        assert isinstance(create_store(), InMemoryStore)

    def test_file_with_path(self, tmp_path):
        assert isinstance(create_store(tmp_path / "state.json"), JsonFileStore)
