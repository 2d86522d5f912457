"""Tests for the key-value storage adapters."""

import json
import threading
from pathlib import Path

import pytest

from abuse_guard.adapters.storage.factory import create_key_value_store
from abuse_guard.adapters.storage.file_store import JsonFileKeyValueStore
from abuse_guard.adapters.storage.in_memory import InMemoryKeyValueStore
from abuse_guard.core.config import RateLimitSettings
from abuse_guard.core.errors import ConfigurationError


class TestInMemoryKeyValueStore:
    def test_missing_key_returns_none(self, kv: InMemoryKeyValueStore) -> None:
        assert kv.get("missing") is None

    def test_set_get_remove(self, kv: InMemoryKeyValueStore) -> None:
        kv.set("a", {"n": 1})
        assert kv.get("a") == {"n": 1}

        kv.remove("a")
        assert kv.get("a") is None
        kv.remove("a")  # no-op

    def test_values_are_isolated_from_callers(self, kv: InMemoryKeyValueStore) -> None:
        value = {"items": [1]}
        kv.set("a", value)
        value["items"].append(2)

        fetched = kv.get("a")
        fetched["items"].append(3)

        assert kv.get("a") == {"items": [1]}

    def test_ttl_expiry(self, kv: InMemoryKeyValueStore, clock) -> None:
        kv.set("short", 1, ttl_seconds=10)
        kv.set("forever", 2)

        clock.advance(10)

        assert kv.get("short") is None
        assert kv.get("forever") == 2
        assert kv.keys() == ["forever"]

    def test_keys_filters_by_prefix(self, kv: InMemoryKeyValueStore) -> None:
        kv.set("rate_limit:login:a", 1)
        kv.set("rate_limit:signup:b", 2)
        kv.set("other", 3)

        assert sorted(kv.keys("rate_limit:")) == ["rate_limit:login:a", "rate_limit:signup:b"]
        assert len(kv) == 3

    def test_invalid_arguments(self, kv: InMemoryKeyValueStore) -> None:
        with pytest.raises(ValueError):
            kv.set("", 1)
        with pytest.raises(ValueError):
            kv.set("k", 1, ttl_seconds=0)

    def test_concurrent_sets(self) -> None:
        kv = InMemoryKeyValueStore()

        threads = [threading.Thread(target=kv.set, args=(f"k-{i}", i)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(kv) == 50
        assert kv.get("k-25") == 25


class TestJsonFileKeyValueStore:
    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        JsonFileKeyValueStore(path).set("a", {"n": 1})

        assert JsonFileKeyValueStore(path).get("a") == {"n": 1}

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        store = JsonFileKeyValueStore(tmp_path / "nested" / "store.json")

        assert store.get("a") is None
        assert store.keys() == []

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "store.json"
        JsonFileKeyValueStore(path).set("a", 1)

        assert json.loads(path.read_text())["a"]["value"] == 1

    def test_remove(self, tmp_path: Path) -> None:
        store = JsonFileKeyValueStore(tmp_path / "store.json")
        store.set("a", 1)
        store.set("b", 2)

        store.remove("a")
        store.remove("missing")

        assert store.keys() == ["b"]

    def test_ttl_expiry(self, tmp_path: Path, clock) -> None:
        store = JsonFileKeyValueStore(tmp_path / "store.json", clock=clock)
        store.set("a", 1, ttl_seconds=5)

        clock.advance(5)

        assert store.get("a") is None
        assert store.keys() == []

    def test_unreadable_document_is_treated_as_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        path.write_text("{not json")
        store = JsonFileKeyValueStore(path)

        assert store.get("a") is None

        store.set("a", 1)
        assert store.get("a") == 1

    def test_non_object_document_is_treated_as_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        path.write_text("[1, 2, 3]")

        assert JsonFileKeyValueStore(path).keys() == []


class TestCreateKeyValueStore:
    def test_memory_backend(self) -> None:
        store = create_key_value_store(RateLimitSettings(storage_backend="memory"))

        assert isinstance(store, InMemoryKeyValueStore)

    def test_file_backend(self, tmp_path: Path) -> None:
        path = tmp_path / "limits.json"
        store = create_key_value_store(
            RateLimitSettings(storage_backend="file", storage_path=str(path))
        )

        assert isinstance(store, JsonFileKeyValueStore)
        assert store.path == path

    def test_file_backend_requires_path(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            create_key_value_store(RateLimitSettings(storage_backend="file", storage_path=""))

        assert exc_info.value.code == "storage_missing_path"
