"""In-memory key-value store with TTL support.

Notes:
- Per-process only: state is lost on restart.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from abuse_guard.adapters.storage.base import AbstractKeyValueStore


@dataclass
class _StoredItem:
    value: Any
    expires_at: float | None


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dict-backed store used for tests and single-process deployments.

    Values are deep-copied on the way in and out so callers can never mutate
    stored state without going through ``set``, which mirrors the behavior of
    a serializing backend.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._items: dict[str, _StoredItem] = {}

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired_locked()
            return len(self._items)

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            if self._is_expired(item):
                self._items.pop(key, None)
                return None
            return copy.deepcopy(item.value)

    def set(self, key: str, value: Any, *, ttl_seconds: float | None = None) -> None:
        if not key:
            raise ValueError("key must be a non-empty string")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            self._items[key] = _StoredItem(value=copy.deepcopy(value), expires_at=expires_at)

    def remove(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            self._evict_expired_locked()
            return [key for key in self._items if key.startswith(prefix)]

    def clear(self) -> None:
        """Remove every stored key."""

        with self._lock:
            self._items.clear()

    def _evict_expired_locked(self) -> None:
        expired_keys = [k for k, item in self._items.items() if self._is_expired(item)]
        for key in expired_keys:
            self._items.pop(key, None)

    def _is_expired(self, item: _StoredItem) -> bool:
        return item.expires_at is not None and self._clock() >= item.expires_at
