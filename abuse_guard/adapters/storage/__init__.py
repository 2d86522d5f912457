"""Key-value storage adapters.

Attempt records are persisted through a small abstraction so the limiter can
run against an in-memory store in tests and a file-backed store that survives
restarts, without changing the engine.
"""

from __future__ import annotations

from abuse_guard.adapters.storage.base import AbstractKeyValueStore
from abuse_guard.adapters.storage.factory import create_key_value_store
from abuse_guard.adapters.storage.file_store import JsonFileKeyValueStore
from abuse_guard.adapters.storage.in_memory import InMemoryKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "create_key_value_store",
]
