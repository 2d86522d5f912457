"""Key-value store interface.

The rate limiter depends on this abstraction (not a concrete implementation)
so the backing store can be swapped (memory, file, shared cache) without
touching the engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AbstractKeyValueStore(ABC):
    """Synchronous, string-keyed store of JSON-serializable values."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None when missing or expired."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any, *, ttl_seconds: float | None = None) -> None:
        """Store a value, optionally expiring after ttl_seconds.

        Args:
            key: Storage key.
            value: JSON-serializable value.
            ttl_seconds: Lifetime in seconds; None keeps the value indefinitely.
        """
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Removing a missing key is a no-op."""
        raise NotImplementedError

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """List live keys starting with prefix."""
        raise NotImplementedError
