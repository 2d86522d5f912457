"""Factory for the configured key-value store."""

from __future__ import annotations

import time
from typing import Callable

from abuse_guard.adapters.storage.base import AbstractKeyValueStore
from abuse_guard.adapters.storage.file_store import JsonFileKeyValueStore
from abuse_guard.adapters.storage.in_memory import InMemoryKeyValueStore
from abuse_guard.core.config import RateLimitSettings
from abuse_guard.core.errors import ConfigurationError


def create_key_value_store(
    rate_limit_settings: RateLimitSettings,
    *,
    clock: Callable[[], float] = time.time,
) -> AbstractKeyValueStore:
    """Instantiate the store named by RATE_LIMIT_STORAGE_BACKEND.

    Args:
        rate_limit_settings: Resolved rate limit settings.
        clock: Time source shared with the engine.

    Returns:
        AbstractKeyValueStore: Configured store instance.

    Raises:
        ConfigurationError: If the backend is unknown or missing its path.
    """
    backend = rate_limit_settings.storage_backend

    if backend == "memory":
        return InMemoryKeyValueStore(clock=clock)

    if backend == "file":
        if not rate_limit_settings.storage_path:
            raise ConfigurationError(
                code="storage_missing_path",
                message="File storage requires RATE_LIMIT_STORAGE_PATH",
                details={"field": "storage_path"},
            )
        return JsonFileKeyValueStore(rate_limit_settings.storage_path, clock=clock)

    raise ConfigurationError(
        code="storage_unknown_backend",
        message=f"Unknown storage backend: '{backend}'. Supported backends: memory, file",
        details={"field": "storage_backend"},
    )
