"""JSON-file key-value store.

The whole store is a single JSON document. Every operation re-reads the file,
so several processes pointed at the same path observe each other's writes.
There is no locking between processes: concurrent read-modify-write cycles
on the same key resolve as last-writer-wins.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable

from abuse_guard.adapters.storage.base import AbstractKeyValueStore

logger = logging.getLogger(__name__)


class JsonFileKeyValueStore(AbstractKeyValueStore):
    """Persistent store that survives process restarts.

    Each entry is stored as ``{"value": ..., "expires_at": float | null}``.
    An unreadable document is logged and treated as empty; the next write
    replaces it.
    """

    def __init__(self, path: str | Path, *, clock: Callable[[], float] = time.time) -> None:
        self._path = Path(path)
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._read().get(key)
            if not isinstance(entry, dict) or self._is_expired(entry):
                return None
            return entry.get("value")

    def set(self, key: str, value: Any, *, ttl_seconds: float | None = None) -> None:
        if not key:
            raise ValueError("key must be a non-empty string")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            data = self._read()
            data[key] = {"value": value, "expires_at": expires_at}
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            data = self._read()
            return [
                key
                for key, entry in data.items()
                if key.startswith(prefix)
                and isinstance(entry, dict)
                and not self._is_expired(entry)
            ]

    def _is_expired(self, entry: dict[str, Any]) -> bool:
        expires_at = entry.get("expires_at")
        return isinstance(expires_at, (int, float)) and self._clock() >= expires_at

    def _read(self) -> dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error(
                "storage.file_unreadable",
                extra={"path": str(self._path), "error_msg": str(exc)},
            )
            return {}

        if not isinstance(data, dict):
            logger.error(
                "storage.file_unreadable",
                extra={"path": str(self._path), "error_msg": "top-level value is not an object"},
            )
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, separators=(",", ":"))
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
