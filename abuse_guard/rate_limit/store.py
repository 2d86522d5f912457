"""Persistence of per-(endpoint, identifier) attempt records.

Records live in an injected key-value store under ``<prefix><endpoint>:<identifier>``.
Endpoint names never contain ``:``, so the first separator after the prefix
splits a key unambiguously even when the identifier itself contains one.

Reads fail open: a value that cannot be decoded into an AttemptRecord is
logged and treated as absent, so a corrupted entry never locks a legitimate
user out permanently.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from pydantic import BaseModel, Field, ValidationError

from abuse_guard.adapters.storage.base import AbstractKeyValueStore
from abuse_guard.core.errors import CorruptStateError

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "rate_limit:"
KEY_SEPARATOR = ":"


class AttemptRecord(BaseModel):
    """Mutable attempt history for one endpoint/identifier pair."""

    timestamps: list[float] = Field(
        default_factory=list,
        description="Attempt times (epoch seconds), oldest first.",
    )
    consecutive_failures: int = Field(
        0, ge=0, description="Failures since the last success."
    )
    violation_count: int = Field(
        0, ge=0, description="Blocks triggered so far; cleared only by an explicit reset."
    )
    blocked_until: float | None = Field(
        None, description="Epoch seconds until which every check is refused."
    )
    last_attempt_at: float | None = Field(
        None, description="Time of the most recent recorded attempt."
    )

    def is_blocked(self, now: float) -> bool:
        return self.blocked_until is not None and now < self.blocked_until


class AttemptStore:
    """Serialize attempt records to and from a key-value store."""

    def __init__(self, kv: AbstractKeyValueStore, *, prefix: str = DEFAULT_KEY_PREFIX) -> None:
        if not prefix:
            raise ValueError("prefix must be a non-empty string")
        self._kv = kv
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def build_key(self, endpoint: str, identifier: str) -> str:
        if KEY_SEPARATOR in endpoint:
            raise ValueError(f"endpoint must not contain '{KEY_SEPARATOR}'")
        return f"{self._prefix}{endpoint}{KEY_SEPARATOR}{identifier}"

    def parse_key(self, key: str) -> tuple[str, str] | None:
        """Split a storage key into (endpoint, identifier), or None if foreign."""

        if not key.startswith(self._prefix):
            return None
        endpoint, sep, identifier = key[len(self._prefix):].partition(KEY_SEPARATOR)
        if not sep or not endpoint:
            return None
        return endpoint, identifier

    def load(self, endpoint: str, identifier: str) -> AttemptRecord | None:
        """Return the stored record, or None when missing or corrupt."""

        key = self.build_key(endpoint, identifier)
        try:
            return self._decode(key, self._kv.get(key))
        except CorruptStateError as exc:
            logger.warning(
                "rate_limit.corrupt_record",
                extra={"endpoint": endpoint, "error_code": exc.code, "error_msg": exc.message},
            )
            return None

    def save(self, endpoint: str, identifier: str, record: AttemptRecord) -> None:
        self._kv.set(self.build_key(endpoint, identifier), record.model_dump(mode="json"))

    def remove(self, endpoint: str, identifier: str) -> None:
        self._kv.remove(self.build_key(endpoint, identifier))

    def iter_records(self) -> Iterator[tuple[str, str, AttemptRecord]]:
        """Yield (endpoint, identifier, record) for every decodable record."""

        for key in self._kv.keys(self._prefix):
            parsed = self.parse_key(key)
            if parsed is None:
                continue
            try:
                record = self._decode(key, self._kv.get(key))
            except CorruptStateError as exc:
                logger.warning(
                    "rate_limit.corrupt_record",
                    extra={"endpoint": parsed[0], "error_code": exc.code, "error_msg": exc.message},
                )
                continue
            if record is not None:
                yield parsed[0], parsed[1], record

    def purge_stale(self, now: float, max_idle_seconds: float) -> int:
        """Delete records that are unblocked and idle for max_idle_seconds.

        Returns:
            Number of records removed.
        """

        removed = 0
        for endpoint, identifier, record in list(self.iter_records()):
            if record.is_blocked(now):
                continue
            last_seen = record.last_attempt_at or record.blocked_until
            if last_seen is None or now - last_seen > max_idle_seconds:
                self.remove(endpoint, identifier)
                removed += 1

        if removed:
            logger.info("rate_limit.purged", extra={"removed": removed})
        return removed

    @staticmethod
    def _decode(key: str, raw: Any) -> AttemptRecord | None:
        if raw is None:
            return None
        try:
            if isinstance(raw, (str, bytes)):
                return AttemptRecord.model_validate_json(raw)
            return AttemptRecord.model_validate(raw)
        except ValidationError as exc:
            raise CorruptStateError(
                code="corrupt_attempt_record",
                message=f"Stored attempt record is malformed ({exc.error_count()} error(s))",
                details={"storage_key": key},
            ) from exc
