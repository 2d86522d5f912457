"""Sliding-window attempt limiter with exponential backoff.

This is a non-authoritative, client-side deterrent: anyone able to clear the
backing store resets their own history. It complements server-side limits
and must never be the only line of defense.

State per key:

- Clear: no record, or a record with no attempts in the window and no block.
- Active: attempts recorded inside the window, below ``max_attempts``.
- Blocked: ``blocked_until`` is in the future; every check is refused.

Expiry is lazy. Stale timestamps are pruned and lapsed blocks are cleared
whenever a record is read; nothing runs in the background. Operations perform
an unlocked read-modify-write against the store, so two processes recording
against the same key concurrently may lose one attempt (last writer wins).
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from abuse_guard.core.logging import mask_identifier
from abuse_guard.core.security_logger import (
    SecurityLogger,
    security_logger as default_security_logger,
)
from abuse_guard.rate_limit.configs import ConfigRegistry, RateLimitConfig
from abuse_guard.rate_limit.identifiers import ANONYMOUS_IDENTIFIER
from abuse_guard.rate_limit.store import AttemptRecord, AttemptStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the caller may proceed.
        remaining_attempts: Attempts still allowed after this one (0 when blocked).
        limit: The endpoint's ``max_attempts``.
        message: Human-readable explanation when blocked.
        retry_after_seconds: Whole seconds until the block clears, when blocked.
        reset_at: Epoch seconds when the block clears or the oldest counted
            attempt leaves the window.
    """

    allowed: bool
    remaining_attempts: int
    limit: int
    message: str | None = None
    retry_after_seconds: int | None = None
    reset_at: float | None = None


def format_retry_time(seconds: int) -> str:
    """Render a retry delay as seconds, minutes or hours (rounded up).

    Examples:
        >>> format_retry_time(1)
        '1 second'
        >>> format_retry_time(90)
        '2 minutes'
        >>> format_retry_time(3600)
        '1 hour'
    """

    if seconds < 60:
        value, unit = seconds, "second"
    elif seconds < 3600:
        value, unit = math.ceil(seconds / 60), "minute"
    else:
        value, unit = math.ceil(seconds / 3600), "hour"
    return f"{value} {unit}{'' if value == 1 else 's'}"


class RateLimitEngine:
    """Decide, record and reset attempts per endpoint and identifier."""

    def __init__(
        self,
        registry: ConfigRegistry,
        store: AttemptStore,
        *,
        clock: Callable[[], float] = time.time,
        security_logger: SecurityLogger | None = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._clock = clock
        self._security_logger = security_logger or default_security_logger

    @property
    def registry(self) -> ConfigRegistry:
        return self._registry

    @property
    def store(self) -> AttemptStore:
        return self._store

    def check_rate_limit(
        self, endpoint: str, identifier: str = ANONYMOUS_IDENTIFIER
    ) -> RateLimitResult:
        """Decide whether the next attempt on endpoint is allowed.

        A check does not consume a slot; the caller records the outcome with
        ``record_attempt``. Every attempt still inside the window counts,
        successes included, so sustained use is throttled too. When the window
        is already full and no block is active, the check escalates a new block.

        Raises:
            UnknownEndpointError: If endpoint has no registered policy.
        """
        config = self._registry.get_config(endpoint)
        now = self._clock()
        record = self._load(config, identifier, now)

        if record is None:
            return RateLimitResult(
                allowed=True,
                remaining_attempts=config.max_attempts - 1,
                limit=config.max_attempts,
            )

        if record.is_blocked(now):
            return self._blocked_result(config, record.blocked_until, now)

        attempts = len(record.timestamps)
        remaining = config.max_attempts - attempts - 1
        if remaining < 0:
            self._escalate(config, identifier, record, now)
            self._store.save(endpoint, identifier, record)
            return self._blocked_result(config, record.blocked_until, now)

        return RateLimitResult(
            allowed=True,
            remaining_attempts=remaining,
            limit=config.max_attempts,
            reset_at=self._window_reset_at(config, record),
        )

    def get_rate_limit_status(
        self, endpoint: str, identifier: str = ANONYMOUS_IDENTIFIER
    ) -> RateLimitResult:
        """Alias of check_rate_limit for status displays."""
        return self.check_rate_limit(endpoint, identifier)

    def record_attempt(
        self,
        endpoint: str,
        identifier: str = ANONYMOUS_IDENTIFIER,
        success: bool = True,
    ) -> None:
        """Record the outcome of an attempt and escalate a block if needed.

        A success clears consecutive failures and any active block but keeps
        the violation count, so later abuse still backs off from where it left
        off.

        Raises:
            UnknownEndpointError: If endpoint has no registered policy.
        """
        config = self._registry.get_config(endpoint)
        now = self._clock()
        record = self._load(config, identifier, now) or AttemptRecord()

        record.timestamps.append(now)
        record.last_attempt_at = now

        if success:
            record.consecutive_failures = 0
            record.blocked_until = None
        else:
            record.consecutive_failures += 1
            if (
                not record.is_blocked(now)
                and self._failures_in_window(record) >= config.max_attempts
            ):
                self._escalate(config, identifier, record, now)

        self._store.save(endpoint, identifier, record)
        logger.debug(
            "rate_limit.attempt_recorded",
            extra={
                "endpoint": endpoint,
                "identifier": mask_identifier(identifier),
                "success": success,
                "consecutive_failures": record.consecutive_failures,
            },
        )

    def reset_rate_limit(self, endpoint: str, identifier: str = ANONYMOUS_IDENTIFIER) -> None:
        """Delete all history for the key, including its violation count."""

        self._registry.get_config(endpoint)
        self._store.remove(endpoint, identifier)
        logger.info(
            "rate_limit.reset",
            extra={"endpoint": endpoint, "identifier": mask_identifier(identifier)},
        )

    def purge_stale_records(self, max_idle_seconds: float) -> int:
        """Delete unblocked records idle for longer than max_idle_seconds."""

        return self._store.purge_stale(self._clock(), max_idle_seconds)

    def _load(
        self, config: RateLimitConfig, identifier: str, now: float
    ) -> AttemptRecord | None:
        record = self._store.load(config.endpoint, identifier)
        if record is None:
            return None

        if record.blocked_until is not None and now >= record.blocked_until:
            # Lapsed block: start a fresh window, keep the violation history
            record.blocked_until = None
            record.consecutive_failures = 0
            record.timestamps = []
            return record

        cutoff = now - config.window_seconds
        record.timestamps = [ts for ts in record.timestamps if ts > cutoff]
        return record

    @staticmethod
    def _failures_in_window(record: AttemptRecord) -> int:
        # Failures are always the newest timestamps, so the in-window count is
        # bounded by both the streak and the pruned window.
        return min(record.consecutive_failures, len(record.timestamps))

    @staticmethod
    def _window_reset_at(
        config: RateLimitConfig, record: AttemptRecord
    ) -> float | None:
        if not record.timestamps:
            return None
        return record.timestamps[0] + config.window_seconds

    def _escalate(
        self, config: RateLimitConfig, identifier: str, record: AttemptRecord, now: float
    ) -> None:
        record.violation_count += 1
        record.blocked_until = now + config.block_duration(record.violation_count)

        logger.warning(
            "rate_limit.blocked",
            extra={
                "endpoint": config.endpoint,
                "identifier": mask_identifier(identifier),
                "violation_count": record.violation_count,
                "block_s": record.blocked_until - now,
                "limit": config.max_attempts,
            },
        )
        self._security_logger.rate_limit_hit(
            config.endpoint,
            identifier,
            violation_count=record.violation_count,
            blocked_until=record.blocked_until,
        )

    @staticmethod
    def _blocked_result(
        config: RateLimitConfig, blocked_until: float, now: float
    ) -> RateLimitResult:
        retry_after = max(1, math.ceil(blocked_until - now))
        return RateLimitResult(
            allowed=False,
            remaining_attempts=0,
            limit=config.max_attempts,
            message=f"Too many attempts. Please try again in {format_retry_time(retry_after)}.",
            retry_after_seconds=retry_after,
            reset_at=blocked_until,
        )
