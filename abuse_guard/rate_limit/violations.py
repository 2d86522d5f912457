"""Visibility into currently blocked keys for operators and dashboards.

This reads persisted state only; it never participates in allow/deny
decisions. Lapsed blocks are simply skipped (lazy expiry).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from abuse_guard.rate_limit.store import AttemptStore


@dataclass(frozen=True)
class Violation:
    """An active block for one endpoint/identifier pair."""

    endpoint: str
    identifier: str
    blocked_until: float
    violation_count: int


class ViolationReporter:
    def __init__(self, store: AttemptStore, *, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock

    def get_rate_limit_violations(self) -> list[Violation]:
        """Return every key whose block is still in effect, soonest expiry first."""

        now = self._clock()
        violations = [
            Violation(
                endpoint=endpoint,
                identifier=identifier,
                blocked_until=record.blocked_until,
                violation_count=record.violation_count,
            )
            for endpoint, identifier, record in self._store.iter_records()
            if record.blocked_until is not None and record.blocked_until > now
        ]
        violations.sort(key=lambda v: (v.blocked_until, v.endpoint, v.identifier))
        return violations
