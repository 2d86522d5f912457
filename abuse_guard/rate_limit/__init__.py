"""Client-side abuse-prevention rate limiting.

Windowed attempt counting with exponential backoff, persisted through an
injected key-value store. Non-authoritative: it deters casual abuse and
complements server-side limits, it does not replace them.
"""

from __future__ import annotations

from abuse_guard.rate_limit.configs import (
    RATE_LIMIT_CONFIGS,
    ConfigRegistry,
    RateLimitConfig,
    build_config_registry,
)
from abuse_guard.rate_limit.engine import RateLimitEngine, RateLimitResult, format_retry_time
from abuse_guard.rate_limit.guard import rate_limit_guard
from abuse_guard.rate_limit.identifiers import ANONYMOUS_IDENTIFIER, get_identifier
from abuse_guard.rate_limit.store import AttemptRecord, AttemptStore
from abuse_guard.rate_limit.violations import Violation, ViolationReporter

__all__ = [
    "ANONYMOUS_IDENTIFIER",
    "RATE_LIMIT_CONFIGS",
    "AttemptRecord",
    "AttemptStore",
    "ConfigRegistry",
    "RateLimitConfig",
    "RateLimitEngine",
    "RateLimitResult",
    "Violation",
    "ViolationReporter",
    "build_config_registry",
    "format_retry_time",
    "get_identifier",
    "rate_limit_guard",
]
