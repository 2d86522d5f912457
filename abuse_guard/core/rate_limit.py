"""Process-wide rate limiter wiring.

This module builds the default engine from settings and exposes module-level
helpers for callers that do not manage their own engine instance.

Design goals:
- Explicit dependencies: the engine receives its registry and store; only
  this module knows how they are built from settings.
- Swap-friendly: storage backend is chosen by RATE_LIMIT_STORAGE_BACKEND.
- Rebuild on change: if settings change (primarily in tests), the engine is
  rebuilt on next access.
"""

from __future__ import annotations

import json
import logging

from abuse_guard.adapters.storage.factory import create_key_value_store
from abuse_guard.core.config import settings
from abuse_guard.rate_limit.configs import RATE_LIMIT_CONFIGS, build_config_registry
from abuse_guard.rate_limit.engine import RateLimitEngine, RateLimitResult
from abuse_guard.rate_limit.identifiers import ANONYMOUS_IDENTIFIER, get_identifier
from abuse_guard.rate_limit.store import AttemptStore
from abuse_guard.rate_limit.violations import Violation, ViolationReporter

logger = logging.getLogger(__name__)

__all__ = [
    "RATE_LIMIT_CONFIGS",
    "check_rate_limit",
    "get_identifier",
    "get_rate_limit_engine",
    "get_rate_limit_status",
    "get_rate_limit_violations",
    "get_violation_reporter",
    "purge_stale_records",
    "record_attempt",
    "reset_rate_limit",
    "reset_rate_limit_engine",
]


_engine: RateLimitEngine | None = None
_engine_config: str | None = None


def _config_fingerprint() -> str:
    return json.dumps(settings.rate_limit.model_dump(mode="json"), sort_keys=True)


def get_rate_limit_engine() -> RateLimitEngine:
    """Return the process-wide rate limit engine.

    The instance is cached in-module so the in-memory backend keeps its state
    across calls. If rate limit settings change, the engine is rebuilt.

    Returns:
        RateLimitEngine: Configured engine instance.
    """

    global _engine, _engine_config

    fingerprint = _config_fingerprint()
    if _engine is None or _engine_config != fingerprint:
        cfg = settings.rate_limit
        registry = build_config_registry(cfg.overrides, max_block_seconds=cfg.max_block_seconds)
        store = AttemptStore(create_key_value_store(cfg), prefix=cfg.key_prefix)
        _engine = RateLimitEngine(registry, store)
        _engine_config = fingerprint
        logger.info(
            "rate_limit.engine_built",
            extra={
                "storage_backend": cfg.storage_backend,
                "endpoints": len(registry),
                "overridden_endpoints": sorted(cfg.overrides),
            },
        )

    return _engine


def get_violation_reporter() -> ViolationReporter:
    """Return the reporter reading the default engine's store."""

    return ViolationReporter(get_rate_limit_engine().store)


def reset_rate_limit_engine() -> None:
    """Drop the cached engine so the next access rebuilds it."""

    global _engine, _engine_config
    _engine = None
    _engine_config = None


def check_rate_limit(endpoint: str, identifier: str = ANONYMOUS_IDENTIFIER) -> RateLimitResult:
    return get_rate_limit_engine().check_rate_limit(endpoint, identifier)


def get_rate_limit_status(endpoint: str, identifier: str = ANONYMOUS_IDENTIFIER) -> RateLimitResult:
    return get_rate_limit_engine().get_rate_limit_status(endpoint, identifier)


def record_attempt(
    endpoint: str,
    identifier: str = ANONYMOUS_IDENTIFIER,
    success: bool = True,
) -> None:
    get_rate_limit_engine().record_attempt(endpoint, identifier, success)


def reset_rate_limit(endpoint: str, identifier: str = ANONYMOUS_IDENTIFIER) -> None:
    get_rate_limit_engine().reset_rate_limit(endpoint, identifier)


def get_rate_limit_violations() -> list[Violation]:
    return get_violation_reporter().get_rate_limit_violations()


def purge_stale_records(max_idle_seconds: float | None = None) -> int:
    """Purge idle records; defaults to RATE_LIMIT_STALE_AFTER_SECONDS."""

    if max_idle_seconds is None:
        max_idle_seconds = settings.rate_limit.stale_after_seconds
    return get_rate_limit_engine().purge_stale_records(max_idle_seconds)
