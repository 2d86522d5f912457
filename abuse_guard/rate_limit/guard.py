"""Wrap a protected operation with check-then-record semantics.

Usage:
    with rate_limit_guard(engine, "login", get_identifier(email=email)):
        authenticate(email, password)

The guard refuses to enter when the key is blocked, records a failure when
the body raises (and re-raises), and records a success otherwise.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from abuse_guard.core.errors import RateLimitExceededError
from abuse_guard.core.logging import mask_identifier
from abuse_guard.rate_limit.engine import RateLimitEngine, RateLimitResult
from abuse_guard.rate_limit.identifiers import ANONYMOUS_IDENTIFIER

logger = logging.getLogger(__name__)


@contextmanager
def rate_limit_guard(
    engine: RateLimitEngine,
    endpoint: str,
    identifier: str = ANONYMOUS_IDENTIFIER,
) -> Iterator[RateLimitResult]:
    """Guard a block of code with the endpoint's rate limit.

    Args:
        engine: Engine holding the policy and attempt history.
        endpoint: Registered endpoint name.
        identifier: Tracking identifier (see ``get_identifier``).

    Yields:
        RateLimitResult: The allowing check result (remaining attempts etc.).

    Raises:
        RateLimitExceededError: If the key is currently blocked. Nothing is
            recorded in that case.
    """
    result = engine.check_rate_limit(endpoint, identifier)
    if not result.allowed:
        logger.info(
            "rate_limit.refused",
            extra={
                "endpoint": endpoint,
                "identifier": mask_identifier(identifier),
                "retry_after_s": result.retry_after_seconds,
            },
        )
        raise RateLimitExceededError(endpoint, result)

    try:
        yield result
    except Exception:
        engine.record_attempt(endpoint, identifier, success=False)
        raise
    engine.record_attempt(endpoint, identifier, success=True)
