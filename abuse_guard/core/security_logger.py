"""Structured security event logging.

Security events such as rate limit hits go to a dedicated
``abuse_guard.security`` logger so operators can route them separately from
application logs. Identifiers are masked before they reach any handler.
"""

from __future__ import annotations

import logging
from typing import Any

from abuse_guard.core.logging import mask_identifier


class SecurityLogger:
    """Thin facade emitting security events as structured log records."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("abuse_guard.security")

    def rate_limit_hit(
        self,
        endpoint: str,
        identifier: str,
        *,
        violation_count: int | None = None,
        blocked_until: float | None = None,
    ) -> None:
        """Report that a caller was newly blocked on an endpoint."""

        extra: dict[str, Any] = {
            "event": "rate_limit_hit",
            "endpoint": endpoint,
            "identifier": mask_identifier(identifier),
        }
        if violation_count is not None:
            extra["violation_count"] = violation_count
        if blocked_until is not None:
            extra["blocked_until"] = blocked_until

        self._logger.warning("security.rate_limit_hit", extra=extra)


security_logger = SecurityLogger()
