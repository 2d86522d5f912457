"""Application-level exception types.

This module defines domain errors used across the rate limiter, its storage
adapters and the operator API, enabling consistent error handling, logging,
and API responses.

A blocked attempt is not an error: the engine returns a RateLimitResult with
allowed=False. Only programmer/configuration mistakes raise from the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from abuse_guard.rate_limit.engine import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    endpoint: str
    field: str
    known_endpoints: list[str]
    storage_key: str
    retry_after: int
    reset_at: float
    remaining_attempts: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationError(AppError):
    """Raised when a rate limit policy is invalid or misused."""


class UnknownEndpointError(ConfigurationError):
    """Raised when an endpoint has no registered rate limit policy."""

    def __init__(self, endpoint: str, known_endpoints: list[str] | None = None) -> None:
        details: ErrorDetails = {"endpoint": endpoint}
        if known_endpoints:
            details["known_endpoints"] = sorted(known_endpoints)
        super().__init__(
            code="unknown_endpoint",
            message=f"No rate limit policy registered for endpoint '{endpoint}'",
            details=details,
        )


class CorruptStateError(AppError):
    """Raised internally when a persisted attempt record cannot be decoded."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class RateLimitExceededError(AppError):
    """Raised by the guard when a protected operation is refused."""

    def __init__(self, endpoint: str, result: RateLimitResult) -> None:
        details: ErrorDetails = {
            "endpoint": endpoint,
            "remaining_attempts": result.remaining_attempts,
        }
        if result.retry_after_seconds is not None:
            details["retry_after"] = result.retry_after_seconds
        if result.reset_at is not None:
            details["reset_at"] = result.reset_at
        super().__init__(
            code="rate_limit_exceeded",
            message=result.message or "Too many attempts. Please try again later.",
            details=details,
        )
        self.endpoint = endpoint
        self.result = result

    @property
    def retry_after(self) -> int | None:
        return self.result.retry_after_seconds
