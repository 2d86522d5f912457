"""Pydantic schemas for the operator rate limit routes."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from abuse_guard.rate_limit.configs import RateLimitConfig
from abuse_guard.rate_limit.engine import RateLimitResult
from abuse_guard.rate_limit.violations import Violation


class RateLimitConfigResponse(BaseModel):
    """One endpoint's limiting policy."""

    endpoint: str = Field(..., description="Endpoint name used by callers.")
    max_attempts: int = Field(..., description="Failures allowed per window before blocking.")
    window_seconds: float = Field(..., description="Sliding window length in seconds.")
    base_block_seconds: float = Field(..., description="Duration of the first block.")
    max_block_seconds: float = Field(..., description="Upper bound for escalated blocks.")
    use_exponential_backoff: bool = Field(
        ..., description="Whether each new violation doubles the block duration."
    )

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> "RateLimitConfigResponse":
        return cls(
            endpoint=config.endpoint,
            max_attempts=config.max_attempts,
            window_seconds=config.window_seconds,
            base_block_seconds=config.base_block_seconds,
            max_block_seconds=config.max_block_seconds,
            use_exponential_backoff=config.use_exponential_backoff,
        )


class RateLimitConfigListResponse(BaseModel):
    configs: List[RateLimitConfigResponse] = Field(default_factory=list)


class RateLimitStatusResponse(BaseModel):
    """Current decision for an endpoint/identifier pair."""

    endpoint: str
    identifier: str
    allowed: bool
    remaining_attempts: int = Field(..., ge=0)
    limit: int
    message: str | None = Field(
        default=None, description="Human-readable explanation when blocked."
    )
    retry_after_seconds: int | None = Field(
        default=None, description="Seconds until the block clears."
    )
    reset_at: float | None = Field(
        default=None, description="Epoch seconds when the block or window resets."
    )

    @classmethod
    def from_result(
        cls, endpoint: str, identifier: str, result: RateLimitResult
    ) -> "RateLimitStatusResponse":
        return cls(
            endpoint=endpoint,
            identifier=identifier,
            allowed=result.allowed,
            remaining_attempts=result.remaining_attempts,
            limit=result.limit,
            message=result.message,
            retry_after_seconds=result.retry_after_seconds,
            reset_at=result.reset_at,
        )


class ViolationResponse(BaseModel):
    endpoint: str
    identifier: str
    blocked_until: float = Field(..., description="Epoch seconds when the block clears.")
    violation_count: int = Field(..., description="Blocks triggered for this key so far.")

    @classmethod
    def from_violation(cls, violation: Violation) -> "ViolationResponse":
        return cls(
            endpoint=violation.endpoint,
            identifier=violation.identifier,
            blocked_until=violation.blocked_until,
            violation_count=violation.violation_count,
        )


class ViolationListResponse(BaseModel):
    count: int
    violations: List[ViolationResponse] = Field(default_factory=list)
