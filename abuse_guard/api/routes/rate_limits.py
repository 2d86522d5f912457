"""Operator routes for inspecting and lifting rate limit blocks."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from abuse_guard.core.auth import verify_api_key
from abuse_guard.core.logging import mask_identifier
from abuse_guard.core.rate_limit import get_rate_limit_engine, get_violation_reporter
from abuse_guard.rate_limit.engine import RateLimitEngine
from abuse_guard.rate_limit.identifiers import ANONYMOUS_IDENTIFIER
from abuse_guard.rate_limit.violations import ViolationReporter
from abuse_guard.schemas.rate_limit import (
    RateLimitConfigListResponse,
    RateLimitConfigResponse,
    RateLimitStatusResponse,
    ViolationListResponse,
    ViolationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rate-limits",
    tags=["Rate Limits"],
    dependencies=[Depends(verify_api_key)],
)

EngineDep = Annotated[RateLimitEngine, Depends(get_rate_limit_engine)]
ReporterDep = Annotated[ViolationReporter, Depends(get_violation_reporter)]


@router.get("/configs", response_model=RateLimitConfigListResponse)
def list_configs(engine: EngineDep) -> RateLimitConfigListResponse:
    """List the effective policy of every registered endpoint."""

    return RateLimitConfigListResponse(
        configs=[RateLimitConfigResponse.from_config(c) for c in engine.registry.configs()]
    )


@router.get("/violations", response_model=ViolationListResponse)
def list_violations(reporter: ReporterDep) -> ViolationListResponse:
    """List keys that are currently blocked, soonest expiry first."""

    violations = reporter.get_rate_limit_violations()
    return ViolationListResponse(
        count=len(violations),
        violations=[ViolationResponse.from_violation(v) for v in violations],
    )


@router.get("/{endpoint}/status", response_model=RateLimitStatusResponse)
def get_status(
    endpoint: str,
    engine: EngineDep,
    identifier: Annotated[
        str, Query(min_length=1, description="Tracking identifier (user id, email_<hash>, anonymous).")
    ] = ANONYMOUS_IDENTIFIER,
) -> RateLimitStatusResponse:
    """Return the current decision for one key without recording an attempt.

    Raises:
        UnknownEndpointError: 404 when the endpoint has no policy.
    """

    result = engine.get_rate_limit_status(endpoint, identifier)
    return RateLimitStatusResponse.from_result(endpoint, identifier, result)


@router.delete("/{endpoint}/{identifier}", status_code=status.HTTP_204_NO_CONTENT)
def reset_key(endpoint: str, identifier: str, engine: EngineDep) -> Response:
    """Lift any block and erase all history for one key."""

    engine.reset_rate_limit(endpoint, identifier)
    logger.info(
        "rate_limit.operator_reset",
        extra={"endpoint": endpoint, "identifier": mask_identifier(identifier)},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
