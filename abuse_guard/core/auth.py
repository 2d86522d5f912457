"""Operator API key authentication.

The operator routes (violation listing, status lookups and administrative
resets) expose who is being throttled and can lift blocks, so they require an
API key from APP_API_KEYS.

Design principles:
- Pure validation logic (``validate_api_key``) separate from the FastAPI
  dependency (``verify_api_key``) for easy testing
- Keys compared in constant time and only ever logged as a short hash
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from abuse_guard.core.config import settings
from abuse_guard.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ") == {"key1", "key2", "key3"}
        True
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def hash_api_key(api_key: str) -> str:
    """Short, non-reversible fingerprint of a key for logs."""
    return hashlib.sha256(api_key.encode()).hexdigest()[:16]


def _matches_any(provided_key: str, valid_keys: set[str]) -> bool:
    provided = provided_key.encode()
    # Compare against every key so timing does not reveal which one matched
    matched = False
    for key in valid_keys:
        matched |= hmac.compare_digest(provided, key.encode())
    return matched


def validate_api_key(provided_key: str) -> None:
    """Validate that the provided API key matches a configured key.

    Args:
        provided_key: API key to validate.

    Raises:
        AuthenticationAppError: If the key is invalid, or authentication is
            required but no keys are configured.
    """
    if not settings.app.api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.api_keys)

    if not valid_keys:
        logger.error(
            "auth.keys_not_configured",
            extra={"auth_required": True},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if not provided_key or not _matches_any(provided_key, valid_keys):
        logger.warning(
            "auth.invalid_key",
            extra={
                "api_key_hash": hash_api_key(provided_key) if provided_key else None,
                "auth_required": True,
            },
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding operator routes.

    Usage:
        @router.get("/rate-limits/violations", dependencies=[Depends(verify_api_key)])

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    if not settings.app.api_key_required:
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return

    if not x_api_key:
        logger.warning("auth.missing_key", extra={"auth_required": True})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        validate_api_key(x_api_key)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc

    logger.debug("auth.success", extra={"api_key_hash": hash_api_key(x_api_key)})
