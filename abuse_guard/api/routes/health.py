from __future__ import annotations

from fastapi import APIRouter

from abuse_guard.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems. Does not touch the attempt
    store and needs no API key.

    Returns:
        dict: ``status`` set to "ok" plus the configured storage backend.
    """

    return {"status": "ok", "storage_backend": settings.rate_limit.storage_backend}
