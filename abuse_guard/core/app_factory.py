"""Application factory for the operator API.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from abuse_guard.api.routes import health_router, rate_limits_router
from abuse_guard.core.config import settings
from abuse_guard.core.exception_handlers import setup_exception_handlers
from abuse_guard.core.logging import configure_logging
from abuse_guard.core.middleware import request_id_middleware
from abuse_guard.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Abuse Guard",
        description=(
            "Operator API for the attempt limiter: inspect per-endpoint policies, "
            "list currently blocked keys, check a key's status and lift blocks. "
            "The limiter is a deterrent that complements server-side limits; it "
            "is not authoritative. Requires X-API-Key."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limits_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
