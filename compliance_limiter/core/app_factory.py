"""Application factory for the FastAPI app.

Centralizes app construction (logging, middleware, handlers, routers and the
rate limiter registry) so tests can build isolated instances.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from compliance_limiter.adapters.rate_limit.registry import RateLimiterRegistry
from compliance_limiter.api.routes import health_router, rate_limits_router
from compliance_limiter.core.config import settings
from compliance_limiter.core.exception_handlers import setup_exception_handlers
from compliance_limiter.core.logging import configure_logging
from compliance_limiter.core.middleware import request_id_middleware
from compliance_limiter.core.openapi import TAGS_METADATA, apply_openapi_customizations

logger = logging.getLogger(__name__)


def create_app(registry: RateLimiterRegistry | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        registry: Bucket registry to serve; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Compliance Rate Limiter",
        description=(
            "Process-local sliding-window rate limiting for the ISO compliance "
            "platform's uploads, AI classification and share-link access. "
            "Requires X-API-Key."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
        debug=settings.app.debug,
    )

    # One registry per process; every route reads buckets from app.state.
    if registry is None:
        registry = RateLimiterRegistry.from_settings(settings.rate_limit)
    app.state.rate_limiters = registry

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(rate_limits_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.started",
        extra={
            "app_env": settings.app_env,
            "buckets": registry.bucket_names(),
            "rate_limit_enabled": settings.app.rate_limit_enabled,
        },
    )
    return app
