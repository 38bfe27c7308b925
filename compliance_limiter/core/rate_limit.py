"""Rate limiting dependency for FastAPI routes.

This module wires the bucket registry into the HTTP layer: it picks the
identity a request is limited by, consults the bucket's limiter and turns a
denial into a ``RateLimitAppError`` (rendered as 429 with ``Retry-After``).

Key selection:
- The API key, once ``verify_api_key`` has accepted it, hashed so raw
  credentials never sit in the store.
- Otherwise the client IP. ``X-Forwarded-For`` is only consulted when
  ``APP_TRUST_FORWARDED_FOR`` is set, i.e. behind a proxy that overwrites it.
"""

from __future__ import annotations

import logging
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Request

from compliance_limiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from compliance_limiter.adapters.rate_limit.registry import RateLimiterRegistry
from compliance_limiter.core.auth import verify_api_key
from compliance_limiter.core.config import settings
from compliance_limiter.core.errors import NotFoundAppError, RateLimitAppError
from compliance_limiter.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def get_registry(request: Request) -> RateLimiterRegistry:
    """FastAPI dependency returning the registry built by the app factory."""
    return request.app.state.rate_limiters


def get_bucket(registry: RateLimiterRegistry, bucket: str) -> AbstractRateLimiter:
    """Look up a bucket's limiter.

    Raises:
        NotFoundAppError: If the bucket is not configured.
    """
    try:
        return registry.get(bucket)
    except KeyError:
        raise NotFoundAppError(
            code="unknown_bucket",
            message=f"Unknown rate limit bucket: {bucket}",
            details={"bucket": bucket},
        ) from None


def client_ip(request: Request) -> str:
    """Resolve the caller IP, honouring ``X-Forwarded-For`` when trusted."""
    if settings.app.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    return request.client.host if request.client else "unknown"


def build_rate_limit_key(
    request: Request,
    *,
    api_key: str | None = None,
) -> str:
    """Build the namespaced limiter key for the current request.

    Args:
        request: Incoming request, used for the IP fallback.
        api_key: Authenticated API key; never pass an unverified header value.
    """
    if api_key:
        return f"api_key:{hash_identifier(api_key)}"
    return f"ip:{client_ip(request)}"


def enforce(limiter: AbstractRateLimiter, key: str) -> RateLimitResult:
    """Consult ``limiter`` for ``key`` and reject the request on denial.

    Args:
        limiter: Bucket limiter to check against.
        key: Limiter key for the caller.

    Returns:
        The admitting RateLimitResult.

    Raises:
        RateLimitAppError: When the bucket's limit for ``key`` is exhausted.
    """
    result = limiter.check(key)
    log_extra = {
        "bucket": limiter.name,
        "key_hash": hash_identifier(key),
        "limit": result.limit,
        "remaining": result.remaining,
        "window_ms": limiter.window_ms,
    }

    if result.allowed:
        logger.info("rate_limit.allowed", extra=log_extra)
        return result

    logger.warning(
        "rate_limit.exceeded",
        extra={**log_extra, "retry_after_ms": result.retry_after_ms},
    )
    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
        details={
            "bucket": limiter.name,
            "limit": result.limit,
            "remaining": result.remaining,
            "retry_after_ms": result.retry_after_ms,
            "retry_after": result.retry_after_seconds,
        },
    )


def rate_limited(bucket: str) -> Callable[..., Awaitable[RateLimitResult | None]]:
    """Create a dependency enforcing ``bucket`` on a route.

    Usage:
        @router.post("/upload", dependencies=[Depends(rate_limited("upload"))])

    Args:
        bucket: Name of a bucket registered on ``app.state.rate_limiters``.

    The dependency authenticates through ``verify_api_key`` first, so an
    invalid key is rejected with 403 before it can mint a fresh budget.

    Returns:
        Async FastAPI dependency; resolves to the admitting result, or None
        when rate limiting is disabled.
    """

    async def dependency(
        request: Request,
        api_key: Annotated[str | None, Depends(verify_api_key)] = None,
    ) -> RateLimitResult | None:
        if not settings.app.rate_limit_enabled:
            return None

        limiter = get_bucket(get_registry(request), bucket)
        key = build_rate_limit_key(request, api_key=api_key)
        return enforce(limiter, key)

    dependency.__name__ = f"rate_limited_{bucket}"
    return dependency
