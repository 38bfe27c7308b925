from __future__ import annotations

from fastapi import APIRouter, Depends

from compliance_limiter.adapters.rate_limit.registry import RateLimiterRegistry
from compliance_limiter.core.auth import verify_api_key
from compliance_limiter.core.config import settings
from compliance_limiter.core.rate_limit import enforce, get_bucket, get_registry
from compliance_limiter.schemas.rate_limit import (
    BucketInfo,
    BucketListResponse,
    RateLimitCheckRequest,
    RateLimitCheckResponse,
)

router = APIRouter(tags=["Rate limits"], dependencies=[Depends(verify_api_key)])


@router.get("/rate-limits", response_model=BucketListResponse)
async def list_buckets(
    registry: RateLimiterRegistry = Depends(get_registry),
) -> BucketListResponse:
    """List configured buckets with their limits and tracked-key counts."""
    return BucketListResponse(
        buckets=[BucketInfo(name=name, **info) for name, info in registry.stats().items()]
    )


@router.post("/rate-limits/{bucket}/check", response_model=RateLimitCheckResponse)
async def check_bucket(
    bucket: str,
    payload: RateLimitCheckRequest,
    registry: RateLimiterRegistry = Depends(get_registry),
) -> RateLimitCheckResponse:
    """Consult a bucket on behalf of an out-of-process route handler.

    Records one request for ``payload.key`` when admitted. With rate limiting
    disabled the bucket is left untouched and every check is admitted.

    Raises:
        NotFoundAppError: 404 when the bucket is not configured.
        RateLimitAppError: 429 with ``Retry-After`` when the key is throttled.
    """
    limiter = get_bucket(registry, bucket)
    if not settings.app.rate_limit_enabled:
        return RateLimitCheckResponse(
            bucket=bucket,
            allowed=True,
            limit=limiter.limit,
            remaining=limiter.limit,
            retry_after_ms=0,
        )

    result = enforce(limiter, payload.key)
    return RateLimitCheckResponse(
        bucket=bucket,
        allowed=result.allowed,
        limit=result.limit,
        remaining=result.remaining,
        retry_after_ms=result.retry_after_ms,
    )
