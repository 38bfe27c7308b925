"""Pydantic schemas for the rate limit endpoints."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class RateLimitCheckRequest(BaseModel):
    """Identity to consult a bucket for."""

    key: str = Field(
        ...,
        description="Caller identity within the bucket (e.g., 'ip:203.0.113.7' or 'user:usr_123').",
    )


class RateLimitCheckResponse(BaseModel):
    """Outcome of an admitted check."""

    bucket: str = Field(..., description="Bucket that was consulted.")
    allowed: bool = Field(..., description="Whether the request may proceed.")
    limit: int = Field(..., description="Max requests per window for the bucket.")
    remaining: int = Field(..., ge=0, description="Requests left in the trailing window.")
    retry_after_ms: int = Field(..., ge=0, description="Advisory backoff in milliseconds (0 when allowed).")


class BucketInfo(BaseModel):
    """Configuration and current footprint of one bucket."""

    name: str
    limit: int = Field(..., description="Max requests per key per window.")
    window_ms: int = Field(..., description="Sliding window size in milliseconds.")
    tracked_keys: int = Field(..., description="Keys currently held in the bucket's store.")


class BucketListResponse(BaseModel):
    buckets: List[BucketInfo] = Field(default_factory=list)
