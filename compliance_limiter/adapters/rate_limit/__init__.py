"""Rate limiting adapters.

This package keeps the limiter behind a small abstraction so the in-memory
sliding window can later be swapped for Redis or another shared store without
changing the API layer.
"""

from compliance_limiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from compliance_limiter.adapters.rate_limit.registry import RateLimiterRegistry
from compliance_limiter.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "RateLimitResult",
    "RateLimiterRegistry",
    "SlidingWindowRateLimiter",
]
