"""Registry of named rate limit buckets.

The application factory builds one registry at startup and keeps it on
``app.state``; route dependencies look buckets up by name from there. Tests get
isolation by constructing their own registry.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

from compliance_limiter.adapters.rate_limit.sliding_window import (
    DEFAULT_CLEANUP_INTERVAL_MS,
    BucketStore,
    SlidingWindowRateLimiter,
    now_ms,
)

if TYPE_CHECKING:
    from compliance_limiter.core.config import RateLimitSettings

logger = logging.getLogger(__name__)


class RateLimiterRegistry:
    """Owns one key -> timestamps store per bucket name."""

    def __init__(
        self,
        *,
        cleanup_interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._cleanup_interval_ms = cleanup_interval_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._stores: dict[str, BucketStore] = {}
        self._limiters: dict[str, SlidingWindowRateLimiter] = {}

    @classmethod
    def from_settings(
        cls,
        rate_limit_settings: RateLimitSettings,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> RateLimiterRegistry:
        """Build a registry with every configured bucket created up front."""
        registry = cls(
            cleanup_interval_ms=rate_limit_settings.cleanup_interval_ms,
            clock=clock,
        )
        for name, (limit, window_ms) in rate_limit_settings.buckets().items():
            registry.create_rate_limiter(name, limit=limit, window_ms=window_ms)
        return registry

    def create_rate_limiter(
        self, name: str, *, limit: int, window_ms: int
    ) -> SlidingWindowRateLimiter:
        """Create a limiter for bucket ``name``.

        Calling this again with a name already in use binds the new limiter to
        the existing store, so the bucket's counters carry over.

        Args:
            name: Logical bucket name (e.g., "upload", "classify").
            limit: Maximum admitted requests per key per window.
            window_ms: Window size in milliseconds.

        Returns:
            Limiter bound to the bucket's store.
        """
        with self._lock:
            store = self._stores.setdefault(name, {})
            limiter = SlidingWindowRateLimiter(
                name,
                store,
                limit=limit,
                window_ms=window_ms,
                cleanup_interval_ms=self._cleanup_interval_ms,
                clock=self._clock,
                lock=self._lock,
            )
            self._limiters[name] = limiter

        logger.info(
            "rate_limit.bucket_created",
            extra={"bucket": name, "limit": limit, "window_ms": window_ms},
        )
        return limiter

    def get(self, name: str) -> SlidingWindowRateLimiter:
        """Return the most recently created limiter for ``name``.

        Raises:
            KeyError: If no limiter was created under that name.
        """
        with self._lock:
            return self._limiters[name]

    def __contains__(self, name: object) -> bool:
        return name in self._limiters

    def bucket_names(self) -> list[str]:
        with self._lock:
            return sorted(self._limiters)

    def stats(self) -> dict[str, dict[str, int]]:
        """Return per-bucket configuration and store size without exposing keys."""
        with self._lock:
            return {
                name: {
                    "limit": limiter.limit,
                    "window_ms": limiter.window_ms,
                    "tracked_keys": len(self._stores[name]),
                }
                for name, limiter in sorted(self._limiters.items())
            }
