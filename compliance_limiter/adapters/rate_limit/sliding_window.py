"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: every instance behind a load balancer enforces its own
  independent limit, and a restart resets all counters.
- True sliding window: each admitted request keeps its timestamp until it ages
  out, so the limit holds over any trailing window, not just aligned ones.
- Stale keys are pruned lazily; a full sweep piggybacks on ``check`` at most
  once per cleanup interval instead of running on a timer.
- No cap on distinct keys: high key cardinality grows the store until the next
  sweep.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from compliance_limiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL_MS = 60_000
MIN_RETRY_AFTER_MS = 1_000

BucketStore = dict[str, list[int]]


def now_ms() -> int:
    """Monotonic time in milliseconds; unaffected by wall-clock adjustments."""
    return time.monotonic_ns() // 1_000_000


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting request timestamps within a trailing window.

    The limiter does not own its store: a registry hands the same store to every
    limiter created under one bucket name, so a bucket is never split in two.
    """

    def __init__(
        self,
        name: str,
        store: BucketStore,
        *,
        limit: int,
        window_ms: int,
        cleanup_interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
        lock: threading.RLock | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            name: Bucket name, used for logging.
            store: Shared key -> timestamps mapping for the bucket.
            limit: Maximum admitted requests per key in any trailing window.
            window_ms: Window size in milliseconds.
            cleanup_interval_ms: Minimum spacing between full store sweeps.
            clock: Millisecond time source (monotonic by default).
            lock: Lock guarding ``store``; shared with other limiters on it.

        Raises:
            ValueError: If limit, window_ms or cleanup_interval_ms are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if cleanup_interval_ms < 0:
            raise ValueError("cleanup_interval_ms must be >= 0")

        self.name = name
        self.limit = limit
        self.window_ms = window_ms
        self._store = store
        self._cleanup_interval_ms = cleanup_interval_ms
        self._clock = clock
        self._lock = lock or threading.RLock()
        self._last_cleanup = clock()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SlidingWindowRateLimiter(name={self.name!r}, limit={self.limit}, "
            f"window_ms={self.window_ms}, keys={len(self._store)})"
        )

    def check(self, key: str) -> RateLimitResult:
        """Admit or deny one request for ``key``.

        Never raises: a denial is returned as ``allowed=False`` with an advisory
        ``retry_after_ms`` of at least one second.

        Args:
            key: Arbitrary identity string.

        Returns:
            RateLimitResult with the decision and remaining budget.
        """
        with self._lock:
            self._cleanup_locked()

            now = self._clock()
            cutoff = now - self.window_ms
            timestamps = self._prune(self._store.get(key, []), cutoff)

            if len(timestamps) >= self.limit:
                self._store[key] = timestamps
                retry_after_ms = min(timestamps) + self.window_ms - now
                return RateLimitResult(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    retry_after_ms=max(retry_after_ms, MIN_RETRY_AFTER_MS),
                )

            timestamps.append(now)
            self._store[key] = timestamps
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=self.limit - len(timestamps),
                retry_after_ms=0,
            )

    def tracked_keys(self) -> list[str]:
        with self._lock:
            return list(self._store)

    def _cleanup_locked(self) -> None:
        now = self._clock()
        if now - self._last_cleanup < self._cleanup_interval_ms:
            return
        self._last_cleanup = now

        cutoff = now - self.window_ms
        removed = 0
        for key in list(self._store):
            timestamps = self._prune(self._store[key], cutoff)
            if timestamps:
                self._store[key] = timestamps
            else:
                del self._store[key]
                removed += 1

        if removed:
            logger.debug(
                "rate_limit.cleanup",
                extra={
                    "bucket": self.name,
                    "removed_keys": removed,
                    "tracked_keys": len(self._store),
                },
            )

    @staticmethod
    def _prune(timestamps: list[int], cutoff: int) -> list[int]:
        # Order is not guaranteed if the clock ever steps back.
        return [t for t in timestamps if t > cutoff]
