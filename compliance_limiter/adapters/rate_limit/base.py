"""Rate limiter interfaces.

Route handlers and the HTTP dependency depend on this abstraction rather than
the in-memory implementation, so a shared store (e.g., Redis) can be dropped in
later for multi-instance deployments.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single ``check`` call.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window for the bucket.
        remaining: Requests still available in the trailing window (0 when denied).
        retry_after_ms: Advisory backoff in milliseconds (0 when allowed).
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_ms: int

    @property
    def retry_after_seconds(self) -> int:
        """Backoff rounded up to whole seconds, as used by ``Retry-After``."""
        return int(math.ceil(self.retry_after_ms / 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters bound to a single bucket."""

    name: str
    limit: int
    window_ms: int

    @abstractmethod
    def check(self, key: str) -> RateLimitResult:
        """Record a request for ``key`` if it fits in the window.

        Args:
            key: Identity being limited (e.g., IP address, user ID).

        Returns:
            RateLimitResult describing whether the request was admitted.
        """
        raise NotImplementedError

    @abstractmethod
    def tracked_keys(self) -> list[str]:
        """Return the keys currently held in the bucket's store."""
        raise NotImplementedError
