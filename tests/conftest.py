"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module, so
every test sees the same auth and rate limit configuration.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest

from compliance_limiter.adapters.rate_limit.registry import RateLimiterRegistry


@pytest.fixture
def clock() -> Mock:
    """Simulated millisecond clock starting at t=0."""
    return Mock(return_value=0)


@pytest.fixture
def registry(clock: Mock) -> RateLimiterRegistry:
    """Registry with small buckets driven by the simulated clock."""
    registry = RateLimiterRegistry(clock=clock)
    registry.create_rate_limiter("upload", limit=2, window_ms=10_000)
    registry.create_rate_limiter("classify", limit=1, window_ms=60_000)
    return registry
