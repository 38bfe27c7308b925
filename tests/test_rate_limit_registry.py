"""Tests for the named bucket registry."""

from unittest.mock import Mock

import pytest

from compliance_limiter.adapters.rate_limit.registry import RateLimiterRegistry
from compliance_limiter.core.config import RateLimitSettings


def test_same_name_reuses_store() -> None:
    registry = RateLimiterRegistry(clock=Mock(return_value=0))
    first = registry.create_rate_limiter("upload", limit=2, window_ms=10_000)
    first.check("k")
    first.check("k")

    second = registry.create_rate_limiter("upload", limit=2, window_ms=10_000)
    assert second.check("k").allowed is False
    assert registry.get("upload") is second


def test_distinct_names_have_isolated_stores() -> None:
    registry = RateLimiterRegistry(clock=Mock(return_value=0))
    upload = registry.create_rate_limiter("upload", limit=1, window_ms=10_000)
    classify = registry.create_rate_limiter("classify", limit=1, window_ms=10_000)

    assert upload.check("k").allowed is True
    assert upload.check("k").allowed is False
    assert classify.check("k").allowed is True


def test_separate_registries_do_not_share_state() -> None:
    clock = Mock(return_value=0)
    a = RateLimiterRegistry(clock=clock).create_rate_limiter("upload", limit=1, window_ms=1_000)
    b = RateLimiterRegistry(clock=clock).create_rate_limiter("upload", limit=1, window_ms=1_000)

    assert a.check("k").allowed is True
    assert b.check("k").allowed is True


def test_get_unknown_bucket_raises_key_error(registry: RateLimiterRegistry) -> None:
    with pytest.raises(KeyError):
        registry.get("missing")
    assert "missing" not in registry
    assert "upload" in registry


def test_stats_reports_config_and_key_counts(registry: RateLimiterRegistry) -> None:
    registry.get("upload").check("a")
    registry.get("upload").check("b")

    assert registry.bucket_names() == ["classify", "upload"]
    assert registry.stats() == {
        "classify": {"limit": 1, "window_ms": 60_000, "tracked_keys": 0},
        "upload": {"limit": 2, "window_ms": 10_000, "tracked_keys": 2},
    }


def test_from_settings_creates_configured_buckets() -> None:
    rate_limit_settings = RateLimitSettings(
        upload_limit=5,
        upload_window_ms=1_000,
        classify_limit=2,
        classify_window_ms=2_000,
        shared_limit=7,
        shared_window_ms=3_000,
        cleanup_interval_ms=500,
    )

    registry = RateLimiterRegistry.from_settings(rate_limit_settings, clock=Mock(return_value=0))

    assert registry.bucket_names() == ["classify", "shared", "upload"]
    assert registry.get("upload").limit == 5
    assert registry.get("classify").window_ms == 2_000
    assert registry.get("shared").limit == 7
