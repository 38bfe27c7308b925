"""Integration tests for the /v1/rate-limits endpoints."""

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from compliance_limiter.adapters.rate_limit.registry import RateLimiterRegistry
from compliance_limiter.core.app_factory import create_app

API_HEADERS = {"X-API-Key": "test-api-key-123"}


@pytest.fixture
def client(registry: RateLimiterRegistry) -> TestClient:
    return TestClient(create_app(registry))


class TestCheckBucket:
    def test_admitted_check_returns_result(self, client: TestClient) -> None:
        response = client.post("/v1/rate-limits/upload/check", json={"key": "ip:203.0.113.7"}, headers=API_HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "bucket": "upload",
            "allowed": True,
            "limit": 2,
            "remaining": 1,
            "retry_after_ms": 0,
        }

    def test_denied_check_returns_429_with_retry_after(self, client: TestClient, clock: Mock) -> None:
        payload = {"key": "user:usr_1"}
        client.post("/v1/rate-limits/upload/check", json=payload, headers=API_HEADERS)
        clock.return_value = 2_000
        client.post("/v1/rate-limits/upload/check", json=payload, headers=API_HEADERS)

        clock.return_value = 4_500
        response = client.post("/v1/rate-limits/upload/check", json=payload, headers=API_HEADERS)

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "rate_limit_exceeded"
        assert error["details"]["retry_after_ms"] == 5_500
        assert response.headers["Retry-After"] == "6"
        assert "request_id" in error

    def test_unknown_bucket_returns_404(self, client: TestClient) -> None:
        response = client.post("/v1/rate-limits/nope/check", json={"key": "k"}, headers=API_HEADERS)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "unknown_bucket"

    def test_missing_key_field_is_rejected(self, client: TestClient) -> None:
        response = client.post("/v1/rate-limits/upload/check", json={}, headers=API_HEADERS)
        assert response.status_code == 422

    def test_requires_api_key(self, client: TestClient) -> None:
        response = client.post("/v1/rate-limits/upload/check", json={"key": "k"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "missing_api_key"

    def test_rejects_invalid_api_key(self, client: TestClient) -> None:
        response = client.post(
            "/v1/rate-limits/upload/check", json={"key": "k"}, headers={"X-API-Key": "wrong"}
        )
        assert response.status_code == 403

    @patch("compliance_limiter.api.routes.rate_limits.settings")
    def test_disabled_rate_limiting_admits_without_recording(
        self, mock_settings, client: TestClient, registry: RateLimiterRegistry
    ) -> None:
        mock_settings.app.rate_limit_enabled = False

        for _ in range(5):
            response = client.post(
                "/v1/rate-limits/upload/check", json={"key": "k"}, headers=API_HEADERS
            )
            assert response.status_code == 200
            assert response.json()["remaining"] == 2
        assert registry.get("upload").tracked_keys() == []


class TestListBuckets:
    def test_lists_buckets_with_tracked_keys(self, client: TestClient) -> None:
        client.post("/v1/rate-limits/upload/check", json={"key": "a"}, headers=API_HEADERS)

        response = client.get("/v1/rate-limits", headers=API_HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "buckets": [
                {"name": "classify", "limit": 1, "window_ms": 60_000, "tracked_keys": 0},
                {"name": "upload", "limit": 2, "window_ms": 10_000, "tracked_keys": 1},
            ]
        }

    def test_default_app_builds_configured_buckets(self) -> None:
        client = TestClient(create_app())

        names = [b["name"] for b in client.get("/v1/rate-limits", headers=API_HEADERS).json()["buckets"]]

        assert names == ["classify", "shared", "upload"]


def test_health_is_public(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_openapi_exempts_health_from_auth(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert "ApiKeyAuth" in schema["components"]["securitySchemes"]
    assert schema["paths"]["/health"]["get"]["security"] == []
    assert {t["name"] for t in schema["tags"]} >= {"Rate limits", "Health"}
