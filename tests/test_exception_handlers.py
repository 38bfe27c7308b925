"""Tests for global exception handlers.

Validates that domain errors map to the right HTTP status codes and that the
error envelope stays consistent without leaking internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from compliance_limiter.core.errors import (
    AppError,
    AuthenticationAppError,
    NotFoundAppError,
    RateLimitAppError,
)
from compliance_limiter.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (AppError(code="bad_input", message="Bad input"), 400),
            (AuthenticationAppError(code="invalid_api_key", message="Invalid"), 403),
            (NotFoundAppError(code="unknown_bucket", message="Unknown"), 404),
            (RateLimitAppError(code="rate_limit_exceeded", message="Slow down"), 429),
        ],
    )
    def test_maps_error_types_to_status(
        self, client: TestClient, app_with_handlers: FastAPI, error: AppError, status_code: int
    ) -> None:
        @app_with_handlers.get("/boom")
        async def boom():
            raise error

        response = client.get("/boom")

        assert response.status_code == status_code
        data = response.json()
        assert data["error"]["code"] == error.code
        assert data["error"]["message"] == error.message
        assert "request_id" in data["error"]
        assert "details" not in data["error"]

    def test_rate_limit_error_sets_throttling_headers(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        @app_with_handlers.get("/throttled")
        async def throttled():
            raise RateLimitAppError(
                code="rate_limit_exceeded",
                message="Slow down",
                details={"bucket": "classify", "limit": 10, "remaining": 0, "retry_after": 42},
            )

        response = client.get("/throttled")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.json()["error"]["details"]["bucket"] == "classify"

    def test_other_errors_have_no_retry_after(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/invalid")
        async def invalid():
            raise NotFoundAppError(code="unknown_bucket", message="bad", details={"hint": "fix it"})

        response = client.get("/invalid")

        assert "Retry-After" not in response.headers
        assert response.json()["error"]["details"] == {"hint": "fix it"}


class TestGeneralExceptionHandler:
    def test_unexpected_exception_returns_generic_500(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        @app_with_handlers.get("/crash")
        async def crash():
            raise RuntimeError("store corrupted at key ip:10.0.0.1")

        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "10.0.0.1" not in response.text

    def test_never_leaks_stack_trace(self) -> None:
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("details")))

        body = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert "Traceback" not in json.dumps(body)
        assert "ValueError" not in json.dumps(body)


def test_setup_registers_handlers_idempotently() -> None:
    app = FastAPI()
    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
    assert Exception in app.exception_handlers
