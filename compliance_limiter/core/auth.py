"""API key authentication for internal callers.

The compliance web app's route handlers call this service with a shared API key
in ``X-API-Key``. Keys are validated against a comma-separated list from the
environment; authentication can be disabled for local development.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header

from compliance_limiter.core.config import settings
from compliance_limiter.core.errors import AuthenticationAppError
from compliance_limiter.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> sorted(parse_api_keys("key1, key2 ,key1"))
        ['key1', 'key2']
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_api_key(provided_key: str | None) -> None:
    """Check a provided key against the configured keys.

    Args:
        provided_key: Value of the X-API-Key header, if any.

    Raises:
        AuthenticationAppError: If auth is required and the key is missing,
            invalid, or no keys are configured at all.
    """
    if not settings.app.api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.api_keys)
    if not valid_keys:
        logger.error(
            "auth.failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if not provided_key:
        logger.warning("auth.failed", extra={"reason": "missing_api_key"})
        raise AuthenticationAppError(
            code="missing_api_key",
            message="Missing API key. Provide X-API-Key header.",
        )

    if provided_key not in valid_keys:
        logger.warning(
            "auth.failed",
            extra={"reason": "invalid_api_key", "key_hash": hash_identifier(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str | None:
    """FastAPI dependency for API key authentication.

    Usage:
        @router.get("/protected", dependencies=[Depends(verify_api_key)])

    Returns:
        The authenticated key, or None when authentication is disabled.

    Raises:
        AuthenticationAppError: Rendered as 403 by the global handlers.
    """
    if not settings.app.api_key_required:
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return None

    validate_api_key(x_api_key)
    logger.debug("auth.success", extra={"key_hash": hash_identifier(x_api_key or "")})
    return x_api_key
