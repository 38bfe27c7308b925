from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and process managers.

    Exempt from authentication and rate limiting.
    """

    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
