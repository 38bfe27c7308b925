from __future__ import annotations

from compliance_limiter.api.routes.health import router as health_router
from compliance_limiter.api.routes.rate_limits import router as rate_limits_router

__all__ = ["health_router", "rate_limits_router"]
