"""
mwstack: Health Check Route
=============================

Liveness check for load balancers and container health checks. Exempt from
rate limiting.
"""

import time

from fastapi import APIRouter

from mwstack import __version__
from mwstack.schemas.health import HealthResponse

router = APIRouter(tags=["Health"])

# Module-level: set once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
