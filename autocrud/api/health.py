"""
Liveness and readiness endpoints.

Mounted by create_app() unless Settings.enable_health is off:
- GET /health        always 200 while the process serves requests
- GET /health/ready  200 when the database answers, 503 otherwise
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, status

from autocrud.core.probes import check_database
from autocrud.schemas.health import HealthCheckDetail, HealthResponse, ReadinessResponse


router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    responses={503: {"description": "A dependency is unavailable"}},
)
async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """
    Probe the database through the session factory create_app() stored on
    app.state.
    """
    start = time.perf_counter()
    db_healthy = await check_database(request.app.state.session_maker)

    checks = {
        "db": HealthCheckDetail(
            healthy=db_healthy,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            error=None if db_healthy else "Database unreachable or timed out",
        ),
    }

    ready = all(check.healthy for check in checks.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        checks=checks,
        timestamp=datetime.now(timezone.utc),
    )
