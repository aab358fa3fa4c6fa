"""
Collab Platform API - Health Check Route
=========================================

What:  Liveness/readiness endpoint for orchestrators and load balancers.
How:   Reports service identity, server time, uptime and a SELECT 1 probe
       of the database. Always answers 200; a failed probe only changes
       `status` to "degraded" and `database` to "disconnected".
Who:   Docker health checks, Kubernetes probes, uptime monitors.

Not versioned (served at /health) and exempt from rate limiting and
request logging.
"""

import time

from fastapi import APIRouter, Request

from collab_api.pipeline.envelope import utc_timestamp
from collab_api.pipeline.route import PipelineRoute
from collab_api.schemas.common import HealthResponse, ServiceInfo

router = APIRouter(tags=["Health"], route_class=PipelineRoute)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    state = request.app.state
    settings = state.settings

    database_ok = await state.database.ping()

    return HealthResponse(
        status="ok" if database_ok else "degraded",
        timestamp=utc_timestamp(),
        service=ServiceInfo(
            name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment,
        ),
        database="connected" if database_ok else "disconnected",
        uptime_seconds=round(time.time() - state.started_at, 2),
    )
