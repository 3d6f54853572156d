"""Health check endpoints for liveness and readiness probes."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.v1.dependencies import CacheDep, DatabaseDep
from app.schemas.health import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable", "model": ReadinessResponse}},
)
async def readiness_check(database: DatabaseDep, cache: CacheDep) -> ReadinessResponse | JSONResponse:
    """Report store and cache health.

    200 with status "degraded" when only the cache is down; 503 when the
    database is down.
    """
    database_status = "up" if await database.is_healthy() else "down"
    if cache is None:
        cache_status = "disabled"
    else:
        cache_status = "up" if await cache.client.ping() else "down"

    if database_status == "down":
        body = ReadinessResponse(status="not_ready", database="down", cache=cache_status)
        return JSONResponse(status_code=503, content=body.model_dump())
    status = "degraded" if cache_status == "down" else "ok"
    return ReadinessResponse(status=status, database=database_status, cache=cache_status)
