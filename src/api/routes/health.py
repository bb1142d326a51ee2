"""
Health check endpoint for the database and Redis.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_context
from src.api.models import ComponentHealth, HealthResponse
from src.services.context import AppContext

router = APIRouter()
logger = structlog.get_logger(__name__)

API_VERSION = "0.1.0"


async def _check_database(context: AppContext) -> ComponentHealth:
    start = time.perf_counter()
    try:
        healthy = await context.database.health_check()
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )
    latency_ms = (time.perf_counter() - start) * 1000
    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round(latency_ms, 2),
    )


async def _check_redis(context: AppContext) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await context.redis.ping()
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )
    latency_ms = (time.perf_counter() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency_ms, 2))


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check the database and the Redis stream transport.",
)
async def health_check(context: AppContext = Depends(get_context)) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down (nothing can be stored)
    - degraded: Redis is down (API works, device stream does not)
    - healthy: all components operational
    """
    components = {
        "database": await _check_database(context),
        "redis": await _check_redis(context),
    }

    if components["database"].status == "unhealthy":
        overall = "unhealthy"
    elif components["redis"].status == "unhealthy":
        overall = "degraded"
    else:
        overall = "healthy"

    if overall != "healthy":
        logger.warning("Health check not healthy", status=overall)
    return HealthResponse(status=overall, components=components, version=API_VERSION)
