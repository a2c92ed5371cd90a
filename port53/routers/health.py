"""
Health Check API Router
Readiness and liveness probes backed by a database ping
"""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..database import Database, get_database
from ..models.common import HealthCheck, HealthStatus


router = APIRouter(tags=["Health"])

logger = logging.getLogger(__name__)


# Track startup time
_startup_time = datetime.utcnow()


async def _database_check(database: Database) -> str:
    try:
        await database.ping()
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
        return str(e)
    return "ok"


@router.get(
    "/health",
    response_model=HealthCheck,
    summary="Health check",
    description="Health of the API and its database"
)
async def health_check(request: Request, database: Database = Depends(get_database)):
    """Comprehensive health check"""
    checks = {"database": await _database_check(database)}
    db_connected = checks["database"] == "ok"

    return HealthCheck(
        status=HealthStatus.HEALTHY if db_connected else HealthStatus.UNHEALTHY,
        version=request.app.state.settings.api_version,
        uptime=(datetime.utcnow() - _startup_time).total_seconds(),
        database_connected=db_connected,
        checks=checks,
    )


@router.get(
    "/health/live",
    summary="Liveness probe",
    description="Simple liveness check for Kubernetes"
)
async def liveness():
    """Liveness probe - just check if the API is running"""
    return {"status": "alive"}


@router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Readiness check for Kubernetes"
)
async def readiness(database: Database = Depends(get_database)):
    """Readiness probe - the database must answer"""
    result = await _database_check(database)
    if result != "ok":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "errors": [f"database: {result}"]},
        )
    return {"status": "ready"}


@router.get(
    "/version",
    summary="API version",
    description="Get API version information"
)
async def version(request: Request):
    """Get API version"""
    settings = request.app.state.settings
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "description": settings.api_description,
    }
