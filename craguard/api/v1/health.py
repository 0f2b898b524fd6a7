"""Health check endpoint with optional database connectivity check."""

from fastapi import APIRouter

from craguard import __version__
from craguard.api.v1.deps import AppSettings, DbSession
from craguard.core.database import check_db_connected
from craguard.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(db: DbSession, settings: AppSettings) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        version=__version__,
        database=db_status,
    )
