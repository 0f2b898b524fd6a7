"""Scheduled vulnerability sweep, triggered by an external cron."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header

from craguard.api.v1.deps import AppSettings, get_scan_orchestrator
from craguard.core.errors import AuthenticationError
from craguard.core.security import bearer_secret_matches
from craguard.schemas.scan import ScanSweepResponse
from craguard.services.scheduled_scan import ScheduledScanOrchestrator

router = APIRouter()


def verify_cron_secret(
    settings: AppSettings,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """When CRON_SECRET is configured, require ``Authorization: Bearer <CRON_SECRET>``."""
    if settings.CRON_SECRET is None:
        return
    if not bearer_secret_matches(authorization, settings.CRON_SECRET.get_secret_value()):
        raise AuthenticationError("Unauthorized")


@router.api_route(
    "/daily",
    methods=["GET", "POST"],
    response_model=ScanSweepResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_cron_secret)],
)
async def run_daily_scan(
    orchestrator: Annotated[ScheduledScanOrchestrator, Depends(get_scan_orchestrator)],
) -> ScanSweepResponse:
    """Re-scan every project's current inventory. Per-project failures are listed in `errors`."""
    return await orchestrator.run()
