"""Request-scoped dependencies that assemble services for route handlers."""

from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from craguard.core.config import Settings, get_settings
from craguard.core.database import get_db
from craguard.repositories.sbom_versions import SbomVersionRepository
from craguard.repositories.vulnerabilities import VulnerabilityRepository
from craguard.services.enrichment import EnrichmentPipeline
from craguard.services.factory import (
    build_enrichment,
    build_ingestion,
    build_remediation,
    build_reports,
    build_sweep,
)
from craguard.services.ingestion import IngestionService
from craguard.services.remediation import RemediationService
from craguard.services.reports import ReportService
from craguard.services.scheduled_scan import ScheduledScanOrchestrator

DbSession = Annotated[Session, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """One outbound HTTP client per request, closed when the response is sent."""
    async with httpx.AsyncClient() as client:
        yield client


HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]


def get_ingestion_service(db: DbSession, client: HttpClient, settings: AppSettings) -> IngestionService:
    return build_ingestion(db, client, settings)


def get_remediation_service(db: DbSession, client: HttpClient, settings: AppSettings) -> RemediationService:
    return build_remediation(db, settings, client)


def get_scan_orchestrator(
    db: DbSession, client: HttpClient, settings: AppSettings
) -> ScheduledScanOrchestrator:
    return build_sweep(db, client, settings)


def get_enrichment_pipeline(db: DbSession, client: HttpClient, settings: AppSettings) -> EnrichmentPipeline:
    return build_enrichment(db, client, settings)


def get_report_service(db: DbSession) -> ReportService:
    return build_reports(db)


def get_vulnerability_repository(db: DbSession) -> VulnerabilityRepository:
    return VulnerabilityRepository(db)


def get_sbom_version_repository(db: DbSession) -> SbomVersionRepository:
    return SbomVersionRepository(db)
