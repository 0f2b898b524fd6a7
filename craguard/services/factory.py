"""Builds services from a session, an HTTP client and settings (shared by routes, jobs and tasks)."""

import httpx
from sqlalchemy.orm import Session

from craguard.core.config import Settings
from craguard.repositories import (
    ComponentRepository,
    MilestoneRepository,
    ProjectRepository,
    ReportRepository,
    SbomVersionRepository,
    UserRepository,
    VulnerabilityRepository,
)
from craguard.services.enrichment import EnrichmentPipeline, NvdClient
from craguard.services.ingestion import IngestionService
from craguard.services.notifications import build_publisher
from craguard.services.osv_client import OsvClient
from craguard.services.remediation import RemediationService
from craguard.services.reports import ReportService
from craguard.services.scanner import VulnerabilityScanner
from craguard.services.scheduled_scan import ScheduledScanOrchestrator


def build_scanner(db: Session, client: httpx.AsyncClient, settings: Settings) -> VulnerabilityScanner:
    osv = OsvClient(client, settings.OSV_API_BASE_URL, settings.OSV_REQUEST_TIMEOUT_SEC)
    return VulnerabilityScanner(
        osv,
        VulnerabilityRepository(db),
        MilestoneRepository(db),
        batch_size=settings.OSV_BATCH_MAX_QUERIES,
    )


def build_remediation(
    db: Session,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> RemediationService:
    return RemediationService(
        VulnerabilityRepository(db),
        MilestoneRepository(db),
        users=UserRepository(db),
        publisher=build_publisher(settings, client),
    )


def build_ingestion(db: Session, client: httpx.AsyncClient, settings: Settings) -> IngestionService:
    return IngestionService(
        db,
        ProjectRepository(db),
        SbomVersionRepository(db),
        ComponentRepository(db),
        build_remediation(db, settings, client),
        build_scanner(db, client, settings),
        infer_purls=settings.INFER_NPM_PURLS,
    )


def build_enrichment(db: Session, client: httpx.AsyncClient, settings: Settings) -> EnrichmentPipeline:
    key = settings.NVD_API_KEY
    nvd = NvdClient(
        client,
        settings.NVD_API_BASE_URL,
        key.get_secret_value() if key else None,
        settings.NVD_REQUEST_TIMEOUT_SEC,
    )
    return EnrichmentPipeline(nvd, VulnerabilityRepository(db))


def build_sweep(db: Session, client: httpx.AsyncClient, settings: Settings) -> ScheduledScanOrchestrator:
    return ScheduledScanOrchestrator(
        db,
        ProjectRepository(db),
        ComponentRepository(db),
        build_scanner(db, client, settings),
        build_publisher(settings, client),
    )


def build_reports(db: Session) -> ReportService:
    return ReportService(db, ReportRepository(db), VulnerabilityRepository(db), ProjectRepository(db))
