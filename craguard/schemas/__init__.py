"""Pydantic request/response schemas."""

from craguard.schemas.auth import CurrentUser, LoginRequest, TokenResponse
from craguard.schemas.enrichment import EnrichmentRequest, EnrichmentResult, NvdEnrichment
from craguard.schemas.health import HealthResponse
from craguard.schemas.notification import NotificationEvent
from craguard.schemas.report import (
    ProjectHealthResponse,
    RemediationStats,
    ReportCreateRequest,
    ReportListResponse,
    ReportOut,
)
from craguard.schemas.sbom import (
    ComponentComparison,
    ParsedComponent,
    ParsedSbom,
    PreviousComponent,
    UploadRequest,
    UploadResult,
)
from craguard.schemas.scan import (
    BatchScanResult,
    OsvQueryResult,
    OsvVulnerability,
    ScanStats,
    ScanSweepResponse,
)
from craguard.schemas.vulnerability import (
    DeadlineRemaining,
    SeverityLevel,
    TriageRequest,
    VulnerabilityStatus,
)

__all__ = [
    "BatchScanResult",
    "ComponentComparison",
    "CurrentUser",
    "DeadlineRemaining",
    "EnrichmentRequest",
    "EnrichmentResult",
    "HealthResponse",
    "LoginRequest",
    "NotificationEvent",
    "NvdEnrichment",
    "OsvQueryResult",
    "OsvVulnerability",
    "ParsedComponent",
    "ParsedSbom",
    "PreviousComponent",
    "ProjectHealthResponse",
    "RemediationStats",
    "ReportCreateRequest",
    "ReportListResponse",
    "ReportOut",
    "ScanStats",
    "ScanSweepResponse",
    "SeverityLevel",
    "TokenResponse",
    "TriageRequest",
    "UploadRequest",
    "UploadResult",
    "VulnerabilityStatus",
]
