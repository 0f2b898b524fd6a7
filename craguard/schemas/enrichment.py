"""Schemas for NVD score enrichment."""

from uuid import UUID

from pydantic import BaseModel, Field

from craguard.schemas.common import CamelModel


class NvdEnrichment(BaseModel):
    """CVSS data taken from one NVD CVE record."""

    score: float = Field(..., ge=0, le=10)
    severity: str | None = None
    source: str


class EnrichmentRequest(CamelModel):
    """Body for POST /enrichment. Without projectId the global backlog is drained."""

    project_id: UUID | None = None


class EnrichmentResult(CamelModel):
    """Counts for one enrichment run."""

    success: bool = True
    enriched: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0
