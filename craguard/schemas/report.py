"""Schemas for remediation statistics and compliance reports."""

from datetime import datetime
from uuid import UUID

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from craguard.schemas.common import CamelModel

DEFAULT_REPORT_TYPE = "Annex_I_Summary"


class RemediationStats(CamelModel):
    """Aggregate statistics over a project's vulnerabilities at one instant."""

    total: int = 0
    critical: int = 0
    resolved: int = 0
    ignored: int = 0
    expired: int = 0
    open: int = 0
    overdue: int = 0
    avg_remediation_hours: int | None = None
    deadlines_met_percent: int = 0
    health_score: int = Field(100, ge=0, le=100, description="Ring score for the dashboard.")
    compliance_score: int = Field(100, ge=0, le=100, description="Weighted score for reports.")


class ReportCreateRequest(CamelModel):
    """Body for POST /reports."""

    project_id: UUID
    report_type: str = Field(default=DEFAULT_REPORT_TYPE, min_length=1, max_length=64)


class ReportOut(CamelModel):
    """A stored compliance report record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    project_id: UUID
    report_type: str
    generated_by: int | None = None
    sent_to_regulator: bool = False
    created_at: datetime
    summary: RemediationStats | None = None


class ReportListResponse(CamelModel):
    """Reports for a project plus whether it is currently compliant."""

    reports: list[ReportOut] = Field(default_factory=list)
    is_compliant: bool = False
    last_report_at: datetime | None = None


class ProjectHealthResponse(CamelModel):
    """Live dashboard statistics (not stored)."""

    project_id: UUID
    generated_at: datetime
    stats: RemediationStats
