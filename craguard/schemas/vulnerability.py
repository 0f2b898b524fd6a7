"""Schemas for vulnerability severity, remediation status, deadlines and triage."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from craguard.schemas.common import CamelModel

# Internal severity scale. Every external vocabulary is normalized onto it.
SeverityLevel = Literal["Critical", "High", "Medium", "Low"]

SEVERITY_VALUES: frozenset[str] = frozenset({"Critical", "High", "Medium", "Low"})

# Remediation workflow states.
VulnerabilityStatus = Literal["Open", "Triaged", "Patched", "Ignored"]

STATUS_VALUES: frozenset[str] = frozenset({"Open", "Triaged", "Patched", "Ignored"})

# No manual or automatic transition leaves these.
TERMINAL_STATUSES: frozenset[str] = frozenset({"Patched", "Ignored"})

DEFAULT_SEVERITY: SeverityLevel = "High"

DEFAULT_REMEDIATION_NOTES = "Awaiting initial triage"


class DeadlineRemaining(CamelModel):
    """Time left until a reporting deadline, decomposed for display."""

    hours: int = Field(..., ge=0)
    minutes: int = Field(..., ge=0, le=59)
    seconds: int = Field(..., ge=0, le=59)
    is_overdue: bool
    is_critical: bool = Field(
        ...,
        description="True when overdue or fewer than 6 hours remain.",
    )


class TriageRequest(CamelModel):
    """Body for POST /vulnerabilities/triage. status accepts either status vocabulary."""

    vulnerability_id: UUID
    status: str | None = Field(default=None, description="UI or internal status name.")
    assigned_to: str | None = Field(default=None, max_length=255)
    remediation_notes: str | None = None


class TriageResponse(CamelModel):
    """Result of a triage update."""

    success: bool
    vulnerability_id: UUID
    status: VulnerabilityStatus
    ui_status: str
    assigned_to: str | None = None


class ExpireRequest(CamelModel):
    """Body for POST /vulnerabilities/expire."""

    project_id: UUID


class ExpireResponse(CamelModel):
    """Number of vulnerabilities moved to Ignored by the expiry sweep."""

    count: int = Field(..., ge=0)


class VulnerabilityOut(CamelModel):
    """A tracked vulnerability with its live deadline countdown."""

    id: UUID
    component_id: UUID
    component_name: str | None = None
    component_version: str | None = None
    external_id: str
    severity: SeverityLevel
    status: VulnerabilityStatus
    ui_status: str
    assigned_to: str | None = None
    remediation_notes: str | None = None
    discovered_at: datetime
    reporting_deadline: datetime
    deadline: DeadlineRemaining
    nvd_score: float | None = None
    nvd_severity: str | None = None
    source: str | None = None
    auto_expired: bool = False
    early_warning_required: bool = False


class VulnerabilityListResponse(CamelModel):
    """Response for GET /vulnerabilities."""

    vulnerabilities: list[VulnerabilityOut] = Field(default_factory=list)
