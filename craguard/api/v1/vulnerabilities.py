"""Vulnerability triage, deadline expiry and listing."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from craguard.api.v1.auth import AuthenticatedUser
from craguard.api.v1.deps import DbSession, get_remediation_service, get_vulnerability_repository
from craguard.api.v1.vocabulary import to_internal_status, to_ui_status
from craguard.core.errors import NotFoundError
from craguard.repositories.vulnerabilities import VulnerabilityRepository
from craguard.schemas.vulnerability import (
    ExpireRequest,
    ExpireResponse,
    TriageRequest,
    TriageResponse,
    VulnerabilityListResponse,
    VulnerabilityOut,
)
from craguard.services.compliance import calculate_deadline_remaining, requires_early_warning, utc_now
from craguard.services.remediation import RemediationService

router = APIRouter()


@router.post("/triage", response_model=TriageResponse)
async def triage_vulnerability(
    body: TriageRequest,
    service: Annotated[RemediationService, Depends(get_remediation_service)],
    db: DbSession,
    user: AuthenticatedUser,
) -> TriageResponse:
    """
    Update status, assignee and/or notes. `status` accepts the dashboard words
    (discovered, reported, in-remediation, resolved, ignored) or Open/Triaged/Patched/Ignored.
    """
    status = to_internal_status(body.status) if body.status else None
    outcome = await service.triage(
        body.vulnerability_id,
        status=status,
        assigned_to=body.assigned_to,
        remediation_notes=body.remediation_notes,
        actor_id=user.id,
    )
    if not outcome.found:
        raise NotFoundError("Vulnerability")
    db.commit()
    return TriageResponse(
        success=True,
        vulnerability_id=outcome.vulnerability_id,
        status=outcome.status,
        ui_status=to_ui_status(outcome.status),
        assigned_to=outcome.assigned_to,
    )


@router.post("/expire", response_model=ExpireResponse)
def expire_vulnerabilities(
    body: ExpireRequest,
    service: Annotated[RemediationService, Depends(get_remediation_service)],
    db: DbSession,
    _user: AuthenticatedUser,
) -> ExpireResponse:
    """Move the project's open vulnerabilities past their 24h deadline to Ignored."""
    count = service.expire_overdue(body.project_id)
    db.commit()
    return ExpireResponse(count=count)


@router.get("", response_model=VulnerabilityListResponse)
def list_vulnerabilities(
    vulnerabilities: Annotated[VulnerabilityRepository, Depends(get_vulnerability_repository)],
    _user: AuthenticatedUser,
    project_id: Annotated[UUID, Query(alias="projectId")],
) -> VulnerabilityListResponse:
    """All vulnerabilities of a project, soonest deadline first, with live countdowns."""
    now = utc_now()
    items = [
        VulnerabilityOut(
            id=v.id,
            component_id=v.component_id,
            component_name=c.name,
            component_version=c.version,
            external_id=v.external_id,
            severity=v.severity,
            status=v.status,
            ui_status=to_ui_status(v.status),
            assigned_to=v.assigned_to,
            remediation_notes=v.remediation_notes,
            discovered_at=v.discovered_at,
            reporting_deadline=v.reporting_deadline,
            deadline=calculate_deadline_remaining(v.reporting_deadline, now),
            nvd_score=v.nvd_score,
            nvd_severity=v.nvd_severity,
            source=v.source,
            auto_expired=bool(v.auto_expired),
            early_warning_required=requires_early_warning(v.severity, v.nvd_score, v.status),
        )
        for v, c in vulnerabilities.for_project(project_id)
    ]
    return VulnerabilityListResponse(vulnerabilities=items)
