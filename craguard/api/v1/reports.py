"""Compliance reports: generate, list, mark submitted, and live health."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from craguard.api.v1.auth import AdminUser, AuthenticatedUser
from craguard.api.v1.deps import get_report_service
from craguard.schemas.report import (
    ProjectHealthResponse,
    ReportCreateRequest,
    ReportListResponse,
    ReportOut,
)
from craguard.services.reports import ReportService

router = APIRouter()

Reports = Annotated[ReportService, Depends(get_report_service)]


@router.post("", response_model=ReportOut, status_code=201)
def generate_report(body: ReportCreateRequest, service: Reports, user: AuthenticatedUser) -> ReportOut:
    """Record a report with a snapshot of the project's remediation statistics."""
    return service.generate(body.project_id, body.report_type, generated_by=user.id)


@router.get("", response_model=ReportListResponse)
def list_reports(
    service: Reports,
    _user: AuthenticatedUser,
    project_id: Annotated[UUID, Query(alias="projectId")],
) -> ReportListResponse:
    """Reports for a project, newest first; compliant while the latest is under 30 days old."""
    return service.list_reports(project_id)


@router.get("/health", response_model=ProjectHealthResponse)
def project_health(
    service: Reports,
    _user: AuthenticatedUser,
    project_id: Annotated[UUID, Query(alias="projectId")],
) -> ProjectHealthResponse:
    """Live statistics for the dashboard (not stored)."""
    return service.health(project_id)


@router.post("/{report_id}/submit", response_model=ReportOut)
def submit_report(report_id: UUID, service: Reports, _admin: AdminUser) -> ReportOut:
    """Mark a report as sent to the regulator (admin only)."""
    return service.submit(report_id)
