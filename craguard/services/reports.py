"""Compliance report records and live project health.

A report stores the statistics as they were when it was generated; later
changes to vulnerability rows do not alter it.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from craguard.core.errors import NotFoundError
from craguard.models.compliance_report import ComplianceReport
from craguard.repositories.projects import ProjectRepository
from craguard.repositories.reports import ReportRepository
from craguard.repositories.vulnerabilities import VulnerabilityRepository
from craguard.schemas.report import (
    DEFAULT_REPORT_TYPE,
    ProjectHealthResponse,
    RemediationStats,
    ReportListResponse,
    ReportOut,
)
from craguard.services.compliance import calculate_remediation_stats, utc_now

logger = logging.getLogger(__name__)

# A project is compliant while its latest report is younger than this.
REPORT_VALIDITY = timedelta(days=30)


def to_report_out(row: ComplianceReport) -> ReportOut:
    return ReportOut(
        id=row.id,
        project_id=row.project_id,
        report_type=row.report_type,
        generated_by=row.generated_by,
        sent_to_regulator=bool(row.sent_to_regulator),
        created_at=row.created_at,
        summary=RemediationStats.model_validate(row.summary) if row.summary else None,
    )


class ReportService:
    def __init__(
        self,
        db: Session,
        reports: ReportRepository,
        vulnerabilities: VulnerabilityRepository,
        projects: ProjectRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db = db
        self.reports = reports
        self.vulnerabilities = vulnerabilities
        self.projects = projects
        self.clock = clock

    def _require_project(self, project_id: UUID) -> None:
        if self.projects.get(project_id) is None:
            raise NotFoundError("Project")

    def project_stats(self, project_id: UUID, now: datetime | None = None) -> RemediationStats:
        rows = [vuln for vuln, _component in self.vulnerabilities.for_project(project_id)]
        return calculate_remediation_stats(rows, now or self.clock())

    def generate(
        self,
        project_id: UUID,
        report_type: str = DEFAULT_REPORT_TYPE,
        generated_by: int | None = None,
    ) -> ReportOut:
        self._require_project(project_id)
        stats = self.project_stats(project_id)
        row = self.reports.create(
            project_id=project_id,
            report_type=report_type,
            summary=stats.model_dump(mode="json"),
            generated_by=generated_by,
        )
        self.db.commit()
        logger.info(
            "Compliance report generated",
            extra={
                "project_id": str(project_id),
                "report_type": report_type,
                "compliance_score": stats.compliance_score,
            },
        )
        return to_report_out(row)

    def list_reports(self, project_id: UUID) -> ReportListResponse:
        rows = self.reports.list_for_project(project_id)
        last = rows[0].created_at if rows else None
        return ReportListResponse(
            reports=[to_report_out(r) for r in rows],
            is_compliant=last is not None and self.clock() - last < REPORT_VALIDITY,
            last_report_at=last,
        )

    def submit(self, report_id: UUID) -> ReportOut:
        """Mark a report as sent to the market surveillance authority. Idempotent."""
        row = self.reports.get(report_id)
        if row is None:
            raise NotFoundError("Report")
        self.reports.mark_submitted(row)
        self.db.commit()
        return to_report_out(row)

    def health(self, project_id: UUID) -> ProjectHealthResponse:
        self._require_project(project_id)
        now = self.clock()
        return ProjectHealthResponse(
            project_id=project_id,
            generated_at=now,
            stats=self.project_stats(project_id, now),
        )
