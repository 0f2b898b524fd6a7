"""Compliance report records."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from craguard.models.compliance_report import ComplianceReport


class ReportRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        project_id: UUID,
        report_type: str,
        summary: dict[str, Any],
        generated_by: int | None = None,
    ) -> ComplianceReport:
        row = ComplianceReport(
            project_id=project_id,
            report_type=report_type,
            generated_by=generated_by,
            sent_to_regulator=False,
            summary=summary,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def get(self, report_id: UUID) -> ComplianceReport | None:
        return self.db.query(ComplianceReport).filter(ComplianceReport.id == report_id).first()

    def list_for_project(self, project_id: UUID) -> list[ComplianceReport]:
        return (
            self.db.query(ComplianceReport)
            .filter(ComplianceReport.project_id == project_id)
            .order_by(ComplianceReport.created_at.desc())
            .all()
        )

    def mark_submitted(self, report: ComplianceReport) -> ComplianceReport:
        report.sent_to_regulator = True
        self.db.flush()
        return report
