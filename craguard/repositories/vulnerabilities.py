"""Vulnerability rows: idempotent insert, workflow queries and guarded status writes."""

import logging
import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from craguard.models.component import Component
from craguard.models.vulnerability import VULNERABILITY_UNIQUE_CONSTRAINT, Vulnerability
from craguard.schemas.vulnerability import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

# Upper bound on rows handed to one enrichment run.
UNENRICHED_BATCH_LIMIT = 50


class VulnerabilityRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, vulnerability_id: UUID) -> Vulnerability | None:
        return self.db.query(Vulnerability).filter(Vulnerability.id == vulnerability_id).first()

    def insert_if_absent(
        self,
        component_id: UUID,
        external_id: str,
        severity: str,
        remediation_notes: str | None,
        discovered_at: datetime,
        reporting_deadline: datetime,
    ) -> Vulnerability | None:
        """
        INSERT ... ON CONFLICT DO NOTHING on (component_id, external_id).
        Returns the new row, or None when the pair is already tracked.
        """
        stmt = (
            insert(Vulnerability)
            .values(
                id=uuid.uuid4(),
                component_id=component_id,
                external_id=external_id,
                severity=severity,
                status="Open",
                remediation_notes=remediation_notes,
                discovered_at=discovered_at,
                reporting_deadline=reporting_deadline,
                updated_at=discovered_at,
                auto_expired=False,
            )
            .on_conflict_do_nothing(constraint=VULNERABILITY_UNIQUE_CONSTRAINT)
            .returning(Vulnerability.id)
        )
        new_id = self.db.execute(stmt).scalar_one_or_none()
        if new_id is None:
            return None
        return self.db.get(Vulnerability, new_id)

    def non_terminal_for_component(self, component_id: UUID) -> list[Vulnerability]:
        return (
            self.db.query(Vulnerability)
            .filter(
                Vulnerability.component_id == component_id,
                Vulnerability.status.notin_(TERMINAL_STATUSES),
            )
            .all()
        )

    def overdue_non_terminal(self, project_id: UUID, now: datetime) -> list[Vulnerability]:
        return (
            self.db.query(Vulnerability)
            .join(Component, Component.id == Vulnerability.component_id)
            .filter(
                Component.project_id == project_id,
                Vulnerability.status.notin_(TERMINAL_STATUSES),
                Vulnerability.reporting_deadline < now,
            )
            .all()
        )

    def for_project(self, project_id: UUID) -> list[tuple[Vulnerability, Component]]:
        return (
            self.db.query(Vulnerability, Component)
            .join(Component, Component.id == Vulnerability.component_id)
            .filter(Component.project_id == project_id)
            .order_by(Vulnerability.reporting_deadline, Vulnerability.external_id)
            .all()
        )

    def unenriched(
        self,
        project_id: UUID | None = None,
        limit: int = UNENRICHED_BATCH_LIMIT,
    ) -> list[Vulnerability]:
        """CVE-identified rows with no NVD score yet, oldest first."""
        q = self.db.query(Vulnerability).filter(
            Vulnerability.nvd_score.is_(None),
            Vulnerability.external_id.like("CVE-%"),
        )
        if project_id is not None:
            q = q.join(Component, Component.id == Vulnerability.component_id).filter(
                Component.project_id == project_id
            )
        return q.order_by(Vulnerability.discovered_at).limit(limit).all()

    def set_status(
        self,
        vuln: Vulnerability,
        status: str,
        now: datetime,
        auto_expired: bool | None = None,
    ) -> bool:
        """Change status and stamp updated_at inside a savepoint. Returns False if the write failed."""
        try:
            with self.db.begin_nested():
                vuln.status = status
                vuln.updated_at = now
                if auto_expired is not None:
                    vuln.auto_expired = auto_expired
        except SQLAlchemyError:
            logger.exception(
                "Failed to update vulnerability status",
                extra={"vulnerability_id": str(vuln.id), "status": status},
            )
            return False
        return True

    def update_triage(
        self,
        vuln: Vulnerability,
        now: datetime,
        status: str | None = None,
        assigned_to: str | None = None,
        remediation_notes: str | None = None,
    ) -> Vulnerability:
        """Apply a manual triage update; None fields are left unchanged. updated_at is always stamped."""
        if status is not None:
            vuln.status = status
        if assigned_to is not None:
            vuln.assigned_to = assigned_to
        if remediation_notes is not None:
            vuln.remediation_notes = remediation_notes
        vuln.updated_at = now
        self.db.flush()
        return vuln

    def update_enrichment(
        self,
        vuln: Vulnerability,
        nvd_score: float,
        nvd_severity: str | None,
        source: str,
    ) -> None:
        """Write NVD fields only; updated_at is not touched."""
        vuln.nvd_score = nvd_score
        vuln.nvd_severity = nvd_severity
        vuln.source = source
        self.db.flush()
