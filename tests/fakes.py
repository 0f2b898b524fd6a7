"""In-memory stand-ins for repositories and external clients, shared by service tests.

They hold real ORM instances (never flushed) so services see the same attributes
they would with a database session.
"""

import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from craguard.core.errors import ScanningError
from craguard.models import Component, ComplianceReport, Project, SbomVersion, User, Vulnerability
from craguard.schemas.notification import NotificationEvent
from craguard.schemas.sbom import ParsedComponent, PreviousComponent
from craguard.schemas.scan import OsvQueryResult, OsvVulnerability
from craguard.schemas.vulnerability import TERMINAL_STATUSES


class FakeProjectRepository:
    def __init__(self, projects: list[Project] | None = None) -> None:
        self.projects = list(projects or [])

    def get(self, project_id: UUID) -> Project | None:
        return next((p for p in self.projects if p.id == project_id), None)

    def list_all(self) -> list[Project]:
        return list(self.projects)


class FakeUserRepository:
    def __init__(self, users: list[User] | None = None) -> None:
        self.users = list(users or [])

    def get(self, user_id: int) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    def get_by_username(self, username: str) -> User | None:
        return next((u for u in self.users if u.username == username), None)


class FakeSbomVersionRepository:
    def __init__(self) -> None:
        self.rows: list[SbomVersion] = []
        self.conflict_on_create = False

    def latest(self, project_id: UUID) -> SbomVersion | None:
        rows = [r for r in self.rows if r.project_id == project_id]
        return max(rows, key=lambda r: r.version_number) if rows else None

    def create(
        self,
        project_id: UUID,
        version_number: int,
        component_count: int,
        uploaded_by: int | None = None,
        content_hash: str | None = None,
        source_format: str | None = None,
    ) -> SbomVersion:
        taken = any(r.project_id == project_id and r.version_number == version_number for r in self.rows)
        if taken or self.conflict_on_create:
            raise IntegrityError("INSERT INTO sbom_versions", {}, Exception("duplicate key"))
        row = SbomVersion(
            id=len(self.rows) + 1,
            project_id=project_id,
            version_number=version_number,
            uploaded_by=uploaded_by,
            component_count=component_count,
            content_hash=content_hash,
            source_format=source_format,
        )
        self.rows.append(row)
        return row

    def list_for_project(self, project_id: UUID) -> list[SbomVersion]:
        rows = [r for r in self.rows if r.project_id == project_id]
        return sorted(rows, key=lambda r: r.version_number, reverse=True)


class FakeComponentRepository:
    def __init__(self, versions: FakeSbomVersionRepository) -> None:
        self.versions = versions
        self.rows: list[Component] = []

    def add(self, project_id: UUID, sbom_version_id: int, name: str, version: str, purl: str | None) -> Component:
        row = Component(
            id=uuid.uuid4(),
            project_id=project_id,
            sbom_version_id=sbom_version_id,
            name=name,
            version=version,
            purl=purl,
            component_type="library",
        )
        self.rows.append(row)
        return row

    def insert_many(
        self,
        project_id: UUID,
        sbom_version_id: int,
        components: list[ParsedComponent],
        now: datetime,
    ) -> list[Component]:
        inserted = []
        for c in components:
            row = self.add(project_id, sbom_version_id, c.name, c.version, c.purl)
            row.license = c.license
            row.author = c.author
            row.component_type = c.type
            row.created_at = now
            row.updated_at = now
            inserted.append(row)
        return inserted

    def snapshot(self, sbom_version_id: int) -> dict[str, PreviousComponent]:
        return {
            r.name: PreviousComponent(id=r.id, version=r.version)
            for r in self.rows
            if r.sbom_version_id == sbom_version_id
        }

    def current_with_purl(self, project_id: UUID) -> list[Component]:
        latest = self.versions.latest(project_id)
        if latest is None:
            return []
        return [r for r in self.rows if r.sbom_version_id == latest.id and r.purl]

    def get(self, component_id: UUID) -> Component | None:
        return next((r for r in self.rows if r.id == component_id), None)


class FakeVulnerabilityRepository:
    def __init__(self, components: FakeComponentRepository) -> None:
        self.components = components
        self.rows: list[Vulnerability] = []
        self.failing_ids: set[UUID] = set()
        self.unenriched_limits: list[int] = []

    def add(
        self,
        component_id: UUID,
        external_id: str,
        discovered_at: datetime,
        reporting_deadline: datetime,
        status: str = "Open",
        severity: str = "High",
    ) -> Vulnerability:
        row = Vulnerability(
            id=uuid.uuid4(),
            component_id=component_id,
            external_id=external_id,
            severity=severity,
            status=status,
            remediation_notes=None,
            assigned_to=None,
            discovered_at=discovered_at,
            reporting_deadline=reporting_deadline,
            updated_at=discovered_at,
            nvd_score=None,
            nvd_severity=None,
            source=None,
            auto_expired=False,
        )
        self.rows.append(row)
        return row

    def get(self, vulnerability_id: UUID) -> Vulnerability | None:
        return next((r for r in self.rows if r.id == vulnerability_id), None)

    def insert_if_absent(
        self,
        component_id: UUID,
        external_id: str,
        severity: str,
        remediation_notes: str | None,
        discovered_at: datetime,
        reporting_deadline: datetime,
    ) -> Vulnerability | None:
        if any(r.component_id == component_id and r.external_id == external_id for r in self.rows):
            return None
        row = self.add(component_id, external_id, discovered_at, reporting_deadline, severity=severity)
        row.remediation_notes = remediation_notes
        return row

    def _project_of(self, vuln: Vulnerability) -> UUID | None:
        component = self.components.get(vuln.component_id)
        return component.project_id if component else None

    def non_terminal_for_component(self, component_id: UUID) -> list[Vulnerability]:
        return [r for r in self.rows if r.component_id == component_id and r.status not in TERMINAL_STATUSES]

    def overdue_non_terminal(self, project_id: UUID, now: datetime) -> list[Vulnerability]:
        return [
            r
            for r in self.rows
            if self._project_of(r) == project_id
            and r.status not in TERMINAL_STATUSES
            and r.reporting_deadline < now
        ]

    def for_project(self, project_id: UUID) -> list[tuple[Vulnerability, Component]]:
        return [
            (r, self.components.get(r.component_id))
            for r in self.rows
            if self._project_of(r) == project_id
        ]

    def unenriched(self, project_id: UUID | None = None, limit: int = 50) -> list[Vulnerability]:
        self.unenriched_limits.append(limit)
        rows = [r for r in self.rows if r.nvd_score is None]
        if project_id is not None:
            rows = [r for r in rows if self._project_of(r) == project_id]
        return rows[:limit]

    def set_status(
        self,
        vuln: Vulnerability,
        status: str,
        now: datetime,
        auto_expired: bool | None = None,
    ) -> bool:
        if vuln.id in self.failing_ids:
            return False
        vuln.status = status
        vuln.updated_at = now
        if auto_expired is not None:
            vuln.auto_expired = auto_expired
        return True

    def update_triage(
        self,
        vuln: Vulnerability,
        now: datetime,
        status: str | None = None,
        assigned_to: str | None = None,
        remediation_notes: str | None = None,
    ) -> Vulnerability:
        if status is not None:
            vuln.status = status
        if assigned_to is not None:
            vuln.assigned_to = assigned_to
        if remediation_notes is not None:
            vuln.remediation_notes = remediation_notes
        vuln.updated_at = now
        return vuln

    def update_enrichment(
        self,
        vuln: Vulnerability,
        nvd_score: float,
        nvd_severity: str | None,
        source: str,
    ) -> None:
        vuln.nvd_score = nvd_score
        vuln.nvd_severity = nvd_severity
        vuln.source = source


class FakeMilestoneRepository:
    def __init__(self) -> None:
        self.entries: list[dict] = []

    def log(self, vulnerability_id: UUID, milestone_type: str, old_value=None, new_value=None, **kwargs) -> bool:
        self.entries.append(
            {
                "vulnerability_id": vulnerability_id,
                "milestone_type": milestone_type,
                "old_value": old_value,
                "new_value": new_value,
                **kwargs,
            }
        )
        return True

    def of_type(self, milestone_type: str) -> list[dict]:
        return [e for e in self.entries if e["milestone_type"] == milestone_type]


class FakeReportRepository:
    def __init__(self) -> None:
        self.rows: list[ComplianceReport] = []

    def create(self, project_id: UUID, report_type: str, summary: dict, generated_by: int | None = None):
        row = ComplianceReport(
            id=uuid.uuid4(),
            project_id=project_id,
            report_type=report_type,
            generated_by=generated_by,
            sent_to_regulator=False,
            summary=summary,
            created_at=datetime.now().astimezone(),
        )
        self.rows.append(row)
        return row

    def get(self, report_id: UUID) -> ComplianceReport | None:
        return next((r for r in self.rows if r.id == report_id), None)

    def list_for_project(self, project_id: UUID) -> list[ComplianceReport]:
        rows = [r for r in self.rows if r.project_id == project_id]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def mark_submitted(self, report: ComplianceReport) -> ComplianceReport:
        report.sent_to_regulator = True
        return report


class FakeOsvClient:
    """
    ``advisories`` maps purl -> advisories returned by both the batch and the single query.
    Purls in ``failing_batches`` make any batch containing them raise ScanningError.
    """

    def __init__(self, advisories: dict[str, list[OsvVulnerability]] | None = None) -> None:
        self.advisories = dict(advisories or {})
        self.failing_batches: set[str] = set()
        self.failing_queries: set[str] = set()
        self.batch_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    async def query_batch(self, purls: list[str]) -> list[OsvQueryResult]:
        self.batch_calls.append(list(purls))
        if any(p in self.failing_batches for p in purls):
            raise ScanningError("OSV returned 503", 503)
        return [OsvQueryResult(vulns=[OsvVulnerability(id=v.id) for v in self.advisories.get(p, [])]) for p in purls]

    async def query(self, purl: str) -> OsvQueryResult:
        self.query_calls.append(purl)
        if purl in self.failing_queries:
            raise ScanningError("OSV request failed: timeout")
        return OsvQueryResult(vulns=self.advisories.get(purl, []))


class FakePublisher:
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def publish(self, event: NotificationEvent) -> bool:
        self.events.append(event)
        return True


def advisory(
    osv_id: str,
    aliases: list[str] | None = None,
    severity: str | None = None,
    summary: str | None = None,
) -> OsvVulnerability:
    return OsvVulnerability.model_validate(
        {
            "id": osv_id,
            "aliases": aliases or [],
            "summary": summary,
            "database_specific": {"severity": severity} if severity else None,
        }
    )


def project(name: str = "demo", owner_id: int | None = None) -> Project:
    return Project(id=uuid.uuid4(), name=name, owner_id=owner_id)
