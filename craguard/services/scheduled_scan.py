"""Scheduled re-scan of every project's current inventory.

Triggered externally (cron hitting /scans/daily or ``python -m craguard.jobs scan``).
One project's failure is recorded and the sweep moves on to the next.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from craguard.core.errors import ScanningError
from craguard.models.project import Project
from craguard.repositories.components import ComponentRepository
from craguard.repositories.projects import ProjectRepository
from craguard.schemas.scan import ScanStats, ScanSweepResponse
from craguard.services.compliance import utc_now
from craguard.services.notifications import NotificationPublisher, new_cve_event
from craguard.services.scanner import VulnerabilityScanner

logger = logging.getLogger(__name__)


class ScheduledScanOrchestrator:
    """
    Re-scans the components of each project's latest SBOM version that carry a purl.
    Rows of superseded versions are not scanned again, so a component dropped from
    the inventory stops collecting new findings.

    A failed confirmation query for one component is listed in ``errors``; the
    project's other findings are still committed and it counts as scanned.
    """

    def __init__(
        self,
        db: Session,
        projects: ProjectRepository,
        components: ComponentRepository,
        scanner: VulnerabilityScanner,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db = db
        self.projects = projects
        self.components = components
        self.scanner = scanner
        self.publisher = publisher
        self.clock = clock

    async def _scan_project(self, project: Project, stats: ScanStats, errors: list[str]) -> None:
        components = self.components.current_with_purl(project.id)
        if not components:
            return
        stats.components_scanned += len(components)

        batch = await self.scanner.scan_batch([c.purl for c in components])
        if batch.has_errors:
            logger.warning(
                "OSV batch failed during sweep",
                extra={"project_id": str(project.id), "errors": batch.errors},
            )
            errors.append(f"OSV query failed for project {project.name}")
            return

        now = self.clock()
        new_count = 0
        events = []
        for component in components:
            if component.purl not in batch.results:
                continue
            try:
                inserted = await self.scanner.record_component_findings(component.id, component.purl, now=now)
            except ScanningError as e:
                logger.warning(
                    "OSV confirmation query failed during sweep",
                    extra={"project_id": str(project.id), "purl": component.purl, "error": e.message},
                )
                errors.append(f"OSV query failed for project {project.name}: {component.purl}")
                continue
            new_count += len(inserted)
            if project.owner_id is None:
                continue
            for vuln in inserted:
                events.append(
                    new_cve_event(
                        user_id=project.owner_id,
                        external_id=vuln.external_id,
                        severity=vuln.severity,
                        component_name=component.name,
                        component_version=component.version,
                        project_name=project.name,
                        project_id=project.id,
                        vulnerability_id=vuln.id,
                        deadline=vuln.reporting_deadline,
                        now=now,
                    )
                )
        self.db.commit()
        stats.new_vulnerabilities_found += new_count
        stats.projects_scanned += 1

        # Only announce findings that were committed.
        for event in events:
            await self.publisher.publish(event)

    async def run(self) -> ScanSweepResponse:
        stats = ScanStats()
        errors: list[str] = []
        for project in self.projects.list_all():
            project_id, project_name = project.id, project.name
            try:
                await self._scan_project(project, stats, errors)
            except Exception as e:
                self.db.rollback()
                logger.exception("Scheduled scan failed for project %s", project_id)
                errors.append(f"Error scanning project {project_name}: {e}")

        logger.info(
            "Scheduled scan finished",
            extra={
                "projects_scanned": stats.projects_scanned,
                "components_scanned": stats.components_scanned,
                "new_vulnerabilities": stats.new_vulnerabilities_found,
                "error_count": len(errors),
            },
        )
        return ScanSweepResponse(
            success=True,
            timestamp=self.clock(),
            stats=stats,
            errors=errors or None,
        )
