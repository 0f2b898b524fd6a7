"""SBOM upload orchestration: parse, diff, persist, auto-resolve, scan, commit.

The whole upload is one transaction. Parsing and validation happen before any
write, so a rejected document leaves no trace. Scan failures only cost the
affected batch its findings; the inventory is still stored.
"""

import hashlib
import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from craguard.core.errors import ConflictError, NotFoundError, ScanningError, ValidationError
from craguard.repositories.components import ComponentRepository
from craguard.repositories.projects import ProjectRepository
from craguard.repositories.sbom_versions import SbomVersionRepository
from craguard.schemas.sbom import ParsedComponent, UploadResult
from craguard.services.compliance import utc_now
from craguard.services.inventory_diff import diff_inventory, summarize_diff
from craguard.services.remediation import RemediationService
from craguard.services.sbom_parser import infer_purl, parse_sbom
from craguard.services.scanner import VulnerabilityScanner

logger = logging.getLogger(__name__)

NO_COMPONENTS_MESSAGE = "No components found in SBOM"


def content_digest(content: str | bytes | dict[str, Any]) -> str:
    """SHA-256 hex of the uploaded document; decoded objects are hashed in canonical JSON form."""
    if isinstance(content, dict):
        raw = json.dumps(content, sort_keys=True, separators=(",", ":")).encode("utf-8")
    elif isinstance(content, str):
        raw = content.encode("utf-8")
    else:
        raw = content
    return hashlib.sha256(raw).hexdigest()


def with_inferred_purls(components: list[ParsedComponent]) -> list[ParsedComponent]:
    return [
        c if c.purl else c.model_copy(update={"purl": infer_purl(c.name, c.version)})
        for c in components
    ]


class IngestionService:
    def __init__(
        self,
        db: Session,
        projects: ProjectRepository,
        versions: SbomVersionRepository,
        components: ComponentRepository,
        remediation: RemediationService,
        scanner: VulnerabilityScanner,
        infer_purls: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db = db
        self.projects = projects
        self.versions = versions
        self.components = components
        self.remediation = remediation
        self.scanner = scanner
        self.infer_purls = infer_purls
        self.clock = clock

    async def upload(
        self,
        project_id: UUID,
        content: str | bytes | dict[str, Any],
        uploaded_by: int | None = None,
    ) -> UploadResult:
        """
        Ingest one SBOM document for a project.

        Raises FormatError / ValidationError / NotFoundError before anything is written,
        and ConflictError when a concurrent upload took the next version number.
        Re-uploading the document of the latest version is a successful no-op.
        """
        now = self.clock()
        if isinstance(content, str | bytes) and not content.strip():
            raise ValidationError("SBOM content is empty")

        parsed = parse_sbom(content, now=now)
        if not parsed.components:
            raise ValidationError(NO_COMPONENTS_MESSAGE)

        project = self.projects.get(project_id)
        if project is None:
            raise NotFoundError("Project")

        digest = content_digest(content)
        latest = self.versions.latest(project_id)
        if latest is not None and latest.content_hash == digest:
            logger.info(
                "SBOM unchanged; skipping upload",
                extra={"project_id": str(project_id), "sbom_version": latest.version_number},
            )
            return UploadResult(
                success=True,
                message=f"SBOM is identical to version {latest.version_number}; nothing changed.",
                sbom_version=latest.version_number,
            )

        # Snapshot before the new version exists so the diff never sees a half-written inventory.
        previous = self.components.snapshot(latest.id) if latest is not None else {}
        comparisons = diff_inventory(parsed.components, previous)
        summary = summarize_diff(comparisons)

        try:
            version = self.versions.create(
                project_id=project_id,
                version_number=(latest.version_number if latest is not None else 0) + 1,
                component_count=len(parsed.components),
                uploaded_by=uploaded_by,
                content_hash=digest,
                source_format=parsed.format,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(
                "Another SBOM upload for this project finished first; please retry."
            ) from e

        try:
            to_store = with_inferred_purls(parsed.components) if self.infer_purls else parsed.components
            rows = self.components.insert_many(project_id, version.id, to_store, now)

            resolved = self.remediation.auto_resolve_upgrades(comparisons, version.id, now=now)

            scannable = [r for r in rows if r.purl]
            batch = await self.scanner.scan_batch([r.purl for r in scannable])
            inserted = 0
            for row in scannable:
                if row.purl not in batch.results:
                    continue
                try:
                    found = await self.scanner.record_component_findings(
                        row.id, row.purl, now=now, sbom_version_id=version.id
                    )
                except ScanningError as e:
                    logger.warning(
                        "OSV confirmation query failed",
                        extra={"component_id": str(row.id), "purl": row.purl, "error": e.message},
                    )
                    batch.errors.append(f"OSV query failed for {row.purl}: {e.message}")
                    continue
                inserted += len(found)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "SBOM ingested",
            extra={
                "project_id": str(project_id),
                "sbom_version": version.version_number,
                "source_format": parsed.format,
                "components_inserted": len(rows),
                "components_upgraded": summary.upgraded,
                "vulnerabilities_inserted": inserted,
                "vulnerabilities_auto_resolved": resolved,
                "scan_errors": len(batch.errors),
            },
        )
        message = f"Processed {len(rows)} components, found {inserted} new vulnerabilities."
        if batch.has_errors:
            message += " Vulnerability scan was incomplete; the next scheduled scan will retry."
        return UploadResult(
            success=True,
            message=message,
            components_inserted=len(rows),
            vulnerabilities_inserted=inserted,
            components_upgraded=summary.upgraded,
            vulnerabilities_auto_resolved=resolved,
            sbom_version=version.version_number,
            scan_errors=batch.errors or None,
        )
