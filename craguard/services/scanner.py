"""Vulnerability scanner: batch OSV lookups by purl and idempotent recording of findings."""

import logging
from datetime import datetime
from uuid import UUID

from craguard.core.errors import ScanningError
from craguard.models.vulnerability import Vulnerability
from craguard.repositories.milestones import MilestoneRepository
from craguard.repositories.vulnerabilities import VulnerabilityRepository
from craguard.schemas.scan import BatchScanResult, OsvVulnerability
from craguard.schemas.vulnerability import DEFAULT_REMEDIATION_NOTES
from craguard.services.compliance import compute_reporting_deadline, normalize_severity, utc_now
from craguard.services.osv_client import OsvClient

logger = logging.getLogger(__name__)

SCANNER_ACTOR = "scanner"


def external_id_for(advisory: OsvVulnerability) -> str:
    """First CVE alias if there is one, else the OSV-native id."""
    for alias in advisory.aliases:
        if alias.upper().startswith("CVE"):
            return alias
    return advisory.id


class VulnerabilityScanner:
    def __init__(
        self,
        osv: OsvClient,
        vulnerabilities: VulnerabilityRepository,
        milestones: MilestoneRepository,
        batch_size: int,
    ) -> None:
        self.osv = osv
        self.vulnerabilities = vulnerabilities
        self.milestones = milestones
        self.batch_size = batch_size

    async def scan_batch(self, purls: list[str]) -> BatchScanResult:
        """
        Look up advisories for each distinct purl, one OSV call per chunk.

        A failed chunk contributes no findings and one entry in ``errors``; it never
        raises. Purls with no advisories are absent from ``results``.
        """
        unique = list(dict.fromkeys(p for p in purls if p))
        result = BatchScanResult()
        for start in range(0, len(unique), self.batch_size):
            chunk = unique[start : start + self.batch_size]
            try:
                batch = await self.osv.query_batch(chunk)
            except ScanningError as e:
                logger.warning(
                    "OSV batch query failed",
                    extra={"chunk_start": start, "chunk_size": len(chunk), "error": e.message},
                )
                result.errors.append(f"OSV batch {start // self.batch_size + 1} failed: {e.message}")
                continue
            for purl, entry in zip(chunk, batch):
                if entry.vulns:
                    result.results[purl] = entry.vulns
        return result

    async def record_component_findings(
        self,
        component_id: UUID,
        purl: str,
        now: datetime | None = None,
        sbom_version_id: int | None = None,
    ) -> list[Vulnerability]:
        """
        Confirm a component's advisories with a full OSV query and insert each one
        not already tracked. Returns only the rows inserted by this call.

        Raises ScanningError when the confirmation query fails, so callers can report
        the component as unscanned instead of clean.
        """
        detail = await self.osv.query(purl)

        discovered_at = now or utc_now()
        deadline = compute_reporting_deadline(discovered_at)
        inserted: list[Vulnerability] = []
        seen: set[str] = set()
        for advisory in detail.vulns:
            external_id = external_id_for(advisory)
            if external_id in seen:
                continue
            seen.add(external_id)
            label = advisory.database_specific.severity if advisory.database_specific else None
            row = self.vulnerabilities.insert_if_absent(
                component_id=component_id,
                external_id=external_id,
                severity=normalize_severity(label),
                remediation_notes=advisory.summary or DEFAULT_REMEDIATION_NOTES,
                discovered_at=discovered_at,
                reporting_deadline=deadline,
            )
            if row is None:
                continue
            inserted.append(row)
            self.milestones.log(
                row.id,
                "discovered",
                new_value="Open",
                triggered_by=SCANNER_ACTOR,
                notes=f"{external_id} found for {purl}",
                sbom_version_id=sbom_version_id,
            )
        return inserted
