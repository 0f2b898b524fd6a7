"""Unit tests for SBOM upload orchestration (mocked session, in-memory repositories)."""

import asyncio
import json
import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from craguard.core.errors import ConflictError, FormatError, NotFoundError, ValidationError
from craguard.services.ingestion import IngestionService, content_digest
from craguard.services.remediation import RemediationService
from craguard.services.scanner import VulnerabilityScanner
from tests.fakes import (
    FakeComponentRepository,
    FakeMilestoneRepository,
    FakeOsvClient,
    FakeProjectRepository,
    FakeSbomVersionRepository,
    FakeVulnerabilityRepository,
    advisory,
    project,
)

NOW = datetime(2026, 6, 1, 9, 30, tzinfo=UTC)
LODASH_OLD = "pkg:npm/lodash@4.17.20"
LODASH_NEW = "pkg:npm/lodash@4.17.21"


def _cyclonedx(*components: dict) -> str:
    return json.dumps({"bomFormat": "CycloneDX", "specVersion": "1.5", "components": list(components)})


def _lodash(version: str) -> dict:
    return {"type": "library", "name": "lodash", "version": version, "purl": f"pkg:npm/lodash@{version}"}


class TestUpload(unittest.TestCase):
    def setUp(self) -> None:
        self.db = MagicMock()
        self.project = project("webshop", owner_id=1)
        self.projects = FakeProjectRepository([self.project])
        self.versions = FakeSbomVersionRepository()
        self.components = FakeComponentRepository(self.versions)
        self.vulns = FakeVulnerabilityRepository(self.components)
        self.milestones = FakeMilestoneRepository()
        self.osv = FakeOsvClient(
            {LODASH_OLD: [advisory("GHSA-35jh-r3h4-6jhm", ["CVE-2021-23337"], severity="HIGH")]}
        )
        scanner = VulnerabilityScanner(self.osv, self.vulns, self.milestones, batch_size=1000)
        remediation = RemediationService(self.vulns, self.milestones, clock=lambda: NOW)
        self.service = IngestionService(
            self.db,
            self.projects,
            self.versions,
            self.components,
            remediation,
            scanner,
            clock=lambda: NOW,
        )

    def _upload(self, content, project_id=None):
        return asyncio.run(self.service.upload(project_id or self.project.id, content, uploaded_by=1))

    def test_first_upload_records_finding_with_deadline(self) -> None:
        result = self._upload(_cyclonedx(_lodash("4.17.20")))

        self.assertTrue(result.success)
        self.assertEqual(result.components_inserted, 1)
        self.assertEqual(result.vulnerabilities_inserted, 1)
        self.assertEqual(result.sbom_version, 1)
        self.assertEqual(result.message, "Processed 1 components, found 1 new vulnerabilities.")
        self.assertIsNone(result.scan_errors)

        [vuln] = self.vulns.rows
        self.assertEqual(vuln.external_id, "CVE-2021-23337")
        self.assertEqual(vuln.status, "Open")
        self.assertEqual(vuln.discovered_at, NOW)
        self.assertEqual(vuln.reporting_deadline - vuln.discovered_at, timedelta(hours=24))
        self.assertEqual(self.versions.rows[0].uploaded_by, 1)
        self.assertEqual(self.versions.rows[0].source_format, "cyclonedx")
        self.db.commit.assert_called_once()

    def test_upgrade_auto_resolves_previous_findings(self) -> None:
        self._upload(_cyclonedx(_lodash("4.17.20")))
        result = self._upload(_cyclonedx(_lodash("4.17.21")))

        self.assertEqual(result.sbom_version, 2)
        self.assertEqual(result.components_upgraded, 1)
        self.assertEqual(result.vulnerabilities_auto_resolved, 1)
        self.assertEqual(result.vulnerabilities_inserted, 0)
        self.assertEqual(self.vulns.rows[0].status, "Patched")
        self.assertEqual(self.milestones.of_type("auto_patched")[0]["sbom_version_id"], 2)

    def test_identical_document_is_noop(self) -> None:
        content = _cyclonedx(_lodash("4.17.20"))
        self._upload(content)
        result = self._upload(content)
        self.assertTrue(result.success)
        self.assertEqual(result.sbom_version, 1)
        self.assertEqual(len(self.versions.rows), 1)
        self.assertEqual(len(self.components.rows), 1)

    def test_invalid_json_writes_nothing(self) -> None:
        with self.assertRaises(FormatError):
            self._upload("{not json")
        self.assertEqual(self.versions.rows, [])
        self.db.commit.assert_not_called()

    def test_no_components(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self._upload(_cyclonedx())
        self.assertEqual(ctx.exception.message, "No components found in SBOM")

    def test_empty_content(self) -> None:
        with self.assertRaises(ValidationError):
            self._upload("   ")

    def test_unknown_project(self) -> None:
        with self.assertRaises(NotFoundError):
            self._upload(_cyclonedx(_lodash("4.17.20")), project_id=project().id)
        self.assertEqual(self.versions.rows, [])

    def test_version_conflict(self) -> None:
        self.versions.conflict_on_create = True
        with self.assertRaises(ConflictError):
            self._upload(_cyclonedx(_lodash("4.17.20")))
        self.db.rollback.assert_called_once()
        self.assertEqual(self.components.rows, [])

    def test_scan_failure_still_stores_inventory(self) -> None:
        self.osv.failing_batches.add(LODASH_OLD)
        result = self._upload(_cyclonedx(_lodash("4.17.20"), {"name": "left-pad", "version": "1.3.0"}))

        self.assertTrue(result.success)
        self.assertEqual(result.components_inserted, 2)
        self.assertEqual(result.vulnerabilities_inserted, 0)
        self.assertEqual(len(result.scan_errors), 1)
        self.assertIn("incomplete", result.message)
        self.db.commit.assert_called_once()

    def test_missing_purl_is_inferred(self) -> None:
        self._upload(_cyclonedx({"name": "@babel/core", "version": "7.24.0"}))
        self.assertEqual(self.components.rows[0].purl, "pkg:npm/%40babel/core@7.24.0")

    def test_spdx_upload(self) -> None:
        doc = {
            "spdxVersion": "SPDX-2.3",
            "packages": [
                {
                    "SPDXID": "SPDXRef-lodash",
                    "name": "lodash",
                    "versionInfo": "4.17.20",
                    "externalRefs": [{"referenceType": "purl", "referenceLocator": LODASH_OLD}],
                }
            ],
        }
        result = self._upload(doc)
        self.assertEqual(result.vulnerabilities_inserted, 1)
        self.assertEqual(self.versions.rows[0].source_format, "spdx")
        self.assertEqual(self.versions.rows[0].content_hash, content_digest(doc))

    def test_failure_after_version_rolls_back(self) -> None:
        self.db.commit.side_effect = RuntimeError("connection lost")
        with self.assertRaises(RuntimeError):
            self._upload(_cyclonedx(_lodash("4.17.20")))
        self.db.rollback.assert_called_once()

    def test_confirmation_failure_marks_scan_incomplete(self) -> None:
        self.osv.failing_queries.add(LODASH_OLD)
        result = self._upload(_cyclonedx(_lodash("4.17.20")))

        self.assertTrue(result.success)
        self.assertEqual(result.components_inserted, 1)
        self.assertEqual(result.vulnerabilities_inserted, 0)
        self.assertEqual(len(result.scan_errors), 1)
        self.assertIn(LODASH_OLD, result.scan_errors[0])
        self.assertIn("incomplete", result.message)
        self.db.commit.assert_called_once()


class TestContentDigest(unittest.TestCase):
    def test_dict_key_order_does_not_matter(self) -> None:
        self.assertEqual(content_digest({"a": 1, "b": 2}), content_digest({"b": 2, "a": 1}))
