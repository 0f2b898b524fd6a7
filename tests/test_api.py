"""HTTP-level tests for the v1 routes with services backed by in-memory fakes."""

import unittest
import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from craguard.api.v1.deps import (
    get_ingestion_service,
    get_remediation_service,
    get_scan_orchestrator,
    get_vulnerability_repository,
)
from craguard.api.v1.vocabulary import to_internal_status, to_ui_status
from craguard.core.config import Settings, get_settings
from craguard.core.database import get_db
from craguard.core.errors import ValidationError
from craguard.main import app
from craguard.schemas.scan import ScanStats, ScanSweepResponse
from craguard.services.ingestion import IngestionService
from craguard.services.remediation import RemediationService
from craguard.services.scanner import VulnerabilityScanner
from tests.fakes import (
    FakeComponentRepository,
    FakeMilestoneRepository,
    FakeOsvClient,
    FakeProjectRepository,
    FakeSbomVersionRepository,
    FakeVulnerabilityRepository,
    project,
)

PREFIX = "/api/v1"
CRON_SECRET = "nightly-sweep-secret"


class TestStatusVocabulary(unittest.TestCase):
    def test_dashboard_words(self) -> None:
        self.assertEqual(to_internal_status("discovered"), "Open")
        self.assertEqual(to_internal_status("reported"), "Triaged")
        self.assertEqual(to_internal_status("In-Remediation"), "Triaged")
        self.assertEqual(to_internal_status("resolved"), "Patched")
        self.assertEqual(to_internal_status("ignored"), "Ignored")

    def test_internal_names_accepted(self) -> None:
        self.assertEqual(to_internal_status("patched"), "Patched")

    def test_unknown_word(self) -> None:
        with self.assertRaises(ValidationError):
            to_internal_status("closed")

    def test_output_words(self) -> None:
        self.assertEqual(to_ui_status("Triaged"), "in-remediation")
        self.assertEqual(to_ui_status("Open"), "discovered")


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = MagicMock()
        self.settings = Settings(CRON_SECRET=CRON_SECRET, ENRICH_AFTER_UPLOAD=False, AUTH_ENABLED=False)
        self.project = project("webshop")
        versions = FakeSbomVersionRepository()
        self.components = FakeComponentRepository(versions)
        self.vulns = FakeVulnerabilityRepository(self.components)
        milestones = FakeMilestoneRepository()
        self.remediation = RemediationService(self.vulns, milestones)
        scanner = VulnerabilityScanner(FakeOsvClient(), self.vulns, milestones, batch_size=1000)
        self.ingestion = IngestionService(
            self.db,
            FakeProjectRepository([self.project]),
            versions,
            self.components,
            self.remediation,
            scanner,
        )
        self.orchestrator = MagicMock()
        self.orchestrator.run = AsyncMock(
            return_value=ScanSweepResponse(timestamp=datetime.now(UTC), stats=ScanStats(projects_scanned=2))
        )

        app.dependency_overrides[get_db] = lambda: self.db
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_ingestion_service] = lambda: self.ingestion
        app.dependency_overrides[get_remediation_service] = lambda: self.remediation
        app.dependency_overrides[get_scan_orchestrator] = lambda: self.orchestrator
        app.dependency_overrides[get_vulnerability_repository] = lambda: self.vulns
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()


class TestUploadRoute(ApiTestCase):
    def test_json_upload(self) -> None:
        sbom = '{"bomFormat": "CycloneDX", "components": [{"name": "lodash", "version": "4.17.21"}]}'
        resp = self.client.post(
            f"{PREFIX}/sbom/upload",
            json={"projectId": str(self.project.id), "fileContent": sbom},
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["componentsInserted"], 1)
        self.assertEqual(body["sbomVersion"], 1)

    def test_multipart_upload(self) -> None:
        sbom = b'{"spdxVersion": "SPDX-2.3", "packages": [{"name": "requests", "versionInfo": "2.31.0"}]}'
        resp = self.client.post(
            f"{PREFIX}/sbom/upload",
            data={"projectId": str(self.project.id)},
            files={"file": ("sbom.spdx.json", sbom, "application/json")},
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["componentsInserted"], 1)

    def test_unsupported_document(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/sbom/upload",
            json={"projectId": str(self.project.id), "fileContent": '{"hello": "world"}'},
        )
        self.assertEqual(resp.status_code, 422)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertIn("Unsupported SBOM format", body["message"])
        self.assertEqual(self.components.rows, [])

    def test_unknown_project(self) -> None:
        sbom = '{"bomFormat": "CycloneDX", "components": [{"name": "lodash", "version": "4.17.21"}]}'
        resp = self.client.post(
            f"{PREFIX}/sbom/upload",
            json={"projectId": str(uuid.uuid4()), "fileContent": sbom},
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Project not found")

    def test_missing_project_id(self) -> None:
        resp = self.client.post(f"{PREFIX}/sbom/upload", json={"fileContent": "{}"})
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])

    def test_body_that_is_not_utf8(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/sbom/upload",
            content=b'{"projectId": "\xff\xfe"}',
            headers={"content-type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])

    def test_database_failure_returns_structured_reply(self) -> None:
        sbom = '{"bomFormat": "CycloneDX", "components": [{"name": "lodash", "version": "4.17.21"}]}'
        error = OperationalError("INSERT INTO components", {}, Exception("server closed the connection"))
        with patch.object(self.components, "insert_many", side_effect=error):
            resp = self.client.post(
                f"{PREFIX}/sbom/upload",
                json={"projectId": str(self.project.id), "fileContent": sbom},
            )
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(
            resp.json(),
            {
                "success": False,
                "message": "SBOM upload failed; nothing was stored.",
                "componentsInserted": 0,
                "vulnerabilitiesInserted": 0,
            },
        )
        self.db.rollback.assert_called_once()
        self.db.commit.assert_not_called()


class TestVulnerabilityRoutes(ApiTestCase):
    def _vuln(self, discovered_at: datetime):
        component = self.components.add(self.project.id, 1, "lodash", "4.17.20", "pkg:npm/lodash@4.17.20")
        return self.vulns.add(component.id, "CVE-2021-23337", discovered_at, discovered_at + timedelta(hours=24))

    def test_triage_with_dashboard_word(self) -> None:
        vuln = self._vuln(datetime.now(UTC))
        resp = self.client.post(
            f"{PREFIX}/vulnerabilities/triage",
            json={"vulnerabilityId": str(vuln.id), "status": "reported", "assignedTo": "alice"},
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "Triaged")
        self.assertEqual(body["uiStatus"], "in-remediation")
        self.assertEqual(body["assignedTo"], "alice")
        self.db.commit.assert_called_once()

    def test_triage_unknown_vulnerability(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/vulnerabilities/triage",
            json={"vulnerabilityId": str(uuid.uuid4()), "status": "resolved"},
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"success": False, "message": "Vulnerability not found"})
        self.db.commit.assert_not_called()

    def test_triage_forbidden_transition(self) -> None:
        vuln = self._vuln(datetime.now(UTC))
        vuln.status = "Patched"
        resp = self.client.post(
            f"{PREFIX}/vulnerabilities/triage",
            json={"vulnerabilityId": str(vuln.id), "status": "discovered"},
        )
        self.assertEqual(resp.status_code, 409)

    def test_expire(self) -> None:
        self._vuln(datetime.now(UTC) - timedelta(hours=30))
        self._vuln(datetime.now(UTC))
        resp = self.client.post(f"{PREFIX}/vulnerabilities/expire", json={"projectId": str(self.project.id)})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"count": 1})

    def test_list_includes_countdown(self) -> None:
        self._vuln(datetime.now(UTC) - timedelta(hours=20))
        resp = self.client.get(f"{PREFIX}/vulnerabilities", params={"projectId": str(self.project.id)})
        self.assertEqual(resp.status_code, 200)
        [item] = resp.json()["vulnerabilities"]
        self.assertEqual(item["componentName"], "lodash")
        self.assertEqual(item["uiStatus"], "discovered")
        self.assertTrue(item["deadline"]["isCritical"])
        self.assertFalse(item["deadline"]["isOverdue"])


class TestDailyScanRoute(ApiTestCase):
    def test_requires_secret(self) -> None:
        resp = self.client.get(f"{PREFIX}/scans/daily")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "Unauthorized")
        self.orchestrator.run.assert_not_called()

    def test_wrong_secret(self) -> None:
        resp = self.client.post(f"{PREFIX}/scans/daily", headers={"Authorization": "Bearer nope"})
        self.assertEqual(resp.status_code, 401)

    def test_runs_with_secret(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/scans/daily",
            headers={"Authorization": f"Bearer {CRON_SECRET}"},
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["stats"]["projectsScanned"], 2)
        self.assertNotIn("errors", body)

    def test_open_when_no_secret_configured(self) -> None:
        self.settings = Settings(CRON_SECRET=None)
        resp = self.client.get(f"{PREFIX}/scans/daily")
        self.assertEqual(resp.status_code, 200)
