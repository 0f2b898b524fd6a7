"""Unit tests for NVD enrichment: CVSS extraction, client failures and request pacing."""

import asyncio
import unittest
import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import httpx

from craguard.schemas.enrichment import NvdEnrichment
from craguard.services.enrichment import (
    SOURCE_V2,
    SOURCE_V31,
    EnrichmentPipeline,
    NvdClient,
    extract_cvss,
)
from tests.fakes import FakeComponentRepository, FakeSbomVersionRepository, FakeVulnerabilityRepository

NOW = datetime(2026, 6, 1, tzinfo=UTC)


def _nvd_body(v31: dict | None = None, v2: dict | None = None) -> dict:
    metrics = {}
    if v31 is not None:
        metrics["cvssMetricV31"] = [v31]
    if v2 is not None:
        metrics["cvssMetricV2"] = [v2]
    return {"vulnerabilities": [{"cve": {"id": "CVE-2021-23337", "metrics": metrics}}]}


class FakeNvdClient:
    def __init__(self, api_key: str | None = None, failing: set[str] | None = None) -> None:
        self.api_key = api_key
        self.failing = failing or set()
        self.calls: list[str] = []

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, cve_id: str) -> NvdEnrichment | None:
        self.calls.append(cve_id)
        if cve_id in self.failing:
            return None
        return NvdEnrichment(score=7.2, severity="HIGH", source=SOURCE_V31)


class TestExtractCvss(unittest.TestCase):
    def test_prefers_v31(self) -> None:
        data = _nvd_body(
            v31={"cvssData": {"baseScore": 7.2, "baseSeverity": "HIGH"}},
            v2={"cvssData": {"baseScore": 6.5}, "baseSeverity": "MEDIUM"},
        )
        self.assertEqual(extract_cvss(data), NvdEnrichment(score=7.2, severity="HIGH", source=SOURCE_V31))

    def test_v2_fallback_reads_severity_from_metric(self) -> None:
        data = _nvd_body(v2={"cvssData": {"baseScore": 6.5}, "baseSeverity": "MEDIUM"})
        self.assertEqual(extract_cvss(data), NvdEnrichment(score=6.5, severity="MEDIUM", source=SOURCE_V2))

    def test_no_metrics(self) -> None:
        self.assertIsNone(extract_cvss(_nvd_body()))
        self.assertIsNone(extract_cvss({"vulnerabilities": []}))


class TestNvdClient(unittest.TestCase):
    def _client(self, api_key: str | None = None, response=None, error=None) -> tuple[NvdClient, AsyncMock]:
        http = MagicMock()
        http.get = AsyncMock(return_value=response, side_effect=error)
        return NvdClient(http, "https://services.nvd.nist.gov/rest/json/cves/2.0", api_key, 30.0), http.get

    def test_sends_cve_id_and_api_key(self) -> None:
        resp = MagicMock()
        resp.status_code = 200
        resp.json.return_value = _nvd_body(v31={"cvssData": {"baseScore": 9.8, "baseSeverity": "CRITICAL"}})
        client, get = self._client(api_key="secret", response=resp)
        result = asyncio.run(client.fetch("CVE-2021-44228"))
        self.assertEqual(result.score, 9.8)
        self.assertEqual(get.call_args[1]["params"], {"cveId": "CVE-2021-44228"})
        self.assertEqual(get.call_args[1]["headers"], {"apiKey": "secret"})

    def test_error_status_returns_none(self) -> None:
        resp = MagicMock()
        resp.status_code = 403
        client, _ = self._client(response=resp)
        self.assertIsNone(asyncio.run(client.fetch("CVE-2021-44228")))

    def test_transport_error_returns_none(self) -> None:
        client, _ = self._client(error=httpx.ReadTimeout("timed out"))
        self.assertIsNone(asyncio.run(client.fetch("CVE-2021-44228")))


class TestEnrichmentPipeline(unittest.TestCase):
    def setUp(self) -> None:
        self.project_id = uuid.uuid4()
        components = FakeComponentRepository(FakeSbomVersionRepository())
        self.component = components.add(self.project_id, 1, "lodash", "4.17.20", "pkg:npm/lodash@4.17.20")
        self.vulns = FakeVulnerabilityRepository(components)
        self.sleeps: list[float] = []

    async def _sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def _add(self, external_id: str):
        return self.vulns.add(self.component.id, external_id, NOW, NOW + timedelta(hours=24))

    def test_anonymous_pacing_and_non_cve_skip(self) -> None:
        for i in range(3):
            self._add(f"CVE-2024-000{i}")
        ghsa = self._add("GHSA-29mw-wpgm-hmr9")
        nvd = FakeNvdClient()
        result = asyncio.run(EnrichmentPipeline(nvd, self.vulns, sleep=self._sleep).run(self.project_id))

        self.assertEqual(nvd.calls, ["CVE-2024-0000", "CVE-2024-0001", "CVE-2024-0002"])
        self.assertEqual(self.sleeps, [0.6, 0.6])
        self.assertEqual((result.enriched, result.skipped, result.failed, result.total), (3, 1, 0, 4))
        self.assertIsNone(ghsa.nvd_score)
        self.assertEqual(self.vulns.rows[0].source, SOURCE_V31)

    def test_keyed_batches_of_five(self) -> None:
        for i in range(7):
            self._add(f"CVE-2024-100{i}")
        nvd = FakeNvdClient(api_key="secret")
        result = asyncio.run(EnrichmentPipeline(nvd, self.vulns, sleep=self._sleep).run())
        self.assertEqual(self.sleeps, [0.1])
        self.assertEqual(result.enriched, 7)

    def test_failed_lookup_counted_and_left_unenriched(self) -> None:
        ok = self._add("CVE-2024-0001")
        bad = self._add("CVE-2024-0002")
        nvd = FakeNvdClient(failing={"CVE-2024-0002"})
        result = asyncio.run(EnrichmentPipeline(nvd, self.vulns, sleep=self._sleep).run(self.project_id))
        self.assertEqual((result.enriched, result.failed), (1, 1))
        self.assertEqual(ok.nvd_score, 7.2)
        self.assertIsNone(bad.nvd_score)

    def test_respects_limit(self) -> None:
        for i in range(4):
            self._add(f"CVE-2024-200{i}")
        nvd = FakeNvdClient(api_key="secret")
        result = asyncio.run(EnrichmentPipeline(nvd, self.vulns, sleep=self._sleep, limit=2).run())
        self.assertEqual(self.vulns.unenriched_limits, [2])
        self.assertEqual(result.total, 2)
        self.assertEqual(len(nvd.calls), 2)
