"""NVD score enrichment for tracked CVEs.

Pacing follows NVD's published rate limits: with an API key, 5 concurrent
requests then 100 ms; without one, a single request then 600 ms. Each lookup
fails soft and is simply picked up again by the next run.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

import httpx
from pydantic import ValidationError as PydanticValidationError

from craguard.models.vulnerability import Vulnerability
from craguard.repositories.vulnerabilities import UNENRICHED_BATCH_LIMIT, VulnerabilityRepository
from craguard.schemas.enrichment import EnrichmentResult, NvdEnrichment

logger = logging.getLogger(__name__)

CVE_PREFIX = "CVE-"

KEYED_BATCH_SIZE = 5
KEYED_PAUSE_SEC = 0.1
ANONYMOUS_BATCH_SIZE = 1
ANONYMOUS_PAUSE_SEC = 0.6

SOURCE_V31 = "NVD Verified"
SOURCE_V2 = "NVD (V2)"


def extract_cvss(data: dict) -> NvdEnrichment | None:
    """Score from the first CVE record: cvssMetricV31 preferred, cvssMetricV2 as fallback."""
    records = data.get("vulnerabilities") or []
    if not records or not isinstance(records[0], dict):
        return None
    metrics = (records[0].get("cve") or {}).get("metrics") or {}

    v31 = (metrics.get("cvssMetricV31") or [None])[0]
    if v31 and (v31.get("cvssData") or {}).get("baseScore") is not None:
        cvss = v31["cvssData"]
        return NvdEnrichment(score=cvss["baseScore"], severity=cvss.get("baseSeverity"), source=SOURCE_V31)

    v2 = (metrics.get("cvssMetricV2") or [None])[0]
    if v2 and (v2.get("cvssData") or {}).get("baseScore") is not None:
        return NvdEnrichment(
            score=v2["cvssData"]["baseScore"],
            severity=v2.get("baseSeverity"),
            source=SOURCE_V2,
        )
    return None


class NvdClient:
    """GET {base_url}?cveId=...; returns None on any failure."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str | None,
        timeout: float,
    ) -> None:
        self.client = client
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, cve_id: str) -> NvdEnrichment | None:
        headers = {"apiKey": self.api_key} if self.api_key else {}
        try:
            resp = await self.client.get(
                self.base_url,
                params={"cveId": cve_id},
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("NVD request failed", extra={"cve_id": cve_id, "error": str(e)})
            return None
        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning("NVD returned error status", extra={"cve_id": cve_id, "status_code": resp.status_code})
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.warning("NVD returned invalid JSON", extra={"cve_id": cve_id})
            return None
        if not isinstance(data, dict):
            return None
        try:
            return extract_cvss(data)
        except (PydanticValidationError, AttributeError, TypeError, KeyError, IndexError):
            logger.warning("NVD record has an unexpected shape", extra={"cve_id": cve_id})
            return None


class EnrichmentPipeline:
    def __init__(
        self,
        nvd: NvdClient,
        vulnerabilities: VulnerabilityRepository,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        limit: int = UNENRICHED_BATCH_LIMIT,
    ) -> None:
        self.nvd = nvd
        self.vulnerabilities = vulnerabilities
        self.sleep = sleep
        self.limit = limit

    async def _enrich_one(self, vuln: Vulnerability) -> bool:
        data = await self.nvd.fetch(vuln.external_id)
        if data is None:
            return False
        self.vulnerabilities.update_enrichment(vuln, data.score, data.severity, data.source)
        return True

    async def run(self, project_id: UUID | None = None) -> EnrichmentResult:
        """
        Enrich up to ``limit`` vulnerabilities without an NVD score. Non-CVE ids are
        skipped without a request. Commit is left to the caller.
        """
        pending = self.vulnerabilities.unenriched(project_id=project_id, limit=self.limit)
        cves = [v for v in pending if v.external_id.startswith(CVE_PREFIX)]
        result = EnrichmentResult(total=len(pending), skipped=len(pending) - len(cves))

        if self.nvd.has_api_key:
            batch_size, pause = KEYED_BATCH_SIZE, KEYED_PAUSE_SEC
        else:
            batch_size, pause = ANONYMOUS_BATCH_SIZE, ANONYMOUS_PAUSE_SEC

        for start in range(0, len(cves), batch_size):
            if start > 0:
                await self.sleep(pause)
            batch = cves[start : start + batch_size]
            outcomes = await asyncio.gather(*(self._enrich_one(v) for v in batch))
            for ok in outcomes:
                if ok:
                    result.enriched += 1
                else:
                    result.failed += 1

        logger.info(
            "Enrichment run finished",
            extra={
                "project_id": str(project_id) if project_id else None,
                "enriched": result.enriched,
                "skipped": result.skipped,
                "failed": result.failed,
            },
        )
        return result
