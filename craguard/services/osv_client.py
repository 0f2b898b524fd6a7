"""Async client for the OSV.dev vulnerability database (batch and single-package queries)."""

import logging

import httpx
from pydantic import ValidationError as PydanticValidationError

from craguard.core.errors import ScanningError
from craguard.schemas.scan import OsvQueryResult

logger = logging.getLogger(__name__)

QUERY_BATCH_PATH = "/v1/querybatch"
QUERY_PATH = "/v1/query"


class OsvClient:
    """
    Thin wrapper over OSV's query endpoints. The caller owns the AsyncClient.

    Every failure (transport, non-2xx, malformed body) is raised as ScanningError so
    the scanner can degrade per batch or per component.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: float) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.post(url, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise ScanningError(f"OSV request failed: {e}") from e
        if resp.status_code < 200 or resp.status_code >= 300:
            raise ScanningError(f"OSV returned {resp.status_code}", resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ScanningError("OSV returned invalid JSON") from e
        if not isinstance(data, dict):
            raise ScanningError("OSV returned an unexpected response body")
        return data

    async def query_batch(self, purls: list[str]) -> list[OsvQueryResult]:
        """
        Query many packages at once. ``results[i]`` belongs to ``purls[i]``; OSV has no
        correlation id, so a length mismatch is treated as a failed call.
        """
        if not purls:
            return []
        payload = {"queries": [{"package": {"purl": p}} for p in purls]}
        data = await self._post(QUERY_BATCH_PATH, payload)
        raw_results = data.get("results")
        if not isinstance(raw_results, list) or len(raw_results) != len(purls):
            raise ScanningError(
                f"OSV batch returned {len(raw_results) if isinstance(raw_results, list) else 'no'} "
                f"results for {len(purls)} queries"
            )
        try:
            return [OsvQueryResult.model_validate(r or {}) for r in raw_results]
        except PydanticValidationError as e:
            raise ScanningError("OSV batch response has an unexpected shape") from e

    async def query(self, purl: str) -> OsvQueryResult:
        """Full advisories (aliases, summary, severity) for one package."""
        data = await self._post(QUERY_PATH, {"package": {"purl": purl}})
        try:
            return OsvQueryResult.model_validate(data)
        except PydanticValidationError as e:
            raise ScanningError("OSV query response has an unexpected shape") from e
