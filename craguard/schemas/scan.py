"""Schemas for OSV responses, batch scan results and the scheduled sweep."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from craguard.schemas.common import CamelModel


class OsvDatabaseSpecific(BaseModel):
    model_config = ConfigDict(extra="ignore")

    severity: str | None = None


class OsvVulnerability(BaseModel):
    """One OSV advisory. The batch endpoint only fills id (and modified)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    aliases: list[str] = Field(default_factory=list)
    summary: str | None = None
    database_specific: OsvDatabaseSpecific | None = None


class OsvQueryResult(BaseModel):
    """Result for one package query; ``vulns`` is omitted by OSV when there are none."""

    model_config = ConfigDict(extra="ignore")

    vulns: list[OsvVulnerability] = Field(default_factory=list)


class BatchScanResult(BaseModel):
    """Per-purl advisories from one or more batch calls, plus any chunk failures."""

    results: dict[str, list[OsvVulnerability]] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class ScanStats(CamelModel):
    """Counters for one scheduled sweep."""

    projects_scanned: int = 0
    components_scanned: int = 0
    new_vulnerabilities_found: int = 0


class ScanSweepResponse(CamelModel):
    """Response for /scans/daily and the ``scan`` job."""

    success: bool = True
    timestamp: datetime
    stats: ScanStats
    errors: list[str] | None = None
