"""Schemas for SBOM documents (CycloneDX / SPDX), the canonical component model and uploads."""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from craguard.schemas.common import CamelModel

SbomFormat = Literal["cyclonedx", "spdx"]

ComponentType = Literal["library", "framework", "application", "os", "other"]

ChangeStatus = Literal["new", "upgraded", "downgraded", "unchanged"]


# --- Raw document variants (validated after format detection) ---


def _string_or_none(value: Any) -> str | None:
    """SBOM producers put objects or numbers where strings are expected; treat those as absent."""
    return value if isinstance(value, str) else None


LenientStr = Annotated[str | None, BeforeValidator(_string_or_none)]


class _LicenseRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: LenientStr = None
    id: LenientStr = None


class _LicenseChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    license: _LicenseRef | None = None


class CycloneDxComponent(BaseModel):
    """One entry of a CycloneDX ``components`` array. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: LenientStr = None
    version: LenientStr = None
    type: LenientStr = None
    purl: LenientStr = None
    author: LenientStr = None
    licenses: list[_LicenseChoice] | None = None
    license: _LicenseRef | None = None
    bom_ref: LenientStr = Field(default=None, alias="bom-ref")
    bom_ref_camel: LenientStr = Field(default=None, alias="bomRef")
    ref: LenientStr = None


class _CycloneDxAffects(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ref: LenientStr = None


class _CycloneDxVulnerability(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: LenientStr = None
    affects: list[_CycloneDxAffects] = Field(default_factory=list)


class _CycloneDxMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: LenientStr = None


class CycloneDxDocument(BaseModel):
    """CycloneDX JSON document (subset used for inventory)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    bom_format: LenientStr = Field(default=None, alias="bomFormat")
    spec_version: LenientStr = Field(default=None, alias="specVersion")
    metadata: _CycloneDxMetadata | None = None
    components: list[CycloneDxComponent] = Field(default_factory=list)
    vulnerabilities: list[_CycloneDxVulnerability] = Field(default_factory=list)


class SpdxExternalRef(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    reference_type: LenientStr = Field(default=None, alias="referenceType")
    reference_locator: LenientStr = Field(default=None, alias="referenceLocator")


class SpdxPackage(BaseModel):
    """One entry of an SPDX ``packages`` array."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    spdx_id: LenientStr = Field(default=None, alias="SPDXID")
    name: LenientStr = None
    version_info: LenientStr = Field(default=None, alias="versionInfo")
    license_concluded: LenientStr = Field(default=None, alias="licenseConcluded")
    license_declared: LenientStr = Field(default=None, alias="licenseDeclared")
    supplier: LenientStr = None
    originator: LenientStr = None
    primary_package_purpose: LenientStr = Field(default=None, alias="primaryPackagePurpose")
    external_refs: list[SpdxExternalRef] = Field(default_factory=list, alias="externalRefs")


class _SpdxCreationInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    created: LenientStr = None


class SpdxDocument(BaseModel):
    """SPDX 2.x JSON document (subset used for inventory)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    spdx_version: LenientStr = Field(default=None, alias="spdxVersion")
    creation_info: _SpdxCreationInfo | None = Field(default=None, alias="creationInfo")
    packages: list[SpdxPackage] = Field(default_factory=list)


# --- Canonical model ---


class ParsedComponent(BaseModel):
    """Format-independent view of one declared component."""

    name: str
    version: str
    type: ComponentType = "library"
    purl: str | None = None
    license: str | None = None
    author: str | None = None
    bom_ref: str
    vulnerability_count: int = Field(
        default=0,
        ge=0,
        description="Vulnerabilities embedded in the SBOM for this bom-ref (display only).",
    )


class ParsedSbom(BaseModel):
    """Result of parsing one SBOM document."""

    format: SbomFormat
    timestamp: datetime
    components: list[ParsedComponent] = Field(default_factory=list)


class PreviousComponent(BaseModel):
    """Entry of the stored inventory snapshot the differ compares against."""

    id: UUID
    version: str


class ComponentComparison(BaseModel):
    """Classification of one new component against the previous inventory."""

    component: ParsedComponent
    status: ChangeStatus
    old_version: str | None = None
    new_version: str
    old_component_id: UUID | None = None


class DiffSummary(CamelModel):
    """Counts per change status."""

    new: int = 0
    upgraded: int = 0
    downgraded: int = 0
    unchanged: int = 0


# --- API ---


class UploadRequest(CamelModel):
    """JSON body for POST /sbom/upload."""

    project_id: UUID
    file_content: str | dict[str, Any] = Field(
        ...,
        description="SBOM document as JSON text or an already-decoded object.",
    )


class UploadResult(CamelModel):
    """Outcome of an upload; the same shape is used for failures (success=False)."""

    success: bool
    message: str
    components_inserted: int = 0
    vulnerabilities_inserted: int = 0
    components_upgraded: int | None = None
    vulnerabilities_auto_resolved: int | None = None
    sbom_version: int | None = None
    scan_errors: list[str] | None = None


class SbomVersionOut(CamelModel):
    """One SBOM version header."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    project_id: UUID
    version_number: int
    uploaded_by: int | None = None
    component_count: int
    content_hash: str | None = None
    source_format: str | None = None
    created_at: datetime


class SbomVersionListResponse(CamelModel):
    """Response for GET /sbom/{projectId}/versions."""

    versions: list[SbomVersionOut] = Field(default_factory=list)
