"""Parse CycloneDX and SPDX JSON documents into the canonical component model."""

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from craguard.core.errors import FormatError
from craguard.schemas.sbom import (
    ComponentType,
    CycloneDxComponent,
    CycloneDxDocument,
    ParsedComponent,
    ParsedSbom,
    SbomFormat,
    SpdxDocument,
    SpdxPackage,
)

UNSUPPORTED_FORMAT_MESSAGE = "Unsupported SBOM format. Please upload a CycloneDX or SPDX JSON file."

_UNKNOWN = "Unknown"

_COMPONENT_TYPES: dict[str, ComponentType] = {
    "library": "library",
    "framework": "framework",
    "application": "application",
    "operating-system": "os",
    "os": "os",
}

_SPDX_PURL_REF_TYPES = frozenset({"purl", "package-url"})


def _load(content: str | bytes | dict[str, Any]) -> dict[str, Any]:
    if isinstance(content, dict):
        return content
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FormatError(f"SBOM is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise FormatError("SBOM root must be a JSON object.")
    return data


def detect_format(data: dict[str, Any]) -> SbomFormat:
    """Explicit markers first (bomFormat, spdxVersion), then whichever component array is non-empty."""
    bom_format = data.get("bomFormat")
    if isinstance(bom_format, str) and bom_format.lower() == "cyclonedx":
        return "cyclonedx"
    if isinstance(data.get("spdxVersion"), str):
        return "spdx"
    components = data.get("components")
    if isinstance(components, list) and components:
        return "cyclonedx"
    packages = data.get("packages")
    if isinstance(packages, list) and packages:
        return "spdx"
    raise FormatError(UNSUPPORTED_FORMAT_MESSAGE)


def _parse_timestamp(value: str | None, now: datetime) -> datetime:
    """ISO-8601 timestamp, or ``now`` when absent or unparseable. Naive values are taken as UTC."""
    if not value:
        return now
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_component_type(value: str | None) -> ComponentType:
    if not value:
        return "other"
    return _COMPONENT_TYPES.get(value.strip().lower(), "other")


def _cyclonedx_license(component: CycloneDxComponent) -> str | None:
    # licenses[0] is preferred over the singular form
    if component.licenses:
        first = component.licenses[0].license
        if first is not None and (first.name or first.id):
            return first.name or first.id
    if component.license is not None:
        return component.license.name or component.license.id
    return None


def _parse_cyclonedx(data: dict[str, Any], now: datetime) -> ParsedSbom:
    doc = CycloneDxDocument.model_validate(data)

    vuln_counts: dict[str, int] = {}
    for vuln in doc.vulnerabilities:
        for affect in vuln.affects:
            if affect.ref:
                vuln_counts[affect.ref] = vuln_counts.get(affect.ref, 0) + 1

    components = []
    for index, c in enumerate(doc.components):
        bom_ref = c.bom_ref or c.bom_ref_camel or c.ref or f"component-{index}"
        components.append(
            ParsedComponent(
                name=c.name or _UNKNOWN,
                version=c.version or _UNKNOWN,
                type=to_component_type(c.type),
                purl=c.purl or None,
                license=_cyclonedx_license(c),
                author=c.author or None,
                bom_ref=bom_ref,
                vulnerability_count=vuln_counts.get(bom_ref, 0),
            )
        )

    timestamp = _parse_timestamp(doc.metadata.timestamp if doc.metadata else None, now)
    return ParsedSbom(format="cyclonedx", timestamp=timestamp, components=components)


def _spdx_purl(pkg: SpdxPackage) -> str | None:
    for ref in pkg.external_refs:
        if ref.reference_type and ref.reference_type.lower() in _SPDX_PURL_REF_TYPES and ref.reference_locator:
            return ref.reference_locator
    return None


def _parse_spdx(data: dict[str, Any], now: datetime) -> ParsedSbom:
    doc = SpdxDocument.model_validate(data)

    components = [
        ParsedComponent(
            name=pkg.name or _UNKNOWN,
            version=pkg.version_info or _UNKNOWN,
            type=to_component_type(pkg.primary_package_purpose) if pkg.primary_package_purpose else "library",
            purl=_spdx_purl(pkg),
            license=pkg.license_concluded or pkg.license_declared or None,
            author=pkg.supplier or pkg.originator or None,
            bom_ref=pkg.spdx_id or f"package-{index}",
        )
        for index, pkg in enumerate(doc.packages)
    ]

    timestamp = _parse_timestamp(doc.creation_info.created if doc.creation_info else None, now)
    return ParsedSbom(format="spdx", timestamp=timestamp, components=components)


def parse_sbom(content: str | bytes | dict[str, Any], now: datetime | None = None) -> ParsedSbom:
    """
    Decode an SBOM document into a ParsedSbom.

    Raises FormatError for invalid JSON, a non-object root, an undetectable format
    or a document whose structure does not match the detected variant. Missing
    names/versions become "Unknown"; a missing or bad document timestamp becomes ``now``.
    """
    now = now or datetime.now(UTC)
    data = _load(content)
    sbom_format = detect_format(data)
    try:
        if sbom_format == "cyclonedx":
            return _parse_cyclonedx(data, now)
        return _parse_spdx(data, now)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()))
        raise FormatError(
            f"Invalid {sbom_format} document at {location or 'root'}: {first.get('msg', 'invalid structure')}"
        ) from e


def infer_purl(name: str, version: str) -> str | None:
    """
    Best-effort npm purl for a component declared without one.

    Applies to scoped names (``@scope/pkg``) and bare names without a slash;
    the scope's ``@`` is percent-encoded as the purl format requires.
    """
    if not name or name == _UNKNOWN:
        return None
    if name.startswith("@"):
        return f"pkg:npm/%40{name[1:]}@{version}"
    if "/" not in name:
        return f"pkg:npm/{name}@{version}"
    return None
