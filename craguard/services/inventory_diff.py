"""Classify an uploaded inventory against the previous SBOM version of the same project."""

from craguard.schemas.sbom import (
    ComponentComparison,
    DiffSummary,
    ParsedComponent,
    PreviousComponent,
)
from craguard.services.versioning import compare_versions


def diff_inventory(
    new_components: list[ParsedComponent],
    previous: dict[str, PreviousComponent],
) -> list[ComponentComparison]:
    """
    One comparison per new component, matched to ``previous`` by exact name.

    ``previous`` must be the snapshot taken before the new version was written.
    Removed components are not reported, and a rename shows up as ``new``.
    """
    comparisons = []
    for component in new_components:
        old = previous.get(component.name)
        if old is None:
            comparisons.append(
                ComponentComparison(
                    component=component,
                    status="new",
                    new_version=component.version,
                )
            )
            continue

        order = compare_versions(old.version, component.version)
        if order < 0:
            status = "upgraded"
        elif order > 0:
            status = "downgraded"
        else:
            status = "unchanged"
        comparisons.append(
            ComponentComparison(
                component=component,
                status=status,
                old_version=old.version,
                new_version=component.version,
                old_component_id=old.id,
            )
        )
    return comparisons


def summarize_diff(comparisons: list[ComponentComparison]) -> DiffSummary:
    summary = DiffSummary()
    for c in comparisons:
        setattr(summary, c.status, getattr(summary, c.status) + 1)
    return summary
