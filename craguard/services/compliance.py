"""
Deadline and severity engine: CRA 24-hour reporting window, severity normalization
and the two compliance scores.

Everything here is pure given an explicit ``now``; callers that omit it get
``utc_now()``, which tests patch or bypass by passing ``now``.
"""

import math
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from craguard.schemas.report import RemediationStats
from craguard.schemas.vulnerability import (
    DEFAULT_SEVERITY,
    TERMINAL_STATUSES,
    DeadlineRemaining,
    SeverityLevel,
)

# CRA Article 14 early-warning window. Regulatory constant, not a setting.
REPORTING_WINDOW = timedelta(hours=24)

# Remaining time under which a deadline is shown as critical.
CRITICAL_THRESHOLD = timedelta(hours=6)

EARLY_WARNING_SCORE = 9.0

# Weighted score penalties per critical / overdue vulnerability.
CRITICAL_PENALTY = 5
OVERDUE_PENALTY = 10

# External severity labels (OSV database_specific, GHSA, NVD baseSeverity) -> internal scale.
SEVERITY_ALIASES: dict[str, SeverityLevel] = {
    "critical": "Critical",
    "high": "High",
    "important": "High",
    "moderate": "Medium",
    "medium": "Medium",
    "low": "Low",
    "minor": "Low",
    "negligible": "Low",
    "none": "Low",
}


def utc_now() -> datetime:
    """Timezone-aware current time; the single clock used by services."""
    return datetime.now(UTC)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (0.5 -> 1, 2.5 -> 3)."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def compute_reporting_deadline(discovered_at: datetime) -> datetime:
    return discovered_at + REPORTING_WINDOW


def calculate_deadline_remaining(
    deadline: datetime,
    now: datetime | None = None,
) -> DeadlineRemaining:
    """
    Decompose the time left until ``deadline``.

    A deadline at or before ``now`` is overdue (and critical) with all parts zero.
    Otherwise parts are whole hours / minutes / seconds (truncated) and the deadline
    is critical when fewer than 6 hours remain.
    """
    now = now or utc_now()
    remaining = deadline - now
    if remaining <= timedelta(0):
        return DeadlineRemaining(hours=0, minutes=0, seconds=0, is_overdue=True, is_critical=True)

    total_seconds = int(remaining.total_seconds())
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return DeadlineRemaining(
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        is_overdue=False,
        is_critical=remaining < CRITICAL_THRESHOLD,
    )


def format_deadline(remaining: DeadlineRemaining) -> str:
    if remaining.is_overdue:
        return "OVERDUE"
    return f"{remaining.hours}h {remaining.minutes}m"


def severity_from_score(score: float) -> SeverityLevel:
    """CVSS v3 qualitative bands (None/Low collapse to Low)."""
    if score >= 9.0:
        return "Critical"
    if score >= 7.0:
        return "High"
    if score >= 4.0:
        return "Medium"
    return "Low"


def normalize_severity(
    label: str | None,
    score: float | None = None,
    default: SeverityLevel = DEFAULT_SEVERITY,
) -> SeverityLevel:
    """Map an external label (case-insensitive) to the internal scale, else band the score, else default."""
    if label and label.strip():
        mapped = SEVERITY_ALIASES.get(label.strip().lower())
        if mapped is not None:
            return mapped
    if score is not None and 0 <= score <= 10:
        return severity_from_score(score)
    return default


def ring_health_score(total: int, overdue: int) -> int:
    """Share of vulnerabilities not overdue, as a 0-100 integer. Used by the dashboard."""
    if total <= 0:
        return 100
    return round_half_up(100 * (total - overdue) / total)


def weighted_compliance_score(total: int, resolved: int, critical: int, overdue: int) -> int:
    """
    Resolved share minus penalties for critical and overdue findings, in [0, 100].
    Used by compliance reports.
    """
    if total <= 0:
        return 100
    raw = 100 * resolved / total - CRITICAL_PENALTY * critical - OVERDUE_PENALTY * overdue
    return min(100, round_half_up(max(0.0, raw)))


def requires_early_warning(severity: str | None, nvd_score: float | None, status: str | None) -> bool:
    """Open findings that are Critical (or score >= 9.0) need an early warning to the authority."""
    if status != "Open":
        return False
    if severity == "Critical":
        return True
    return nvd_score is not None and nvd_score >= EARLY_WARNING_SCORE


def is_overdue(vuln: Any, now: datetime) -> bool:
    """Past deadline and still actionable, or already auto-expired by the sweep."""
    if getattr(vuln, "auto_expired", False):
        return True
    return vuln.status not in TERMINAL_STATUSES and vuln.reporting_deadline < now


def calculate_remediation_stats(vulns: Iterable[Any], now: datetime | None = None) -> RemediationStats:
    """
    Aggregate statistics for a set of vulnerability rows.

    Auto-expired rows count as ignored and overdue, never as resolved. Average
    remediation time covers Patched rows with a positive discovered->updated span.
    A deadline counts as met when the row was last acted on at or before its deadline.
    """
    now = now or utc_now()
    rows = list(vulns)
    total = len(rows)
    critical = sum(1 for v in rows if v.severity == "Critical")
    resolved = sum(1 for v in rows if v.status == "Patched")
    ignored = sum(1 for v in rows if v.status == "Ignored")
    expired = sum(1 for v in rows if getattr(v, "auto_expired", False))
    open_count = sum(1 for v in rows if v.status not in TERMINAL_STATUSES)
    overdue = sum(1 for v in rows if is_overdue(v, now))

    durations = [
        (v.updated_at - v.discovered_at).total_seconds()
        for v in rows
        if v.status == "Patched" and v.updated_at is not None
    ]
    durations = [d for d in durations if d > 0]
    avg_hours = round_half_up(sum(durations) / len(durations) / 3600) if durations else None

    candidates = [v for v in rows if v.updated_at is not None and v.reporting_deadline is not None]
    met = sum(1 for v in candidates if v.updated_at <= v.reporting_deadline)
    deadlines_met = round_half_up(100 * met / len(candidates)) if candidates else 0

    return RemediationStats(
        total=total,
        critical=critical,
        resolved=resolved,
        ignored=ignored,
        expired=expired,
        open=open_count,
        overdue=overdue,
        avg_remediation_hours=avg_hours,
        deadlines_met_percent=deadlines_met,
        health_score=ring_health_score(total, overdue),
        compliance_score=weighted_compliance_score(total, resolved, critical, overdue),
    )
