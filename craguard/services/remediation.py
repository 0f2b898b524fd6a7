"""
Remediation state machine.

    Open -> Triaged -> Patched
    Open / Triaged -> Ignored
    Open -> Patched

Patched and Ignored are terminal. Manual changes go through ``triage``; the two
automatic paths are auto-resolution on upgrade (-> Patched) and deadline expiry
(-> Ignored, flagged ``auto_expired`` so statistics never count it as resolved).
"""

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from craguard.core.errors import InvalidTransitionError, ValidationError
from craguard.repositories.milestones import MilestoneRepository
from craguard.repositories.users import UserRepository
from craguard.repositories.vulnerabilities import VulnerabilityRepository
from craguard.schemas.sbom import ComponentComparison
from craguard.schemas.vulnerability import STATUS_VALUES, TERMINAL_STATUSES, VulnerabilityStatus
from craguard.services.compliance import utc_now
from craguard.services.notifications import NotificationPublisher, assignment_event

logger = logging.getLogger(__name__)

# Manual transitions other than staying in the same status.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "Open": frozenset({"Triaged", "Patched", "Ignored"}),
    "Triaged": frozenset({"Patched", "Ignored"}),
    "Patched": frozenset(),
    "Ignored": frozenset(),
}

AUTO_RESOLVE_ACTOR = "auto-resolve"
EXPIRY_ACTOR = "expiry-sweep"


class TriageOutcome(BaseModel):
    """Result of a triage call; found=False when the vulnerability id does not exist."""

    found: bool
    vulnerability_id: UUID
    status: VulnerabilityStatus | None = None
    assigned_to: str | None = None
    notified: bool = False


def can_transition(current: str, requested: str) -> bool:
    if current == requested:
        return True
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


class RemediationService:
    def __init__(
        self,
        vulnerabilities: VulnerabilityRepository,
        milestones: MilestoneRepository,
        users: UserRepository | None = None,
        publisher: NotificationPublisher | None = None,
        clock=utc_now,
    ) -> None:
        self.vulnerabilities = vulnerabilities
        self.milestones = milestones
        self.users = users
        self.publisher = publisher
        self.clock = clock

    def _resolve_assignee(self, assigned_to: str) -> int | None:
        """User id for an assignee given as id or username, if that user exists."""
        if self.users is None:
            return None
        value = assigned_to.strip()
        user = self.users.get(int(value)) if value.isdigit() else self.users.get_by_username(value)
        return user.id if user is not None else None

    async def triage(
        self,
        vulnerability_id: UUID,
        status: str | None = None,
        assigned_to: str | None = None,
        remediation_notes: str | None = None,
        actor_id: int | None = None,
    ) -> TriageOutcome:
        """
        Apply a manual update. ``status`` must already be an internal status name.

        Raises ValidationError for an unknown status and InvalidTransitionError for a
        move the workflow forbids. A missing row is reported, not raised.
        """
        if status is not None and status not in STATUS_VALUES:
            raise ValidationError(f"Unknown status: {status}")

        vuln = self.vulnerabilities.get(vulnerability_id)
        if vuln is None:
            logger.warning("Triage target not found", extra={"vulnerability_id": str(vulnerability_id)})
            return TriageOutcome(found=False, vulnerability_id=vulnerability_id)

        previous_status = vuln.status
        previous_assignee = vuln.assigned_to
        if status is not None and not can_transition(previous_status, status):
            raise InvalidTransitionError(previous_status, status)

        now = self.clock()
        self.vulnerabilities.update_triage(
            vuln,
            now,
            status=status,
            assigned_to=assigned_to,
            remediation_notes=remediation_notes,
        )

        actor = str(actor_id) if actor_id is not None else None
        if status is not None and status != previous_status:
            self.milestones.log(vuln.id, "status_changed", previous_status, status, triggered_by=actor)

        notified = False
        if assigned_to is not None and assigned_to != previous_assignee:
            self.milestones.log(vuln.id, "assigned", previous_assignee, assigned_to, triggered_by=actor)
            user_id = self._resolve_assignee(assigned_to)
            if user_id is not None and self.publisher is not None:
                notified = await self.publisher.publish(
                    assignment_event(user_id, vuln.external_id, vuln.id, vuln.reporting_deadline, now)
                )

        return TriageOutcome(
            found=True,
            vulnerability_id=vuln.id,
            status=vuln.status,
            assigned_to=vuln.assigned_to,
            notified=notified,
        )

    def auto_resolve_upgrades(
        self,
        comparisons: list[ComponentComparison],
        sbom_version_id: int | None = None,
        now: datetime | None = None,
    ) -> int:
        """
        Mark Patched every non-terminal vulnerability of the old row of each upgraded
        component. An upgrade is presumed to carry the fix; this is policy, not
        verification. Returns the number of rows changed; failed rows are skipped.
        """
        now = now or self.clock()
        resolved = 0
        for comparison in comparisons:
            if comparison.status != "upgraded" or comparison.old_component_id is None:
                continue
            for vuln in self.vulnerabilities.non_terminal_for_component(comparison.old_component_id):
                previous_status = vuln.status
                if not self.vulnerabilities.set_status(vuln, "Patched", now):
                    continue
                resolved += 1
                self.milestones.log(
                    vuln.id,
                    "auto_patched",
                    previous_status,
                    "Patched",
                    triggered_by=AUTO_RESOLVE_ACTOR,
                    notes=(
                        f"{comparison.component.name} upgraded "
                        f"{comparison.old_version} -> {comparison.new_version}"
                    ),
                    sbom_version_id=sbom_version_id,
                )
        return resolved

    def expire_overdue(self, project_id: UUID, now: datetime | None = None) -> int:
        """
        Move non-terminal vulnerabilities past their reporting deadline to Ignored
        with auto_expired set. Running it again finds nothing left to change.
        """
        now = now or self.clock()
        expired = 0
        for vuln in self.vulnerabilities.overdue_non_terminal(project_id, now):
            if vuln.status in TERMINAL_STATUSES:
                continue
            previous_status = vuln.status
            if not self.vulnerabilities.set_status(vuln, "Ignored", now, auto_expired=True):
                continue
            expired += 1
            self.milestones.log(
                vuln.id,
                "expired",
                previous_status,
                "Ignored",
                triggered_by=EXPIRY_ACTOR,
                notes="Reporting deadline passed",
            )
        logger.info(
            "Expiry sweep finished",
            extra={"project_id": str(project_id), "expired_count": expired},
        )
        return expired
