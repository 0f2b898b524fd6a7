"""Remediation audit trail. Writes are best-effort: failures are logged, never raised."""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from craguard.models.milestone import RemediationMilestone

logger = logging.getLogger(__name__)


class MilestoneRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def log(
        self,
        vulnerability_id: UUID,
        milestone_type: str,
        old_value: str | None = None,
        new_value: str | None = None,
        triggered_by: str | None = None,
        notes: str | None = None,
        sbom_version_id: int | None = None,
    ) -> bool:
        """Record one milestone inside a savepoint. Returns False if the write failed."""
        try:
            with self.db.begin_nested():
                self.db.add(
                    RemediationMilestone(
                        vulnerability_id=vulnerability_id,
                        milestone_type=milestone_type,
                        old_value=old_value,
                        new_value=new_value,
                        triggered_by=triggered_by,
                        notes=notes,
                        sbom_version_id=sbom_version_id,
                    )
                )
        except SQLAlchemyError:
            logger.exception(
                "Failed to record remediation milestone",
                extra={"vulnerability_id": str(vulnerability_id), "milestone_type": milestone_type},
            )
            return False
        return True
