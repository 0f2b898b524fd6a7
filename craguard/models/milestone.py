"""ORM model for the remediation audit trail."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from craguard.models.base import Base


class RemediationMilestone(Base):
    """One audit event for a vulnerability (discovered, status_changed, auto_patched, expired, assigned)."""

    __tablename__ = "remediation_milestones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vulnerability_id = Column(
        UUID(as_uuid=True),
        ForeignKey("vulnerabilities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    milestone_type = Column(String(32), nullable=False)
    old_value = Column(String(255), nullable=True)
    new_value = Column(String(255), nullable=True)
    triggered_by = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    sbom_version_id = Column(
        Integer,
        ForeignKey("sbom_versions.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
