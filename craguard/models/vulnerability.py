"""ORM model for tracked vulnerabilities and their remediation state."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID

from craguard.models.base import Base

VULNERABILITY_UNIQUE_CONSTRAINT = "uq_vulnerabilities_component_external_id"


class Vulnerability(Base):
    """
    A finding for one component, tracked through Open -> Triaged -> Patched / Ignored.

    reporting_deadline is written once at insert. updated_at is written by status
    changes only (remediation latency is measured from it); enrichment leaves it alone.
    """

    __tablename__ = "vulnerabilities"
    __table_args__ = (
        UniqueConstraint("component_id", "external_id", name=VULNERABILITY_UNIQUE_CONSTRAINT),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    component_id = Column(
        UUID(as_uuid=True),
        ForeignKey("components.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_id = Column(String(255), nullable=False, index=True)
    severity = Column(String(16), nullable=False, default="High")
    status = Column(String(16), nullable=False, default="Open", index=True)
    assigned_to = Column(String(255), nullable=True)
    remediation_notes = Column(Text, nullable=True)
    discovered_at = Column(DateTime(timezone=True), nullable=False)
    reporting_deadline = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    nvd_score = Column(Float, nullable=True)
    nvd_severity = Column(String(32), nullable=True)
    source = Column(String(64), nullable=True)
    auto_expired = Column(Boolean, nullable=False, default=False)
