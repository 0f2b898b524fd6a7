"""ORM model for generated compliance reports (write-once)."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

from craguard.models.base import Base


class ComplianceReport(Base):
    """
    Record of one report-generation event.

    summary holds the statistics as they were at generation time so historical
    reports do not drift when vulnerability rows change later.
    """

    __tablename__ = "compliance_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    report_type = Column(String(64), nullable=False, default="Annex_I_Summary")
    generated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sent_to_regulator = Column(Boolean, nullable=False, default=False)
    summary = Column(JSONB, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
