"""ORM model for SBOM versions: one row per successful upload, never mutated."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from craguard.models.base import Base


class SbomVersion(Base):
    """
    Snapshot header for one uploaded SBOM.

    version_number increases by one per project; the unique constraint makes a
    concurrent upload for the same project fail instead of sharing a number.
    """

    __tablename__ = "sbom_versions"
    __table_args__ = (
        UniqueConstraint("project_id", "version_number", name="uq_sbom_versions_project_version"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number = Column(Integer, nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    component_count = Column(Integer, nullable=False, default=0)
    content_hash = Column(String(64), nullable=True)
    source_format = Column(String(16), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
