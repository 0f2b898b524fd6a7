"""ORM model for SBOM components. Rows are immutable; a new upload inserts new rows."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from craguard.models.base import Base


class Component(Base):
    """One declared component of one SBOM version."""

    __tablename__ = "components"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sbom_version_id = Column(
        Integer,
        ForeignKey("sbom_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(1024), nullable=False)
    version = Column(String(255), nullable=False)
    purl = Column(String(2048), nullable=True, index=True)
    license = Column(String(1024), nullable=True)
    author = Column(String(1024), nullable=True)
    component_type = Column(String(32), nullable=False, default="library")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
