"""SBOM version headers: latest lookup, creation and history."""

from uuid import UUID

from sqlalchemy.orm import Session

from craguard.models.sbom_version import SbomVersion


class SbomVersionRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def latest(self, project_id: UUID) -> SbomVersion | None:
        return (
            self.db.query(SbomVersion)
            .filter(SbomVersion.project_id == project_id)
            .order_by(SbomVersion.version_number.desc())
            .first()
        )

    def create(
        self,
        project_id: UUID,
        version_number: int,
        component_count: int,
        uploaded_by: int | None = None,
        content_hash: str | None = None,
        source_format: str | None = None,
    ) -> SbomVersion:
        """
        Insert a version header and flush so its id is available.
        Raises sqlalchemy.exc.IntegrityError when (project_id, version_number) is taken.
        """
        row = SbomVersion(
            project_id=project_id,
            version_number=version_number,
            uploaded_by=uploaded_by,
            component_count=component_count,
            content_hash=content_hash,
            source_format=source_format,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def list_for_project(self, project_id: UUID) -> list[SbomVersion]:
        return (
            self.db.query(SbomVersion)
            .filter(SbomVersion.project_id == project_id)
            .order_by(SbomVersion.version_number.desc())
            .all()
        )
