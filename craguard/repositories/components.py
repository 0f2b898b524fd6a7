"""Component rows: bulk insert per SBOM version and inventory snapshots."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from craguard.models.component import Component
from craguard.models.sbom_version import SbomVersion
from craguard.schemas.sbom import ParsedComponent, PreviousComponent


class ComponentRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert_many(
        self,
        project_id: UUID,
        sbom_version_id: int,
        components: list[ParsedComponent],
        now: datetime,
    ) -> list[Component]:
        """Insert one row per parsed component (order preserved) and flush to assign ids."""
        rows = [
            Component(
                project_id=project_id,
                sbom_version_id=sbom_version_id,
                name=c.name,
                version=c.version,
                purl=c.purl,
                license=c.license,
                author=c.author,
                component_type=c.type,
                created_at=now,
                updated_at=now,
            )
            for c in components
        ]
        self.db.add_all(rows)
        self.db.flush()
        return rows

    def snapshot(self, sbom_version_id: int) -> dict[str, PreviousComponent]:
        """
        Name -> (id, version) for one SBOM version.
        If a name repeats, the last row wins.
        """
        rows = (
            self.db.query(Component.id, Component.name, Component.version)
            .filter(Component.sbom_version_id == sbom_version_id)
            .order_by(Component.created_at, Component.id)
            .all()
        )
        return {name: PreviousComponent(id=cid, version=version) for cid, name, version in rows}

    def current_with_purl(self, project_id: UUID) -> list[Component]:
        """Components of the project's latest SBOM version that carry a purl."""
        latest_version_id = (
            self.db.query(SbomVersion.id)
            .filter(SbomVersion.project_id == project_id)
            .order_by(SbomVersion.version_number.desc())
            .limit(1)
            .scalar_subquery()
        )
        return (
            self.db.query(Component)
            .filter(
                Component.sbom_version_id == latest_version_id,
                Component.purl.isnot(None),
                Component.purl != "",
            )
            .all()
        )
