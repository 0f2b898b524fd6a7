"""Project lookups. Projects are created outside this service."""

from uuid import UUID

from sqlalchemy.orm import Session

from craguard.models.project import Project


class ProjectRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, project_id: UUID) -> Project | None:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def list_all(self) -> list[Project]:
        return self.db.query(Project).order_by(Project.created_at, Project.id).all()
