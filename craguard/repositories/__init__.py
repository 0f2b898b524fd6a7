"""Session-scoped data access. Repositories flush; services own commit/rollback."""

from craguard.repositories.components import ComponentRepository
from craguard.repositories.milestones import MilestoneRepository
from craguard.repositories.projects import ProjectRepository
from craguard.repositories.reports import ReportRepository
from craguard.repositories.sbom_versions import SbomVersionRepository
from craguard.repositories.users import UserRepository
from craguard.repositories.vulnerabilities import VulnerabilityRepository

__all__ = [
    "ComponentRepository",
    "MilestoneRepository",
    "ProjectRepository",
    "ReportRepository",
    "SbomVersionRepository",
    "UserRepository",
    "VulnerabilityRepository",
]
