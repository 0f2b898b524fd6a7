"""SQLAlchemy ORM models."""

from craguard.models.base import Base
from craguard.models.component import Component
from craguard.models.compliance_report import ComplianceReport
from craguard.models.milestone import RemediationMilestone
from craguard.models.project import Project
from craguard.models.sbom_version import SbomVersion
from craguard.models.user import User
from craguard.models.vulnerability import Vulnerability

__all__ = [
    "Base",
    "Component",
    "ComplianceReport",
    "Project",
    "RemediationMilestone",
    "SbomVersion",
    "User",
    "Vulnerability",
]
