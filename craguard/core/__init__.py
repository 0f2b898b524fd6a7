"""Core app configuration, database and error taxonomy."""

from craguard.core.config import get_settings, settings
from craguard.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
