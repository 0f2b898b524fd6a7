"""CRA Guard: SBOM ingestion, vulnerability tracking and CRA reporting deadlines."""

__version__ = "0.1.0"
