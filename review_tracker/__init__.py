"""Plugin review tracker: ingestion and reconciliation of plugin review feeds."""

__version__ = "0.1.0"
