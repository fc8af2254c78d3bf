"""Application services (ingestion, search)."""
