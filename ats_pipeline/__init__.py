"""ATS export ingestion pipeline."""
