"""Incident ingestion: report parsing, geocoding and idempotent storage."""
