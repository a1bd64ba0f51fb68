"""Ingestion run log model."""

from sqlalchemy import Column, String, Integer, Text, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from safeplace.db.base import Base


class ScraperLog(Base):
    """One row per ingestion run. Created as RUNNING, finished exactly once."""

    __tablename__ = "scraper_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    status = Column(String(20), nullable=False, default="RUNNING", index=True)
    environment = Column(String(50), nullable=False, default="development")
    source = Column(String(50), nullable=True)
    started_at = Column(TIMESTAMP(timezone=False), server_default=func.now(), nullable=False, index=True)
    completed_at = Column(TIMESTAMP(timezone=False), nullable=True)
    records_found = Column(Integer, nullable=False, default=0)
    records_new = Column(Integer, nullable=False, default=0)
    records_duplicate = Column(Integer, nullable=False, default=0)
    records_failed = Column(Integer, nullable=False, default=0)
    duration_ms = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    error_stack = Column(Text, nullable=True)
