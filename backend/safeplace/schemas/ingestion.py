from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Optional

from safeplace.services.ingestion.types import ScraperStatus


class IngestionRunResponse(BaseModel):
    success: bool
    status: ScraperStatus
    records_found: int
    records_new: int
    records_duplicate: int
    records_failed: int
    duration_ms: int
    error: Optional[str] = None
    log_id: Optional[str] = None
    timestamp: datetime


class ScraperLogRead(BaseModel):
    id: UUID
    status: ScraperStatus
    environment: str
    source: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    records_found: int
    records_new: int
    records_duplicate: int
    records_failed: int
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
