from pydantic import BaseModel
from datetime import datetime
from typing import Dict, List, Optional

from safeplace.services.ingestion.types import ScraperStatus


class MunicipalityCount(BaseModel):
    municipality: str
    count: int


class IncidentStats(BaseModel):
    total: int
    recent: int
    by_type: Dict[str, int]
    top_municipalities: List[MunicipalityCount]


class ScoreStats(BaseModel):
    total: int
    recent: int
    avg_score: int


class ScraperRunSummary(BaseModel):
    status: ScraperStatus
    records_found: int
    records_new: int
    records_duplicate: int
    duration_ms: Optional[int] = None
    started_at: datetime

    class Config:
        from_attributes = True


class ScraperStats(BaseModel):
    last_run: Optional[datetime] = None
    success_rate: int
    avg_duration_ms: int
    recent_runs: List[ScraperRunSummary]


class StatsMeta(BaseModel):
    period: str
    period_days: int
    municipality: str
    generated_at: datetime


class StatsData(BaseModel):
    incidents: IncidentStats
    scores: ScoreStats
    scraper: ScraperStats
    meta: StatsMeta


class StatsResponse(BaseModel):
    success: bool = True
    data: StatsData
