from pydantic import BaseModel, Field
from datetime import datetime

from safeplace.services.scoring.types import TrendDirection


class ScoreBadgeRead(BaseModel):
    label: str
    color: str
    description: str

    class Config:
        from_attributes = True


class ScoreValues(BaseModel):
    overall_score: int = Field(..., ge=0, le=100)
    score_500m: int = Field(..., ge=0, le=100)
    score_1km: int = Field(..., ge=0, le=100)
    score_2km: int = Field(..., ge=0, le=100)
    badge: ScoreBadgeRead


class IncidentCountsRead(BaseModel):
    incidents_500m_30d: int
    incidents_500m_90d: int
    incidents_500m_365d: int
    incidents_1km_30d: int
    incidents_1km_90d: int
    incidents_1km_365d: int
    incidents_2km_30d: int
    incidents_2km_90d: int
    incidents_2km_365d: int
    shootings_count: int
    gunfire_count: int
    fires_count: int
    other_count: int

    class Config:
        from_attributes = True


class TrendRead(BaseModel):
    direction: TrendDirection
    percentage: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    recent_30_day_count: int
    previous_30_day_count: int

    class Config:
        from_attributes = True


class ComparisonRead(BaseModel):
    neighborhood_avg_score: int
    city_avg_score: int
    percentile_rank: int = Field(..., ge=0, le=100)
    better_than_neighborhood: bool
    better_than_city: bool

    class Config:
        from_attributes = True


class ScoreData(BaseModel):
    score: ScoreValues
    incidents: IncidentCountsRead
    trend: TrendRead
    comparison: ComparisonRead
    calculated_at: datetime


class ScoreResponse(BaseModel):
    success: bool = True
    data: ScoreData
