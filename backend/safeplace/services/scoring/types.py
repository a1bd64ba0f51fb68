"""Result types of the safety score engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict

RADII_M = (500, 1000, 2000)
TIMEFRAMES_DAYS = (30, 90, 365)


@dataclass
class TimeframeIncidents:
    total: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    weighted_total: float = 0.0


@dataclass
class RadiusIncidents:
    last_30_days: TimeframeIncidents = field(default_factory=TimeframeIncidents)
    last_90_days: TimeframeIncidents = field(default_factory=TimeframeIncidents)
    last_365_days: TimeframeIncidents = field(default_factory=TimeframeIncidents)

    def for_days(self, days: int) -> TimeframeIncidents:
        return {30: self.last_30_days, 90: self.last_90_days, 365: self.last_365_days}[days]


@dataclass
class AggregatedIncidents:
    radius_500m: RadiusIncidents = field(default_factory=RadiusIncidents)
    radius_1km: RadiusIncidents = field(default_factory=RadiusIncidents)
    radius_2km: RadiusIncidents = field(default_factory=RadiusIncidents)

    def for_radius(self, radius_m: int) -> RadiusIncidents:
        return {500: self.radius_500m, 1000: self.radius_1km, 2000: self.radius_2km}[radius_m]


class TrendDirection(str, Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    WORSENING = "WORSENING"


@dataclass
class TrendAnalysis:
    direction: TrendDirection
    percentage: float  # absolute percentage change
    confidence: float  # 0-1
    recent_30_day_count: int
    previous_30_day_count: int


@dataclass
class ComparisonMetrics:
    neighborhood_avg_score: int
    city_avg_score: int
    percentile_rank: int  # 0-100
    better_than_neighborhood: bool
    better_than_city: bool


@dataclass
class IncidentCounts:
    incidents_500m_30d: int
    incidents_500m_90d: int
    incidents_500m_365d: int
    incidents_1km_30d: int
    incidents_1km_90d: int
    incidents_1km_365d: int
    incidents_2km_30d: int
    incidents_2km_90d: int
    incidents_2km_365d: int
    # 1 km / 30 days breakdown
    shootings_count: int
    gunfire_count: int
    fires_count: int
    other_count: int


@dataclass
class ScoreBadge:
    label: str
    color: str
    description: str


@dataclass
class SafetyScore:
    overall_score: int  # 0-100
    score_500m: int
    score_1km: int
    score_2km: int
    incidents: IncidentCounts
    trend: TrendAnalysis
    comparison: ComparisonMetrics
    calculated_at: datetime
