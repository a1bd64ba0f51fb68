"""Safety score engine: orchestrates aggregation, scoring, trend and comparison."""

import logging
from datetime import datetime
from typing import Callable, Optional

from safeplace.services.ingestion.types import IncidentType
from safeplace.services.scoring.comparator import Comparator
from safeplace.services.scoring.incident_aggregator import IncidentAggregator
from safeplace.services.scoring.score_calculator import ScoreCalculator
from safeplace.services.scoring.trend_analyzer import TrendAnalyzer
from safeplace.services.scoring.types import AggregatedIncidents, IncidentCounts, SafetyScore
from safeplace.services.utils import local_now

logger = logging.getLogger(__name__)


class SafetyScoreEngine:
    """Computes the safety score of a point from the incident store."""

    def __init__(
        self,
        aggregator: Optional[IncidentAggregator] = None,
        calculator: Optional[ScoreCalculator] = None,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        comparator: Optional[Comparator] = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.aggregator = aggregator or IncidentAggregator()
        self.calculator = calculator or ScoreCalculator()
        self.trend_analyzer = trend_analyzer or TrendAnalyzer()
        self.comparator = comparator or Comparator()
        self.clock = clock

    def calculate_score(
        self,
        latitude: float,
        longitude: float,
        neighborhood: str,
        municipality: str,
    ) -> SafetyScore:
        """
        Calculate the safety score for a location.

        Args:
            latitude: Latitude of the point
            longitude: Longitude of the point
            neighborhood: Neighborhood used for the peer average
            municipality: City used for the peer average and percentile

        Returns:
            SafetyScore

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If any aggregation query fails;
                no partial score is returned
        """
        logger.info(f"Calculating score for: {latitude}, {longitude}")

        incidents = self.aggregator.aggregate(latitude, longitude)

        overall_score = self.calculator.calculate(incidents)
        trend = self.trend_analyzer.analyze(incidents)
        comparison = self.comparator.compare(overall_score, neighborhood, municipality)

        return SafetyScore(
            overall_score=overall_score,
            score_500m=self.calculator.calculate_for_radius(incidents.radius_500m),
            score_1km=self.calculator.calculate_for_radius(incidents.radius_1km),
            score_2km=self.calculator.calculate_for_radius(incidents.radius_2km),
            incidents=format_incident_counts(incidents),
            trend=trend,
            comparison=comparison,
            calculated_at=self.clock(),
        )


def format_incident_counts(incidents: AggregatedIncidents) -> IncidentCounts:
    recent_1km = incidents.radius_1km.last_30_days
    by_type = recent_1km.by_type
    shootings = by_type.get(IncidentType.TIROTEIO.value, 0)
    gunfire = by_type.get(IncidentType.DISPAROS_OUVIDOS.value, 0)
    fires = by_type.get(IncidentType.INCENDIO.value, 0)

    return IncidentCounts(
        incidents_500m_30d=incidents.radius_500m.last_30_days.total,
        incidents_500m_90d=incidents.radius_500m.last_90_days.total,
        incidents_500m_365d=incidents.radius_500m.last_365_days.total,
        incidents_1km_30d=incidents.radius_1km.last_30_days.total,
        incidents_1km_90d=incidents.radius_1km.last_90_days.total,
        incidents_1km_365d=incidents.radius_1km.last_365_days.total,
        incidents_2km_30d=incidents.radius_2km.last_30_days.total,
        incidents_2km_90d=incidents.radius_2km.last_90_days.total,
        incidents_2km_365d=incidents.radius_2km.last_365_days.total,
        shootings_count=shootings,
        gunfire_count=gunfire,
        fires_count=fires,
        other_count=recent_1km.total - shootings - gunfire - fires,
    )
