"""Safety score calculation from aggregated incidents."""

from safeplace.services.scoring.types import (
    RADII_M,
    TIMEFRAMES_DAYS,
    AggregatedIncidents,
    RadiusIncidents,
    ScoreBadge,
)
from safeplace.services.utils import round_half_up


class ScoreCalculator:
    """
    Weighted score considering proximity, recency and severity.

    A location without incidents scores 100. Each radius is scored on its
    own; the overall score is the radius-weight-normalized average of the
    three rounded radius scores.
    """

    BASE_SCORE = 100

    # Closer radius = more important
    RADIUS_WEIGHTS = {
        500: 1.0,
        1000: 0.6,
        2000: 0.3,
    }

    # More recent = more important
    TIMEFRAME_WEIGHTS = {
        30: 1.0,
        90: 0.6,
        365: 0.3,
    }

    # Points deducted per weighted incident
    POINTS_PER_INCIDENT = 2

    def calculate(self, incidents: AggregatedIncidents) -> int:
        """Overall score, 0-100"""
        weighted_score = 0.0
        total_weight = 0.0
        for radius in RADII_M:
            weight = self.RADIUS_WEIGHTS[radius]
            weighted_score += self.calculate_for_radius(incidents.for_radius(radius)) * weight
            total_weight += weight

        return round_half_up(self._clamp(weighted_score / total_weight))

    def calculate_for_radius(self, radius_data: RadiusIncidents) -> int:
        """Score for a single radius, 0-100"""
        return round_half_up(self._raw_radius_score(radius_data))

    def _raw_radius_score(self, radius_data: RadiusIncidents) -> float:
        weighted = sum(
            radius_data.for_days(days).weighted_total * self.TIMEFRAME_WEIGHTS[days]
            for days in TIMEFRAMES_DAYS
        )
        deduction = weighted * self.POINTS_PER_INCIDENT
        return self._clamp(self.BASE_SCORE - deduction)

    @staticmethod
    def _clamp(score: float) -> float:
        return max(0.0, min(100.0, score))


def score_badge(score: int) -> ScoreBadge:
    """Badge shown next to a score"""
    if score >= 90:
        return ScoreBadge("Excellent", "green", "Very few security incidents in this area")
    if score >= 75:
        return ScoreBadge("Good", "lightgreen", "Below average incident rate")
    if score >= 60:
        return ScoreBadge("Fair", "yellow", "Average incident rate for the city")
    if score >= 40:
        return ScoreBadge("Moderate", "orange", "Above average incident rate")
    if score >= 20:
        return ScoreBadge("Poor", "red", "Significantly higher incident rate")
    return ScoreBadge("Critical", "darkred", "Extremely high incident rate - exercise caution")
