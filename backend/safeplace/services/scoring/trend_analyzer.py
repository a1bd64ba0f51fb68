from safeplace.services.scoring.types import AggregatedIncidents, TrendAnalysis, TrendDirection
from safeplace.services.utils import round_half_up

# Percentage change beyond which a trend is no longer stable
TREND_THRESHOLD_PCT = 10.0


class TrendAnalyzer:
    """Recent 30 days vs the 30 days before, on the 1 km radius."""

    def analyze(self, incidents: AggregatedIncidents) -> TrendAnalysis:
        recent_30 = incidents.radius_1km.last_30_days.total
        previous_30 = self.estimate_previous_30_days(incidents.radius_1km.last_90_days.total, recent_30)

        change = self.percentage_change(recent_30, previous_30)

        return TrendAnalysis(
            direction=self.direction(change),
            percentage=abs(change),
            confidence=self.confidence(recent_30, previous_30),
            recent_30_day_count=recent_30,
            previous_30_day_count=previous_30,
        )

    @staticmethod
    def estimate_previous_30_days(last_90_total: int, recent_30: int) -> int:
        """
        Incidents 31-60 days ago, estimated as half of the 31-90 day window.

        Assumes incidents are spread evenly over those 60 days. Never negative,
        even when the windows were counted against different snapshots.
        """
        return max(0, round_half_up((last_90_total - recent_30) / 2))

    @staticmethod
    def percentage_change(recent: int, previous: int) -> float:
        if previous == 0:
            return 100.0 if recent > 0 else 0.0
        return (recent - previous) / previous * 100

    @staticmethod
    def direction(change: float) -> TrendDirection:
        if change < -TREND_THRESHOLD_PCT:
            return TrendDirection.IMPROVING
        if change > TREND_THRESHOLD_PCT:
            return TrendDirection.WORSENING
        return TrendDirection.STABLE

    @staticmethod
    def confidence(recent: int, previous: int) -> float:
        """More incidents = higher confidence"""
        sample = recent + previous
        if sample >= 20:
            return 0.9
        if sample >= 10:
            return 0.7
        if sample >= 5:
            return 0.5
        return 0.3
