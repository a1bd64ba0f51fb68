"""Compares a score against neighborhood and city peers."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from safeplace.core.config import get_settings
from safeplace.services.scoring.score_records import ScoreRecordRepository
from safeplace.services.scoring.types import ComparisonMetrics
from safeplace.services.utils import local_now, round_half_up

logger = logging.getLogger(__name__)

# Neutral score used when there are no peers to compare against
DEFAULT_AVERAGE_SCORE = 60
# "No data" is treated as exactly median
DEFAULT_PERCENTILE = 50


class PeerPopulation(Protocol):
    def average_score(
        self, municipality: str, since: datetime, neighborhood: Optional[str] = None
    ) -> Optional[float]:
        ...

    def count_scores(self, municipality: str, since: datetime, below: Optional[int] = None) -> int:
        ...


class Comparator:
    """Peer averages and percentile rank over recently computed scores."""

    def __init__(
        self,
        population: Optional[PeerPopulation] = None,
        window_days: Optional[int] = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.population = population or ScoreRecordRepository()
        self.window_days = window_days or get_settings().comparison_window_days
        self.clock = clock

    def compare(self, score: int, neighborhood: str, municipality: str) -> ComparisonMetrics:
        since = self.clock() - timedelta(days=self.window_days)

        with ThreadPoolExecutor(max_workers=3) as pool:
            neighborhood_avg = pool.submit(self.neighborhood_average, neighborhood, municipality, since)
            city_avg = pool.submit(self.city_average, municipality, since)
            percentile = pool.submit(self.percentile_rank, score, municipality, since)

            neighborhood_avg_score = neighborhood_avg.result()
            city_avg_score = city_avg.result()
            percentile_rank = percentile.result()

        return ComparisonMetrics(
            neighborhood_avg_score=neighborhood_avg_score,
            city_avg_score=city_avg_score,
            percentile_rank=percentile_rank,
            better_than_neighborhood=score > neighborhood_avg_score,
            better_than_city=score > city_avg_score,
        )

    def neighborhood_average(self, neighborhood: str, municipality: str, since: datetime) -> int:
        average = self.population.average_score(municipality, since, neighborhood=neighborhood)
        return DEFAULT_AVERAGE_SCORE if average is None else round_half_up(average)

    def city_average(self, municipality: str, since: datetime) -> int:
        average = self.population.average_score(municipality, since)
        return DEFAULT_AVERAGE_SCORE if average is None else round_half_up(average)

    def percentile_rank(self, score: int, municipality: str, since: datetime) -> int:
        """Share of city peers (0-100) scoring strictly lower"""
        total = self.population.count_scores(municipality, since)
        if total == 0:
            return DEFAULT_PERCENTILE

        lower = self.population.count_scores(municipality, since, below=score)
        return round_half_up(lower / total * 100)
