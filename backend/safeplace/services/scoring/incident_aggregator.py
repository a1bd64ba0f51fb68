"""Aggregates incidents across radii and timeframes using PostGIS."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.orm import Session

from safeplace.db.session import SessionLocal
from safeplace.services.scoring.types import (
    RADII_M,
    TIMEFRAMES_DAYS,
    AggregatedIncidents,
    RadiusIncidents,
    TimeframeIncidents,
)
from safeplace.services.utils import local_now

logger = logging.getLogger(__name__)

# (incident_type, count, sum of severity_score)
GroupRow = Tuple[str, int, float]
LeafQuery = Callable[[float, float, int, datetime], List[GroupRow]]

INCIDENT_GROUPS_SQL = text("""
    SELECT
        incident_type,
        COUNT(*) AS count,
        SUM(severity_score) AS weighted_sum
    FROM incidents
    WHERE
        ST_DWithin(
            location,
            ST_SetSRID(ST_MakePoint(:lng, :lat), 4326)::geography,
            :radius
        )
        AND occurred_at >= :cutoff
    GROUP BY incident_type
""")


class IncidentAggregator:
    """
    Builds the radius x timeframe incident matrix for a point.

    All nine leaf queries are independent and run concurrently, each on its
    own session. A failing leaf fails the whole aggregation.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        query: Optional[LeafQuery] = None,
        clock: Callable[[], datetime] = local_now,
        max_workers: int = len(RADII_M) * len(TIMEFRAMES_DAYS),
    ):
        """
        Args:
            session_factory: Opens a session per leaf query
            query: Optional replacement for the PostGIS leaf query
            clock: Returns "now" on the clock incidents are stored in
            max_workers: Thread pool size
        """
        self.session_factory = session_factory
        self.query = query or self._query_incident_groups
        self.clock = clock
        self.max_workers = max_workers

    def aggregate(self, latitude: float, longitude: float) -> AggregatedIncidents:
        now = self.clock()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                (radius, days): pool.submit(
                    self._query_timeframe, latitude, longitude, radius, now - timedelta(days=days)
                )
                for radius in RADII_M
                for days in TIMEFRAMES_DAYS
            }
            # result() re-raises the first leaf failure
            cells: Dict[Tuple[int, int], TimeframeIncidents] = {
                key: future.result() for key, future in futures.items()
            }

        def radius_incidents(radius: int) -> RadiusIncidents:
            return RadiusIncidents(
                last_30_days=cells[(radius, 30)],
                last_90_days=cells[(radius, 90)],
                last_365_days=cells[(radius, 365)],
            )

        return AggregatedIncidents(
            radius_500m=radius_incidents(500),
            radius_1km=radius_incidents(1000),
            radius_2km=radius_incidents(2000),
        )

    def _query_timeframe(
        self, latitude: float, longitude: float, radius_m: int, cutoff: datetime
    ) -> TimeframeIncidents:
        rows = self.query(latitude, longitude, radius_m, cutoff)

        by_type: Dict[str, int] = {}
        total = 0
        weighted_total = 0.0
        for incident_type, count, weighted_sum in rows:
            count = int(count)
            by_type[incident_type] = by_type.get(incident_type, 0) + count
            total += count
            weighted_total += float(weighted_sum or 0)

        return TimeframeIncidents(total=total, by_type=by_type, weighted_total=weighted_total)

    def _query_incident_groups(
        self, latitude: float, longitude: float, radius_m: int, cutoff: datetime
    ) -> List[GroupRow]:
        db = self.session_factory()
        try:
            rows = db.execute(
                INCIDENT_GROUPS_SQL,
                {"lat": latitude, "lng": longitude, "radius": radius_m, "cutoff": cutoff},
            ).fetchall()
            return [(row.incident_type, row.count, row.weighted_sum) for row in rows]
        finally:
            db.close()
