import contextlib
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

import pytest

from safeplace.services.ingestion.types import (
    BulkInsertResult,
    GeocodedIncident,
    IncidentType,
    IngestionSource,
    InsertOutcome,
    RawIncident,
    ScraperStatus,
    generate_source_id,
)
from safeplace.services.scoring.types import (
    ComparisonMetrics,
    IncidentCounts,
    SafetyScore,
    TrendAnalysis,
    TrendDirection,
)

SCRAPED_AT = datetime(2025, 11, 3, 15, 0)


def make_incident(
    neighborhood: str = "Pavuna",
    municipality: str = "Rio de Janeiro",
    incident_type: IncidentType = IncidentType.TIROTEIO,
    occurred_at: datetime = datetime(2025, 11, 3, 14, 30),
    state: str = "RJ",
) -> RawIncident:
    return RawIncident(
        occurred_at=occurred_at,
        incident_type=incident_type,
        neighborhood=neighborhood,
        municipality=municipality,
        state=state,
        source=IngestionSource.OTT.value,
        scraped_at=SCRAPED_AT,
    )


class FakeFetcher:
    def __init__(self, html: str = "<html></html>", error: Optional[Exception] = None):
        self.html = html
        self.error = error
        self.calls = 0

    def fetch_report_page(self) -> str:
        self.calls += 1
        if self.error:
            raise self.error
        return self.html


class FakeParser:
    def __init__(self, incidents: Iterable[RawIncident]):
        self.incidents = list(incidents)

    def parse(self, raw_text: str) -> List[RawIncident]:
        return list(self.incidents)


class FakeGeocoder:
    """Resolves every neighborhood except the ones listed as misses."""

    def __init__(self, misses: Iterable[str] = ()):
        self.misses = set(misses)

    def batch_geocode(self, incidents):
        results = []
        for incident in incidents:
            if incident.neighborhood in self.misses:
                results.append(GeocodedIncident.from_raw(incident))
            else:
                results.append(GeocodedIncident.from_raw(incident, latitude=-22.84, longitude=-43.36))
        return results


class FakeIncidentStore:
    """In-memory store enforcing uniqueness on (source, source_id)."""

    def __init__(self, failing_neighborhoods: Iterable[str] = ()):
        self.rows: Dict[tuple, GeocodedIncident] = {}
        self.failing_neighborhoods = set(failing_neighborhoods)

    def bulk_insert(self, incidents) -> BulkInsertResult:
        result = BulkInsertResult()
        for incident in incidents:
            if not incident.has_coordinates:
                result.add(InsertOutcome.SKIPPED_NO_COORDINATES)
                continue
            if incident.neighborhood in self.failing_neighborhoods:
                result.add(InsertOutcome.FAILED)
                continue
            key = (incident.source, generate_source_id(incident))
            if key in self.rows:
                result.add(InsertOutcome.DUPLICATE)
            else:
                self.rows[key] = incident
                result.add(InsertOutcome.INSERTED)
        return result

    def factory(self):
        return contextlib.nullcontext(self)


class FakeLogRepository:
    def __init__(self, fail_on_create: bool = False, fail_on_finish: bool = False):
        self.logs: Dict = {}
        self.fail_on_create = fail_on_create
        self.fail_on_finish = fail_on_finish

    def create_running(self, environment: str, source: Optional[str] = None):
        if self.fail_on_create:
            raise RuntimeError("scraper_logs unavailable")
        log_id = uuid4()
        self.logs[log_id] = {"status": ScraperStatus.RUNNING, "environment": environment, "source": source}
        return log_id

    def finish(self, log_id, status, **fields):
        if self.fail_on_finish:
            raise RuntimeError("scraper_logs unavailable")
        self.logs[log_id].update(status=status, **fields)


@pytest.fixture
def incidents() -> List[RawIncident]:
    return [
        make_incident("Pavuna"),
        make_incident("Penha", incident_type=IncidentType.DISPAROS_OUVIDOS),
        make_incident("Madureira", incident_type=IncidentType.INCENDIO),
        make_incident("Complexo da Maré", incident_type=IncidentType.TIROTEIO),
        make_incident("Centro", municipality="Niterói", incident_type=IncidentType.UTILIDADE_PUBLICA),
    ]


def make_score(overall: int = 80) -> SafetyScore:
    return SafetyScore(
        overall_score=overall,
        score_500m=62,
        score_1km=100,
        score_2km=100,
        incidents=IncidentCounts(
            incidents_500m_30d=3,
            incidents_500m_90d=5,
            incidents_500m_365d=9,
            incidents_1km_30d=10,
            incidents_1km_90d=20,
            incidents_1km_365d=40,
            incidents_2km_30d=15,
            incidents_2km_90d=30,
            incidents_2km_365d=80,
            shootings_count=2,
            gunfire_count=3,
            fires_count=1,
            other_count=4,
        ),
        trend=TrendAnalysis(
            direction=TrendDirection.WORSENING,
            percentage=100.0,
            confidence=0.7,
            recent_30_day_count=10,
            previous_30_day_count=5,
        ),
        comparison=ComparisonMetrics(
            neighborhood_avg_score=60,
            city_avg_score=60,
            percentile_rank=50,
            better_than_neighborhood=True,
            better_than_city=True,
        ),
        calculated_at=datetime(2025, 11, 3, 12, 0),
    )
