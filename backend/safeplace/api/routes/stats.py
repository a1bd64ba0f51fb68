from datetime import timedelta
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from safeplace.api.routes.incidents import get_incident_store
from safeplace.api.routes.ingestion import get_scraper_log_repository
from safeplace.api.routes.score import get_score_records
from safeplace.schemas.stats import (
    IncidentStats,
    MunicipalityCount,
    ScoreStats,
    ScraperRunSummary,
    ScraperStats,
    StatsData,
    StatsMeta,
    StatsResponse,
)
from safeplace.services.ingestion.incident_store import IncidentStore
from safeplace.services.ingestion.scraper_log import ScraperLogRepository
from safeplace.services.ingestion.types import ScraperStatus
from safeplace.services.scoring.score_records import ScoreRecordRepository
from safeplace.services.utils import local_now, round_half_up

router = APIRouter(prefix="/stats", tags=["Stats"])
logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "365d": 365}
DEFAULT_PERIOD = "30d"
RECENT_RUNS = 10
TOP_MUNICIPALITIES = 10


def build_scraper_stats(runs) -> ScraperStats:
    if not runs:
        return ScraperStats(success_rate=0, avg_duration_ms=0, recent_runs=[])

    successes = sum(1 for run in runs if run.status == ScraperStatus.SUCCESS.value)
    durations = sum(run.duration_ms or 0 for run in runs)
    return ScraperStats(
        last_run=runs[0].started_at,
        success_rate=round_half_up(successes / len(runs) * 100),
        avg_duration_ms=round_half_up(durations / len(runs)),
        recent_runs=[ScraperRunSummary.model_validate(run) for run in runs],
    )


@router.get(
    "",
    response_model=StatsResponse,
    summary="Platform Statistics",
    description="Incident totals by period, type and municipality, plus score and ingestion statistics",
)
def get_stats(
    municipality: Optional[str] = Query(None, description="Restrict incident counts to one municipality"),
    period: str = Query(DEFAULT_PERIOD, description="One of 7d, 30d, 90d, 365d; anything else means 30d"),
    store: IncidentStore = Depends(get_incident_store),
    records: ScoreRecordRepository = Depends(get_score_records),
    log_repository: ScraperLogRepository = Depends(get_scraper_log_repository),
):
    if period not in PERIOD_DAYS:
        period = DEFAULT_PERIOD
    period_days = PERIOD_DAYS[period]
    now = local_now()
    cutoff = now - timedelta(days=period_days)

    try:
        top_municipalities = [] if municipality else store.top_municipalities(cutoff, limit=TOP_MUNICIPALITIES)
        incidents = IncidentStats(
            total=store.count(municipality=municipality),
            recent=store.count(municipality=municipality, since=cutoff),
            by_type=store.count_by_type(cutoff, municipality=municipality),
            top_municipalities=[
                MunicipalityCount(municipality=name, count=count) for name, count in top_municipalities
            ],
        )
        scores = ScoreStats(
            total=records.total(),
            recent=records.total(since=cutoff),
            avg_score=round_half_up(records.overall_average(cutoff) or 0),
        )
        scraper = build_scraper_stats(log_repository.list_recent(limit=RECENT_RUNS))
    except Exception as e:
        logger.error(f"Error generating stats: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to generate stats"},
        )

    return StatsResponse(
        data=StatsData(
            incidents=incidents,
            scores=scores,
            scraper=scraper,
            meta=StatsMeta(
                period=period,
                period_days=period_days,
                municipality=municipality or "all",
                generated_at=now,
            ),
        )
    )
