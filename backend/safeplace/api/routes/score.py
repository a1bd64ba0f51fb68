from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from safeplace.schemas.score import (
    ComparisonRead,
    IncidentCountsRead,
    ScoreBadgeRead,
    ScoreData,
    ScoreResponse,
    ScoreValues,
    TrendRead,
)
from safeplace.services.scoring.engine import SafetyScoreEngine
from safeplace.services.scoring.score_cache import ScoreCache, get_score_cache
from safeplace.services.scoring.score_calculator import score_badge
from safeplace.services.scoring.score_records import ScoreRecordRepository
from safeplace.services.scoring.types import SafetyScore

router = APIRouter(prefix="/score", tags=["Score"])
logger = logging.getLogger(__name__)

UNKNOWN_AREA = "Unknown"


def get_score_engine() -> SafetyScoreEngine:
    return SafetyScoreEngine()


def get_score_records() -> ScoreRecordRepository:
    return ScoreRecordRepository()


def build_score_data(score: SafetyScore) -> ScoreData:
    return ScoreData(
        score=ScoreValues(
            overall_score=score.overall_score,
            score_500m=score.score_500m,
            score_1km=score.score_1km,
            score_2km=score.score_2km,
            badge=ScoreBadgeRead.model_validate(score_badge(score.overall_score)),
        ),
        incidents=IncidentCountsRead.model_validate(score.incidents),
        trend=TrendRead.model_validate(score.trend),
        comparison=ComparisonRead.model_validate(score.comparison),
        calculated_at=score.calculated_at,
    )


@router.get(
    "",
    response_model=ScoreResponse,
    summary="Location Safety Score",
    description="Computes the 0-100 safety score of a point from nearby incidents",
)
def get_score(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lng: float = Query(..., ge=-180, le=180, description="Longitude"),
    neighborhood: Optional[str] = Query(None, description="Neighborhood used for the peer comparison"),
    municipality: Optional[str] = Query(None, description="City used for the peer comparison"),
    engine: SafetyScoreEngine = Depends(get_score_engine),
    records: ScoreRecordRepository = Depends(get_score_records),
    cache: ScoreCache = Depends(get_score_cache),
):
    neighborhood_name = neighborhood or UNKNOWN_AREA
    municipality_name = municipality or UNKNOWN_AREA

    cached = cache.get_cached_score(lat, lng, neighborhood_name, municipality_name)
    if cached:
        return ScoreResponse(data=ScoreData.model_validate(cached))

    try:
        score = engine.calculate_score(lat, lng, neighborhood_name, municipality_name)
    except Exception as e:
        logger.error(f"Error calculating score for {lat}, {lng}: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to calculate safety score"},
        )

    # Only scores with a known area join the peer population
    if neighborhood and municipality:
        try:
            records.record(score, lat, lng, neighborhood, municipality)
        except Exception as e:
            logger.warning(f"Failed to record score: {str(e)}")

    data = build_score_data(score)
    cache.set_cached_score(data.model_dump(mode="json"), lat, lng, neighborhood_name, municipality_name)
    return ScoreResponse(data=data)
