from collections import Counter
from datetime import timedelta
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from safeplace.db.session import get_db
from safeplace.schemas.incident import (
    NearbyIncidentRead,
    NearbyIncidentsData,
    NearbyIncidentsResponse,
    NearbySummary,
    SearchLocation,
)
from safeplace.services.ingestion.incident_store import IncidentStore
from safeplace.services.ingestion.types import IncidentType
from safeplace.services.utils import local_now, round_half_up

router = APIRouter(prefix="/incidents", tags=["Incidents"])
logger = logging.getLogger(__name__)

# Larger values are capped, not rejected
MAX_RADIUS_M = 5000
MAX_DAYS = 365
MAX_LIMIT = 200


def get_incident_store(db: Session = Depends(get_db)) -> IncidentStore:
    return IncidentStore(db)


@router.get(
    "/nearby",
    response_model=NearbyIncidentsResponse,
    summary="Nearby Incidents",
    description="Lists incidents around a point, closest first",
)
def list_nearby_incidents(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lng: float = Query(..., ge=-180, le=180, description="Longitude"),
    radius: int = Query(1000, ge=1, description=f"Search radius in meters (capped at {MAX_RADIUS_M})"),
    days: int = Query(30, ge=1, description=f"Days to look back (capped at {MAX_DAYS})"),
    incident_type: Optional[IncidentType] = Query(None, alias="type", description="Filter by incident type"),
    limit: int = Query(50, ge=1, description=f"Maximum number of results (capped at {MAX_LIMIT})"),
    store: IncidentStore = Depends(get_incident_store),
):
    radius = min(radius, MAX_RADIUS_M)
    days = min(days, MAX_DAYS)
    limit = min(limit, MAX_LIMIT)
    cutoff = local_now() - timedelta(days=days)

    try:
        rows = store.nearby(
            lat,
            lng,
            radius,
            cutoff,
            incident_type=incident_type.value if incident_type else None,
            limit=limit,
        )
    except Exception as e:
        logger.error(f"Error fetching incidents near {lat}, {lng}: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to fetch nearby incidents"},
        )

    incidents = [
        NearbyIncidentRead(
            id=row.id,
            occurred_at=row.occurred_at,
            scraped_at=row.scraped_at,
            neighborhood=row.neighborhood,
            municipality=row.municipality,
            state=row.state,
            latitude=row.latitude,
            longitude=row.longitude,
            incident_type=row.incident_type,
            severity_score=row.severity_score,
            source=row.source,
            verified=row.verified,
            distance_meters=round_half_up(row.distance),
        )
        for row in rows
    ]
    logger.info(f"Found {len(incidents)} incidents within {radius}m of {lat}, {lng}")

    return NearbyIncidentsResponse(
        data=NearbyIncidentsData(
            incidents=incidents,
            summary=NearbySummary(
                total=len(incidents),
                by_type=dict(Counter(incident.incident_type for incident in incidents)),
                search_radius=radius,
                search_period_days=days,
            ),
            location=SearchLocation(latitude=lat, longitude=lng),
        )
    )
