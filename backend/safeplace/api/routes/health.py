import time
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
import logging

from safeplace.core.config import get_settings
from safeplace.db.session import get_db
from safeplace.models.scraper_log import ScraperLog
from safeplace.services.ingestion.incident_store import IncidentStore

router = APIRouter(prefix="/health", tags=["Health"])
settings = get_settings()
logger = logging.getLogger(__name__)

# Database round trips slower than this are reported as "slow"
SLOW_DATABASE_MS = 1000


@router.get(
    "",
    summary="System Health Check",
    description="Checks the database, the latest ingestion run and the incident count",
    response_description="Health status; 503 when any check is degraded",
)
def health_check(db: Session = Depends(get_db)):
    """
    System health endpoint.

    The service is healthy when the database answers quickly and the latest
    ingestion run started within the configured staleness window.
    """
    start = time.monotonic()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database ping failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "environment": settings.environment,
                "database": {"status": "error", "error": str(e)},
            },
        )
    latency_ms = int((time.monotonic() - start) * 1000)
    db_status = "ok" if latency_ms < SLOW_DATABASE_MS else "slow"

    last_run = db.query(ScraperLog).order_by(ScraperLog.started_at.desc()).first()
    incident_count = IncidentStore(db).count()

    stale_cutoff = datetime.utcnow() - timedelta(hours=settings.scraper_stale_after_hours)
    scraper_fresh = last_run is not None and last_run.started_at >= stale_cutoff
    healthy = db_status == "ok" and scraper_fresh

    body = {
        "status": "healthy" if healthy else "degraded",
        "environment": settings.environment,
        "timestamp": datetime.utcnow(),
        "database": {"status": db_status, "latency_ms": latency_ms},
        "scraper": {
            "status": "ok" if scraper_fresh else "stale",
            "last_run": last_run.started_at if last_run else None,
            "last_status": last_run.status if last_run else None,
        },
        "incidents": {"total": incident_count},
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=jsonable_encoder(body),
    )
