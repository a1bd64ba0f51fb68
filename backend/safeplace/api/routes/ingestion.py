from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status

from safeplace.core.config import get_settings
from safeplace.schemas.ingestion import IngestionRunResponse, ScraperLogRead
from safeplace.services.ingestion.orchestrator import IngestionOrchestrator
from safeplace.services.ingestion.scraper_log import ScraperLogRepository
from safeplace.services.ingestion.types import ScraperStatus

router = APIRouter(prefix="/ingestion", tags=["Ingestion"])


def get_orchestrator() -> IngestionOrchestrator:
    return IngestionOrchestrator.default()


def get_scraper_log_repository() -> ScraperLogRepository:
    return ScraperLogRepository()


def verify_trigger_token(authorization: Optional[str] = Header(None)) -> None:
    """Require ``Authorization: Bearer <token>`` when a trigger token is configured."""
    token = get_settings().ingestion_trigger_token
    if token and authorization != f"Bearer {token}":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing ingestion token",
        )


@router.post(
    "/run",
    response_model=IngestionRunResponse,
    summary="Run Ingestion",
    description="Fetches the report page, geocodes new incidents and stores them",
    dependencies=[Depends(verify_trigger_token)],
)
def run_ingestion(response: Response, orchestrator: IngestionOrchestrator = Depends(get_orchestrator)):
    result = orchestrator.run()
    if not result.success:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return IngestionRunResponse(**asdict(result), timestamp=datetime.utcnow())


@router.get("/logs", response_model=List[ScraperLogRead])
def list_ingestion_logs(
    status_filter: Optional[ScraperStatus] = Query(None, alias="status", description="Filter by run status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    repository: ScraperLogRepository = Depends(get_scraper_log_repository),
):
    return repository.list_recent(status=status_filter, limit=limit, offset=offset)
