from fastapi import APIRouter
from safeplace.api.routes import health, score, ingestion, incidents, stats

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(score.router)
api_router.include_router(ingestion.router)
api_router.include_router(incidents.router)
api_router.include_router(stats.router)
