import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from safeplace.core.config import get_settings
from safeplace.api import api_router

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

settings = get_settings()

API_VERSION = "1.0.0"

app = FastAPI(
    title="SafePlace Core",
    description="""
    ## SafePlace Core API

    Public incident ingestion and location safety scoring.

    * **Ingestion**: scrapes the public incident report, geocodes each incident and stores it once
    * **Safety Score**: 0-100 score of a point from incidents within 500 m, 1 km and 2 km over 30, 90 and 365 days
    * **Trend**: last 30 days against the preceding period
    * **Comparison**: rank against recent scores in the same neighborhood and city
    """,
    version=API_VERSION,
    openapi_tags=[
        {"name": "Health", "description": "Database, scraper freshness and incident count"},
        {"name": "Score", "description": "Radius/timeframe aggregation, trend and peer comparison"},
        {"name": "Ingestion", "description": "Trigger an ingestion run and list run logs"},
        {"name": "Incidents", "description": "Incidents around a point"},
        {"name": "Stats", "description": "Incident, score and ingestion statistics"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/", summary="API Root", tags=["Health"])
def root():
    return {
        "name": app.title,
        "version": API_VERSION,
        "environment": settings.environment,
        "status": "running",
        "docs": "/docs",
    }
