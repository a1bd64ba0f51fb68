from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Dict, List


class NearbyIncidentRead(BaseModel):
    id: UUID
    occurred_at: datetime
    scraped_at: datetime
    neighborhood: str
    municipality: str
    state: str
    latitude: float
    longitude: float
    incident_type: str
    severity_score: int
    source: str
    verified: bool
    distance_meters: int


class NearbySummary(BaseModel):
    total: int
    by_type: Dict[str, int]
    search_radius: int
    search_period_days: int


class SearchLocation(BaseModel):
    latitude: float
    longitude: float


class NearbyIncidentsData(BaseModel):
    incidents: List[NearbyIncidentRead]
    summary: NearbySummary
    location: SearchLocation


class NearbyIncidentsResponse(BaseModel):
    success: bool = True
    data: NearbyIncidentsData
