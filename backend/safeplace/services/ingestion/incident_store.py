"""Database import service for geocoded incidents."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import Row, func, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from safeplace.db.session import SessionLocal
from safeplace.models.incident import Incident
from safeplace.services.ingestion.types import (
    BulkInsertResult,
    GeocodedIncident,
    InsertOutcome,
    generate_source_id,
    severity_score,
)
from safeplace.services.utils import lat_lng_to_geography

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

NEARBY_SELECT = """
    SELECT
        id,
        occurred_at,
        scraped_at,
        neighborhood,
        municipality,
        state,
        latitude,
        longitude,
        incident_type,
        severity_score,
        source,
        verified,
        ST_Distance(
            location,
            ST_SetSRID(ST_MakePoint(:lng, :lat), 4326)::geography
        ) AS distance
    FROM incidents
    WHERE
        ST_DWithin(
            location,
            ST_SetSRID(ST_MakePoint(:lng, :lat), 4326)::geography,
            :radius
        )
        AND occurred_at >= :cutoff
"""
NEARBY_ORDER = """
    ORDER BY distance ASC
    LIMIT :limit
"""
NEARBY_SQL = text(NEARBY_SELECT + NEARBY_ORDER)
NEARBY_SQL_BY_TYPE = text(NEARBY_SELECT + "    AND incident_type = :incident_type\n" + NEARBY_ORDER)


class IncidentStore:
    """Idempotent insert of incidents keyed by (source, source_id), plus read queries."""

    def __init__(self, db: Session):
        """
        Args:
            db: Database session, committed once per bulk insert
        """
        self.db = db

    def bulk_insert(self, incidents: Sequence[GeocodedIncident]) -> BulkInsertResult:
        """
        Insert incidents, skipping those already stored.

        Each record gets its own savepoint, so a failed insert never aborts
        the rest of the batch.

        Args:
            incidents: Geocoded incidents

        Returns:
            BulkInsertResult with one outcome per incident
        """
        result = BulkInsertResult()

        for incident in incidents:
            result.add(self._insert_one(incident))

        self.db.commit()
        logger.info(
            f"Bulk insert completed: {result.inserted} inserted, {result.duplicates} duplicates, "
            f"{result.skipped} without coordinates, {result.failed} failed"
        )
        return result

    def _insert_one(self, incident: GeocodedIncident) -> InsertOutcome:
        if not incident.has_coordinates:
            logger.warning(
                f"Skipping incident without coordinates: "
                f"{incident.neighborhood}, {incident.municipality}"
            )
            return InsertOutcome.SKIPPED_NO_COORDINATES

        statement = (
            pg_insert(Incident)
            .values(
                occurred_at=incident.occurred_at,
                scraped_at=incident.scraped_at,
                neighborhood=incident.neighborhood,
                municipality=incident.municipality,
                state=incident.state,
                latitude=incident.latitude,
                longitude=incident.longitude,
                location=lat_lng_to_geography(incident.latitude, incident.longitude),
                incident_type=incident.incident_type.value,
                severity_score=severity_score(incident.incident_type),
                source=incident.source,
                source_id=generate_source_id(incident),
                verified=False,
            )
            .on_conflict_do_nothing(index_elements=["source", "source_id"])
        )

        try:
            with self.db.begin_nested():
                inserted = self.db.execute(statement).rowcount
        except IntegrityError as e:
            if getattr(e.orig, "pgcode", None) == UNIQUE_VIOLATION:
                # Unique constraint raced with another writer: already stored
                return InsertOutcome.DUPLICATE
            logger.error(f"Constraint violation inserting incident {generate_source_id(incident)}: {str(e)}")
            return InsertOutcome.FAILED
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert incident {generate_source_id(incident)}: {str(e)}")
            return InsertOutcome.FAILED

        return InsertOutcome.INSERTED if inserted else InsertOutcome.DUPLICATE

    def count(self, municipality: Optional[str] = None, since: Optional[datetime] = None) -> int:
        conditions = []
        if municipality:
            conditions.append(Incident.municipality == municipality)
        if since:
            conditions.append(Incident.occurred_at >= since)
        return self.db.query(func.count(Incident.id)).filter(*conditions).scalar() or 0

    def count_by_type(self, since: datetime, municipality: Optional[str] = None) -> Dict[str, int]:
        conditions = [Incident.occurred_at >= since]
        if municipality:
            conditions.append(Incident.municipality == municipality)
        rows = (
            self.db.query(Incident.incident_type, func.count(Incident.id))
            .filter(*conditions)
            .group_by(Incident.incident_type)
            .all()
        )
        return {incident_type: count for incident_type, count in rows}

    def top_municipalities(self, since: datetime, limit: int = 10) -> List[Tuple[str, int]]:
        """Municipalities with the most incidents since a cutoff, busiest first."""
        incident_count = func.count(Incident.id)
        rows = (
            self.db.query(Incident.municipality, incident_count)
            .filter(Incident.occurred_at >= since)
            .group_by(Incident.municipality)
            .order_by(incident_count.desc())
            .limit(limit)
            .all()
        )
        return [(municipality, count) for municipality, count in rows]

    def nearby(
        self,
        latitude: float,
        longitude: float,
        radius_m: int,
        since: datetime,
        incident_type: Optional[str] = None,
        limit: int = 50,
    ) -> List[Row]:
        """
        Incidents within ``radius_m`` meters of a point, closest first.

        Each row carries the incident columns plus ``distance`` in meters.
        """
        sql = NEARBY_SQL_BY_TYPE if incident_type else NEARBY_SQL
        params = {
            "lat": latitude,
            "lng": longitude,
            "radius": radius_m,
            "cutoff": since,
            "limit": limit,
        }
        if incident_type:
            params["incident_type"] = incident_type
        return self.db.execute(sql, params).fetchall()


@contextmanager
def incident_store_scope(session_factory: Callable[[], Session] = SessionLocal) -> Iterator[IncidentStore]:
    """Open a session for one batch and close it afterwards."""
    db = session_factory()
    try:
        yield IncidentStore(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
