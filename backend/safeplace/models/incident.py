from sqlalchemy import Column, String, Integer, Float, Boolean, TIMESTAMP, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from geoalchemy2 import Geography
from sqlalchemy.sql import func
import uuid

from safeplace.db.base import Base


class Incident(Base):
    __tablename__ = "incidents"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    occurred_at = Column(TIMESTAMP(timezone=False), nullable=False, index=True)
    scraped_at = Column(TIMESTAMP(timezone=False), nullable=False)
    neighborhood = Column(String(255), nullable=False)
    municipality = Column(String(255), nullable=False, index=True)
    state = Column(String(2), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    location = Column(Geography(geometry_type="POINT", srid=4326), nullable=False)
    incident_type = Column(String(50), nullable=False, index=True)
    severity_score = Column(Integer, nullable=False)
    source = Column(String(50), nullable=False)
    # Deterministic key built from occurred_at, municipality, neighborhood and type
    source_id = Column(String(255), nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=False), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("source", "source_id", name="uq_incidents_source_source_id"),
    )
