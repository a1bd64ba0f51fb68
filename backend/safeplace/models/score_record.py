from sqlalchemy import Column, String, Integer, Float, TIMESTAMP, Index
from sqlalchemy.dialects.postgresql import UUID
import uuid

from safeplace.db.base import Base


class ScoreRecord(Base):
    """Previously computed safety score, used as the peer population for comparisons."""

    __tablename__ = "score_records"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    neighborhood = Column(String(255), nullable=False)
    municipality = Column(String(255), nullable=False)
    overall_score = Column(Integer, nullable=False)
    score_500m = Column(Integer, nullable=False)
    score_1km = Column(Integer, nullable=False)
    score_2km = Column(Integer, nullable=False)
    calculated_at = Column(TIMESTAMP(timezone=False), nullable=False)

    __table_args__ = (
        Index("ix_score_records_municipality_calculated_at", "municipality", "calculated_at"),
    )
