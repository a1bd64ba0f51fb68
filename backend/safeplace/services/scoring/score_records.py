"""Persisted scores used as the peer population."""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from safeplace.db.session import SessionLocal
from safeplace.models.score_record import ScoreRecord
from safeplace.services.scoring.types import SafetyScore

logger = logging.getLogger(__name__)


class ScoreRecordRepository:
    """Reads and writes the score_records table. Each call uses its own session."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def average_score(
        self,
        municipality: str,
        since: datetime,
        neighborhood: Optional[str] = None,
    ) -> Optional[float]:
        """Mean overall score in a city (or one of its neighborhoods) since a cutoff; None without data."""
        db = self.session_factory()
        try:
            query = db.query(func.avg(ScoreRecord.overall_score)).filter(
                ScoreRecord.municipality == municipality,
                ScoreRecord.calculated_at >= since,
            )
            if neighborhood is not None:
                query = query.filter(ScoreRecord.neighborhood == neighborhood)
            average = query.scalar()
            return float(average) if average is not None else None
        finally:
            db.close()

    def count_scores(self, municipality: str, since: datetime, below: Optional[int] = None) -> int:
        """Number of scores in a city since a cutoff, optionally only those strictly below a value."""
        db = self.session_factory()
        try:
            query = db.query(func.count(ScoreRecord.id)).filter(
                ScoreRecord.municipality == municipality,
                ScoreRecord.calculated_at >= since,
            )
            if below is not None:
                query = query.filter(ScoreRecord.overall_score < below)
            return query.scalar() or 0
        finally:
            db.close()

    def total(self, since: Optional[datetime] = None) -> int:
        """Number of recorded scores, optionally only those calculated since a cutoff."""
        db = self.session_factory()
        try:
            query = db.query(func.count(ScoreRecord.id))
            if since is not None:
                query = query.filter(ScoreRecord.calculated_at >= since)
            return query.scalar() or 0
        finally:
            db.close()

    def overall_average(self, since: datetime) -> Optional[float]:
        db = self.session_factory()
        try:
            average = (
                db.query(func.avg(ScoreRecord.overall_score))
                .filter(ScoreRecord.calculated_at >= since)
                .scalar()
            )
            return float(average) if average is not None else None
        finally:
            db.close()

    def record(
        self,
        score: SafetyScore,
        latitude: float,
        longitude: float,
        neighborhood: str,
        municipality: str,
    ) -> None:
        db = self.session_factory()
        try:
            db.add(
                ScoreRecord(
                    latitude=latitude,
                    longitude=longitude,
                    neighborhood=neighborhood,
                    municipality=municipality,
                    overall_score=score.overall_score,
                    score_500m=score.score_500m,
                    score_1km=score.score_1km,
                    score_2km=score.score_2km,
                    calculated_at=score.calculated_at,
                )
            )
            db.commit()
            logger.debug(f"Recorded score {score.overall_score} for {neighborhood}, {municipality}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
