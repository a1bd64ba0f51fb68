"""Persistence of ingestion run logs."""

import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from safeplace.db.session import SessionLocal
from safeplace.models.scraper_log import ScraperLog
from safeplace.services.ingestion.types import ScraperStatus

logger = logging.getLogger(__name__)


class ScraperLogRepository:
    """Creates, finishes and lists ScraperLog rows. Every call commits on its own session."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def create_running(self, environment: str, source: Optional[str] = None) -> UUID:
        db = self.session_factory()
        try:
            log = ScraperLog(
                status=ScraperStatus.RUNNING.value,
                environment=environment,
                source=source,
                started_at=datetime.utcnow(),
            )
            db.add(log)
            db.commit()
            db.refresh(log)
            return log.id
        finally:
            db.close()

    def finish(
        self,
        log_id: UUID,
        status: ScraperStatus,
        records_found: int,
        records_new: int,
        records_duplicate: int,
        records_failed: int,
        duration_ms: int,
        error_message: Optional[str] = None,
        error_stack: Optional[str] = None,
    ) -> None:
        db = self.session_factory()
        try:
            log = db.query(ScraperLog).filter(ScraperLog.id == log_id).first()
            if not log:
                logger.error(f"Scraper log {log_id} not found")
                return

            log.status = status.value
            log.completed_at = datetime.utcnow()
            log.records_found = records_found
            log.records_new = records_new
            log.records_duplicate = records_duplicate
            log.records_failed = records_failed
            log.duration_ms = duration_ms
            log.error_message = error_message
            log.error_stack = error_stack
            db.commit()
        finally:
            db.close()

    def list_recent(
        self,
        status: Optional[ScraperStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[ScraperLog]:
        db = self.session_factory()
        try:
            query = db.query(ScraperLog)
            if status:
                query = query.filter(ScraperLog.status == status.value)
            return query.order_by(ScraperLog.started_at.desc()).offset(offset).limit(limit).all()
        finally:
            db.close()
