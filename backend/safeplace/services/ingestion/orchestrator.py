"""Ingestion run: fetch -> parse -> geocode -> insert, with a run log."""

import logging
import time
import traceback
from contextlib import AbstractContextManager
from typing import Callable, List, Optional, Protocol, Sequence
from uuid import UUID

from safeplace.core.config import get_settings
from safeplace.services.ingestion.caption_parser import CaptionParser
from safeplace.services.ingestion.exceptions import SourceFormatError
from safeplace.services.ingestion.geocoder import Geocoder, get_geocoder
from safeplace.services.ingestion.incident_store import incident_store_scope
from safeplace.services.ingestion.ott_client import OttClient
from safeplace.services.ingestion.ott_parser import OttTableParser
from safeplace.services.ingestion.scraper_log import ScraperLogRepository
from safeplace.services.ingestion.types import (
    BulkInsertResult,
    GeocodedIncident,
    IngestionResult,
    IngestionSource,
    RawIncident,
    ScraperStatus,
)

logger = logging.getLogger(__name__)


class ReportFetcher(Protocol):
    def fetch_report_page(self) -> str:
        ...


class ReportParser(Protocol):
    def parse(self, raw_text: str) -> List[RawIncident]:
        ...


class IncidentSink(Protocol):
    def bulk_insert(self, incidents: Sequence[GeocodedIncident]) -> BulkInsertResult:
        ...


class IngestionOrchestrator:
    """
    Runs one ingestion cycle and records it in the scraper log.

    State per run: RUNNING -> SUCCESS | PARTIAL_SUCCESS | FAILED. The run log
    row is created before anything else and finished exactly once.
    """

    def __init__(
        self,
        fetcher: ReportFetcher,
        parser: ReportParser,
        geocoder: Geocoder,
        store_factory: Callable[[], AbstractContextManager],
        log_repository: ScraperLogRepository,
        environment: Optional[str] = None,
    ):
        """
        Args:
            fetcher: Downloads the raw report page
            parser: Turns the report page into RawIncident records
            geocoder: Attaches coordinates to parsed incidents
            store_factory: Returns a context manager yielding an IncidentSink
            log_repository: Persists the run log
            environment: Environment name stamped on the run log
        """
        self.fetcher = fetcher
        self.parser = parser
        self.geocoder = geocoder
        self.store_factory = store_factory
        self.log_repository = log_repository
        self.environment = environment or get_settings().environment

    @classmethod
    def default(cls) -> "IngestionOrchestrator":
        return cls(
            fetcher=OttClient(),
            parser=OttTableParser(),
            geocoder=get_geocoder(),
            store_factory=incident_store_scope,
            log_repository=ScraperLogRepository(),
        )

    def run(self) -> IngestionResult:
        """Fetch the report page and ingest every incident found on it."""
        return self._execute(
            lambda: self.parser.parse(self.fetcher.fetch_report_page()),
            IngestionSource.OTT,
        )

    def import_captions(self, text: str, parser: Optional[CaptionParser] = None) -> IngestionResult:
        """Ingest incidents from a document of social media captions."""
        caption_parser = parser or CaptionParser()
        return self._execute(lambda: caption_parser.parse(text), IngestionSource.OTT_INSTAGRAM)

    def _execute(
        self,
        load_incidents: Callable[[], List[RawIncident]],
        source: IngestionSource,
    ) -> IngestionResult:
        start = time.monotonic()
        log_id: Optional[UUID] = None

        try:
            log_id = self.log_repository.create_running(self.environment, source.value)
            logger.info(f"Starting {source.value} ingestion run {log_id}")

            raw_incidents = load_incidents()
            logger.info(f"Found {len(raw_incidents)} incidents")
            if not raw_incidents:
                raise SourceFormatError("No incidents found in source - page structure may have changed")

            geocoded = self.geocoder.batch_geocode(raw_incidents)

            with self.store_factory() as store:
                inserted = store.bulk_insert(geocoded)

            result = self._summarize(raw_incidents, inserted, self._elapsed_ms(start), log_id)
            self.log_repository.finish(
                log_id,
                result.status,
                records_found=result.records_found,
                records_new=result.records_new,
                records_duplicate=result.records_duplicate,
                records_failed=result.records_failed,
                duration_ms=result.duration_ms,
            )
            logger.info(
                f"Ingestion run {log_id} finished with {result.status.value} in {result.duration_ms}ms: "
                f"{result.records_new} new, {result.records_duplicate} duplicate, "
                f"{result.records_failed} failed"
            )
            return result

        except Exception as e:
            return self._fail(log_id, e, self._elapsed_ms(start))

    def _summarize(
        self,
        raw_incidents: List[RawIncident],
        inserted: BulkInsertResult,
        duration_ms: int,
        log_id: UUID,
    ) -> IngestionResult:
        found = len(raw_incidents)
        status = ScraperStatus.PARTIAL_SUCCESS if inserted.failed else ScraperStatus.SUCCESS
        return IngestionResult(
            success=True,
            status=status,
            records_found=found,
            records_new=inserted.inserted,
            records_duplicate=found - inserted.inserted,
            records_failed=inserted.skipped + inserted.failed,
            duration_ms=duration_ms,
            log_id=str(log_id),
        )

    def _fail(self, log_id: Optional[UUID], error: Exception, duration_ms: int) -> IngestionResult:
        error_message = str(error) or type(error).__name__
        error_stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        logger.error(f"Ingestion run {log_id} failed: {error_message}", exc_info=error)

        if log_id is not None:
            try:
                self.log_repository.finish(
                    log_id,
                    ScraperStatus.FAILED,
                    records_found=0,
                    records_new=0,
                    records_duplicate=0,
                    records_failed=0,
                    duration_ms=duration_ms,
                    error_message=error_message,
                    error_stack=error_stack,
                )
            except Exception as log_error:
                logger.error(f"Could not record failure of run {log_id}: {str(log_error)}")

        return IngestionResult(
            success=False,
            status=ScraperStatus.FAILED,
            records_found=0,
            records_new=0,
            records_duplicate=0,
            records_failed=0,
            duration_ms=duration_ms,
            error=error_message,
            log_id=str(log_id) if log_id is not None else None,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
