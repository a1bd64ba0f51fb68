"""OTT report page parser (HTML incident table)."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from html.parser import HTMLParser
from typing import Callable, List, Optional

from safeplace.services.ingestion.parsing import (
    TABLE_LABELS,
    lookup_incident_type,
    parse_report_date,
)
from safeplace.services.ingestion.types import IngestionSource, RawIncident
from safeplace.services.utils import local_now

logger = logging.getLogger(__name__)

INCIDENT_TABLE_HEADERS = ("Ocorrência", "Ocorrencia")
ROW_CELL_COUNT = 5


@dataclass
class HtmlTable:
    """Text content of one <table> element."""

    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)


class _TableCollector(HTMLParser):
    """Collects header and data cell texts of every table in a document."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.tables: List[HtmlTable] = []
        self._open_tables: List[HtmlTable] = []
        self._row: Optional[List[str]] = None
        self._cell: Optional[List[str]] = None
        self._cell_tag: Optional[str] = None

    def handle_starttag(self, tag, attrs):
        if tag == "table":
            self._open_tables.append(HtmlTable())
        elif tag == "tr":
            self._close_row()
            self._row = []
        elif tag in ("td", "th"):
            self._close_cell()
            self._cell = []
            self._cell_tag = tag

    def handle_endtag(self, tag):
        if tag in ("td", "th"):
            self._close_cell()
        elif tag == "tr":
            self._close_row()
        elif tag == "table" and self._open_tables:
            self._close_row()
            self.tables.append(self._open_tables.pop())

    def handle_data(self, data):
        if self._cell is not None:
            self._cell.append(data)

    def _close_cell(self):
        if self._cell is None or not self._open_tables:
            self._cell = None
            return
        text = "".join(self._cell).strip()
        table = self._open_tables[-1]
        if self._cell_tag == "th":
            table.headers.append(text)
        elif self._row is not None:
            self._row.append(text)
        self._cell = None
        self._cell_tag = None

    def _close_row(self):
        self._close_cell()
        if self._row and self._open_tables:
            self._open_tables[-1].rows.append(self._row)
        self._row = None


def extract_tables(html: str) -> List[HtmlTable]:
    collector = _TableCollector()
    collector.feed(html)
    collector.close()
    return collector.tables


class OttTableParser:
    """Parses the OTT report HTML table into RawIncident records."""

    def __init__(self, clock: Callable[[], datetime] = local_now):
        """
        Args:
            clock: Returns the scrape timestamp stamped on every record
        """
        self.clock = clock

    def parse(self, html: str) -> List[RawIncident]:
        """
        Parse HTML and extract incidents.

        Only tables carrying an "Ocorrência" header are considered. Rows that
        cannot be parsed are dropped and logged, never raised.

        Args:
            html: Report page HTML

        Returns:
            List of parsed incidents (possibly empty)
        """
        incidents: List[RawIncident] = []
        scraped_at = self.clock()

        try:
            tables = extract_tables(html)
        except Exception as e:
            logger.error(f"Failed to read report HTML: {str(e)}")
            return incidents

        for table in tables:
            if not any(header in INCIDENT_TABLE_HEADERS for header in table.headers):
                continue

            for cells in table.rows:
                if len(cells) < ROW_CELL_COUNT:
                    logger.warning(f"Skipping row with {len(cells)} cells: {cells}")
                    continue
                incident = self.parse_row(cells, scraped_at)
                if incident:
                    incidents.append(incident)

        logger.info(f"Parsed {len(incidents)} incidents from report table")
        return incidents

    def parse_row(self, cells: List[str], scraped_at: datetime) -> Optional[RawIncident]:
        """Parse one [date, occurrence, neighborhood, municipality, state] row"""
        date_str, occurrence, neighborhood, municipality, state = cells[:ROW_CELL_COUNT]

        occurred_at = parse_report_date(date_str)
        if occurred_at is None:
            logger.warning(f"Failed to parse date: {date_str!r}")
            return None

        incident_type = lookup_incident_type(occurrence, TABLE_LABELS)
        if incident_type is None:
            logger.warning(f"Failed to parse incident type: {occurrence!r}")
            return None

        return RawIncident(
            occurred_at=occurred_at,
            incident_type=incident_type,
            neighborhood=neighborhood.strip(),
            municipality=municipality.strip(),
            state=state.strip(),
            source=IngestionSource.OTT.value,
            scraped_at=scraped_at,
        )
