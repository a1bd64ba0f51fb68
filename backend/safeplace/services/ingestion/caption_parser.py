"""
Parser for OTT social media captions.

Caption format::

    OTT 360 INFORMA:
    Tiroteio - 15/10/25 06:33
    Pavuna - Rio de Janeiro RJ
"""

import logging
import re
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from safeplace.services.ingestion.parsing import (
    CAPTION_LABELS,
    lookup_incident_type,
    parse_report_date,
)
from safeplace.services.ingestion.types import IngestionSource, RawIncident
from safeplace.services.utils import local_now

logger = logging.getLogger(__name__)

TYPE_DATE_PATTERN = re.compile(r"^(.+?)\s*-\s*(\d{2}/\d{2}/\d{2}\s+\d{2}:\d{2})")
LOCATION_PATTERN = re.compile(r"^(.+?)\s*-\s*(.+?)\s+([A-Z]{2})$")

# Captions in one document are separated by a "----" line or by two or more blank lines
CAPTION_SEPARATOR = re.compile(r"\n\s*----\s*\n|\n\s*\n\s*\n")


class CaptionParser:
    """Parses three-line incident captions into RawIncident records."""

    def __init__(self, clock: Callable[[], datetime] = local_now):
        self.clock = clock

    def parse(self, text: str) -> List[RawIncident]:
        """Parse a document holding one or more captions."""
        captions = split_captions(text)
        incidents = self.parse_batch(captions)
        logger.info(f"Parsed {len(incidents)}/{len(captions)} captions")
        return incidents

    def parse_batch(self, captions: Iterable[str]) -> List[RawIncident]:
        incidents = []
        for caption in captions:
            incident = self.parse_caption(caption)
            if incident:
                incidents.append(incident)
        return incidents

    def parse_caption(self, caption: str) -> Optional[RawIncident]:
        """
        Parse a single caption.

        Args:
            caption: Caption text; line 1 is a banner and is ignored

        Returns:
            RawIncident or None if the caption is malformed
        """
        lines = [line.strip() for line in caption.split("\n")]
        lines = [line for line in lines if line]

        if len(lines) < 3:
            logger.warning(f"Caption too short: {caption!r}")
            return None

        type_date_line, location_line = lines[1], lines[2]

        type_match = TYPE_DATE_PATTERN.match(type_date_line)
        if not type_match:
            logger.warning(f"Could not parse type/date from: {type_date_line!r}")
            return None

        location_match = LOCATION_PATTERN.match(location_line)
        if not location_match:
            logger.warning(f"Could not parse location from: {location_line!r}")
            return None

        type_str, date_str = type_match.group(1).strip(), type_match.group(2).strip()
        neighborhood, municipality, state = (part.strip() for part in location_match.groups())

        incident_type = lookup_incident_type(type_str, CAPTION_LABELS)
        if incident_type is None:
            logger.warning(f"Unknown incident type: {type_str!r}")
            return None

        occurred_at = parse_report_date(date_str)
        if occurred_at is None:
            logger.warning(f"Could not parse date: {date_str!r}")
            return None

        return RawIncident(
            occurred_at=occurred_at,
            incident_type=incident_type,
            neighborhood=neighborhood,
            municipality=municipality,
            state=state,
            source=IngestionSource.OTT_INSTAGRAM.value,
            scraped_at=self.clock(),
        )


def split_captions(text: str) -> List[str]:
    normalized = text.replace("\r\n", "\n")
    return [c.strip() for c in CAPTION_SEPARATOR.split(normalized) if c.strip()]
