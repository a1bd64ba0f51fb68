"""Incident record types shared by parsers, geocoder and store."""

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class IncidentType(str, Enum):
    TIROTEIO = "TIROTEIO"
    DISPAROS_OUVIDOS = "DISPAROS_OUVIDOS"
    INCENDIO = "INCENDIO"
    UTILIDADE_PUBLICA = "UTILIDADE_PUBLICA"
    OPERACAO_POLICIAL = "OPERACAO_POLICIAL"
    ASSALTO = "ASSALTO"
    ARRASTAO = "ARRASTAO"
    MANIFESTACAO = "MANIFESTACAO"
    TOQUE_DE_RECOLHER = "TOQUE_DE_RECOLHER"
    PERSEGUICAO_POLICIAL = "PERSEGUICAO_POLICIAL"
    ROUBO_DE_CARGA = "ROUBO_DE_CARGA"
    CARROS_NA_CONTRAMAO = "CARROS_NA_CONTRAMAO"


# Severity weight per incident type (2-10). Must cover every IncidentType.
SEVERITY_SCORES: Dict[IncidentType, int] = {
    IncidentType.TIROTEIO: 10,
    IncidentType.OPERACAO_POLICIAL: 7,
    IncidentType.INCENDIO: 6,
    IncidentType.DISPAROS_OUVIDOS: 5,
    IncidentType.ASSALTO: 5,
    IncidentType.ARRASTAO: 5,
    IncidentType.MANIFESTACAO: 5,
    IncidentType.TOQUE_DE_RECOLHER: 5,
    IncidentType.PERSEGUICAO_POLICIAL: 5,
    IncidentType.ROUBO_DE_CARGA: 5,
    IncidentType.CARROS_NA_CONTRAMAO: 5,
    IncidentType.UTILIDADE_PUBLICA: 2,
}


def severity_score(incident_type: IncidentType) -> int:
    """Severity weight for an incident type. Raises KeyError for an unmapped type."""
    return SEVERITY_SCORES[incident_type]


class IngestionSource(str, Enum):
    OTT = "OTT"
    OTT_INSTAGRAM = "OTT_INSTAGRAM"


class ScraperStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    FAILED = "FAILED"


@dataclass
class RawIncident:
    """Parser output, not yet geocoded nor validated against the store."""

    occurred_at: datetime
    incident_type: IncidentType
    neighborhood: str
    municipality: str
    state: str
    source: str
    scraped_at: datetime


@dataclass
class GeocodedIncident(RawIncident):
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_raw(
        cls,
        incident: RawIncident,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> "GeocodedIncident":
        return cls(
            occurred_at=incident.occurred_at,
            incident_type=incident.incident_type,
            neighborhood=incident.neighborhood,
            municipality=incident.municipality,
            state=incident.state,
            source=incident.source,
            scraped_at=incident.scraped_at,
            latitude=latitude,
            longitude=longitude,
        )

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class GeocodedLocation:
    latitude: float
    longitude: float
    confidence: float = 0.5


def _fold_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def generate_source_id(incident: RawIncident) -> str:
    """
    Build the deduplication key for an incident.

    Format: {occurred_at}_{municipality}_{neighborhood}_{type}, lowercased,
    whitespace runs replaced by "-" and anything outside [a-z0-9_-] removed.
    """
    parts = [
        incident.occurred_at.isoformat(),
        incident.municipality.strip(),
        incident.neighborhood.strip(),
        incident.incident_type.value,
    ]
    key = _fold_accents("_".join(parts)).lower()
    key = re.sub(r"\s+", "-", key)
    return re.sub(r"[^a-z0-9_-]", "", key)


class InsertOutcome(str, Enum):
    INSERTED = "INSERTED"
    DUPLICATE = "DUPLICATE"
    SKIPPED_NO_COORDINATES = "SKIPPED_NO_COORDINATES"
    FAILED = "FAILED"


@dataclass
class BulkInsertResult:
    """Per-record insert outcomes of one batch."""

    outcomes: List[InsertOutcome] = field(default_factory=list)

    def add(self, outcome: InsertOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, outcome: InsertOutcome) -> int:
        return sum(1 for o in self.outcomes if o is outcome)

    @property
    def inserted(self) -> int:
        return self._count(InsertOutcome.INSERTED)

    @property
    def duplicates(self) -> int:
        return self._count(InsertOutcome.DUPLICATE)

    @property
    def skipped(self) -> int:
        return self._count(InsertOutcome.SKIPPED_NO_COORDINATES)

    @property
    def failed(self) -> int:
        return self._count(InsertOutcome.FAILED)


@dataclass
class IngestionResult:
    """Summary returned to whoever triggered an ingestion run."""

    success: bool
    status: ScraperStatus
    records_found: int
    records_new: int
    records_duplicate: int
    records_failed: int
    duration_ms: int
    error: Optional[str] = None
    log_id: Optional[str] = None
