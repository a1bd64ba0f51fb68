"""Date and label rules shared by the report parsers."""

import re
from datetime import datetime
from typing import Dict, Optional

from safeplace.services.ingestion.types import IncidentType

# "03/11/25 14:30"
REPORT_DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})\s+(\d{1,2}):(\d{2})$")

# Labels published in the report table
TABLE_LABELS: Dict[str, IncidentType] = {
    "tiroteio": IncidentType.TIROTEIO,
    "disparos ouvidos": IncidentType.DISPAROS_OUVIDOS,
    "incêndio": IncidentType.INCENDIO,
    "incendio": IncidentType.INCENDIO,
    "utilidade pública": IncidentType.UTILIDADE_PUBLICA,
    "utilidade publica": IncidentType.UTILIDADE_PUBLICA,
}

# Captions use a wider vocabulary
CAPTION_LABELS: Dict[str, IncidentType] = {
    **TABLE_LABELS,
    "operação policial": IncidentType.OPERACAO_POLICIAL,
    "operacao policial": IncidentType.OPERACAO_POLICIAL,
    "assalto": IncidentType.ASSALTO,
    "arrastão": IncidentType.ARRASTAO,
    "arrastao": IncidentType.ARRASTAO,
    "manifestação": IncidentType.MANIFESTACAO,
    "manifestacao": IncidentType.MANIFESTACAO,
    "toque de recolher": IncidentType.TOQUE_DE_RECOLHER,
    "perseguição policial": IncidentType.PERSEGUICAO_POLICIAL,
    "perseguicao policial": IncidentType.PERSEGUICAO_POLICIAL,
    "roubo de carga": IncidentType.ROUBO_DE_CARGA,
    "carros na contramão": IncidentType.CARROS_NA_CONTRAMAO,
    "carros na contramao": IncidentType.CARROS_NA_CONTRAMAO,
}


def parse_report_date(text: str) -> Optional[datetime]:
    """
    Parse a "DD/MM/YY HH:MM" timestamp. Two-digit years are in the 2000s.

    Returns None when the text does not match or the components are out of
    calendar range.
    """
    match = REPORT_DATE_PATTERN.match(text.strip())
    if not match:
        return None

    day, month, year, hour, minute = (int(part) for part in match.groups())
    try:
        return datetime(year + 2000, month, day, hour, minute)
    except ValueError:
        return None


def lookup_incident_type(label: str, labels: Dict[str, IncidentType]) -> Optional[IncidentType]:
    """Case-insensitive label lookup, inner whitespace collapsed."""
    normalized = " ".join(label.lower().split())
    return labels.get(normalized)
