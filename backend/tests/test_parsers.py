from datetime import datetime

from safeplace.services.ingestion.caption_parser import CaptionParser, split_captions
from safeplace.services.ingestion.ott_parser import OttTableParser, extract_tables
from safeplace.services.ingestion.parsing import (
    CAPTION_LABELS,
    TABLE_LABELS,
    lookup_incident_type,
    parse_report_date,
)
from safeplace.services.ingestion.types import IncidentType, IngestionSource

SCRAPED_AT = datetime(2025, 11, 3, 16, 0)

REPORT_HTML = """
<html><body>
<table class="report">
  <tr><th>Data</th><th>Ocorrência</th><th>Bairro</th><th>Município</th><th>Estado</th></tr>
  <tr><td>03/11/25 14:30</td><td>Tiroteio</td><td>Pavuna</td><td>Rio de Janeiro</td><td>RJ</td></tr>
  <tr><td>03/11/25 15:05</td><td>Disparos  Ouvidos</td><td> Penha </td><td>Rio de Janeiro</td><td>RJ</td></tr>
  <tr><td>03/11/25 15:10</td><td>disparos ouvidos</td><td>Centro</td><td>Niter&oacute;i</td><td>RJ</td></tr>
  <tr><td>03/11/25 15:20</td><td>Tiroteio</td><td>Penha</td><td>Rio de Janeiro</td></tr>
  <tr><td>31/02/25 10:00</td><td>Tiroteio</td><td>Penha</td><td>Rio de Janeiro</td><td>RJ</td></tr>
  <tr><td>03/11/25 16:00</td><td>Alagamento</td><td>Penha</td><td>Rio de Janeiro</td><td>RJ</td></tr>
</table>
<table>
  <tr><th>Aviso</th></tr>
  <tr><td>03/11/25 14:30</td><td>Tiroteio</td><td>Pavuna</td><td>Rio de Janeiro</td><td>RJ</td></tr>
</table>
</body></html>
"""

CAPTIONS = """OTT 360 INFORMA:
Tiroteio - 15/10/25 06:33
Pavuna - Rio de Janeiro RJ
----
OTT 360 INFORMA:
Operação Policial - 16/10/25 08:10
Complexo da Maré - Rio de Janeiro RJ


OTT 360 INFORMA:
Alagamento - 16/10/25 09:00
Centro - Niterói RJ


OTT 360 INFORMA:
Arrastao - 17/10/25 21:45
Copacabana - Rio de Janeiro RJ
"""


def test_parse_report_date():
    """Test DD/MM/YY HH:MM timestamps are read as local civil time"""
    assert parse_report_date("03/11/25 14:30") == datetime(2025, 11, 3, 14, 30)
    assert parse_report_date(" 3/1/25 9:05 ") == datetime(2025, 1, 3, 9, 5)


def test_parse_report_date_rejects_invalid_text():
    """Test malformed or out-of-range dates are rejected"""
    assert parse_report_date("31/02/25 10:00") is None
    assert parse_report_date("03/11/25 25:00") is None
    assert parse_report_date("2025-11-03 14:30") is None
    assert parse_report_date("") is None


def test_label_lookup_is_case_and_whitespace_insensitive():
    """Test label variants resolve to the same type"""
    assert lookup_incident_type("Disparos Ouvidos", TABLE_LABELS) is IncidentType.DISPAROS_OUVIDOS
    assert lookup_incident_type("disparos   ouvidos", TABLE_LABELS) is IncidentType.DISPAROS_OUVIDOS
    assert lookup_incident_type("INCÊNDIO", TABLE_LABELS) is IncidentType.INCENDIO
    assert lookup_incident_type("Incendio", TABLE_LABELS) is IncidentType.INCENDIO
    assert lookup_incident_type("Alagamento", TABLE_LABELS) is None


def test_caption_labels_extend_table_labels():
    """Test captions accept every table label plus the wider vocabulary"""
    for label, incident_type in TABLE_LABELS.items():
        assert CAPTION_LABELS[label] is incident_type
    assert lookup_incident_type("Operação Policial", TABLE_LABELS) is None
    assert lookup_incident_type("Operação Policial", CAPTION_LABELS) is IncidentType.OPERACAO_POLICIAL


def test_extract_tables():
    """Test header and data cells are collected per table"""
    tables = extract_tables(REPORT_HTML)

    assert len(tables) == 2
    assert tables[0].headers == ["Data", "Ocorrência", "Bairro", "Município", "Estado"]
    assert len(tables[0].rows) == 6
    assert tables[0].rows[2][3] == "Niterói"
    assert tables[1].headers == ["Aviso"]


def test_table_parser_extracts_valid_rows():
    """Test valid rows become RawIncident records"""
    parser = OttTableParser(clock=lambda: SCRAPED_AT)

    incidents = parser.parse(REPORT_HTML)

    assert len(incidents) == 3
    first = incidents[0]
    assert first.occurred_at == datetime(2025, 11, 3, 14, 30)
    assert first.incident_type is IncidentType.TIROTEIO
    assert first.neighborhood == "Pavuna"
    assert first.municipality == "Rio de Janeiro"
    assert first.state == "RJ"
    assert first.source == IngestionSource.OTT.value
    assert first.scraped_at == SCRAPED_AT


def test_table_parser_normalizes_cells():
    """Test cell text is trimmed and label variants collapse to one type"""
    incidents = OttTableParser(clock=lambda: SCRAPED_AT).parse(REPORT_HTML)

    assert incidents[1].neighborhood == "Penha"
    assert incidents[1].incident_type is IncidentType.DISPAROS_OUVIDOS
    assert incidents[2].incident_type is IncidentType.DISPAROS_OUVIDOS


def test_table_parser_drops_short_and_invalid_rows():
    """Test 4-cell rows, bad dates and unknown labels are dropped, not raised"""
    incidents = OttTableParser(clock=lambda: SCRAPED_AT).parse(REPORT_HTML)

    assert all(i.occurred_at != datetime(2025, 11, 3, 15, 20) for i in incidents)
    assert all(i.occurred_at != datetime(2025, 11, 3, 16, 0) for i in incidents)


def test_table_parser_ignores_tables_without_occurrence_header():
    """Test only the incident table is read"""
    html = """
    <table><tr><th>Aviso</th></tr>
    <tr><td>03/11/25 14:30</td><td>Tiroteio</td><td>Pavuna</td><td>Rio de Janeiro</td><td>RJ</td></tr>
    </table>
    """
    assert OttTableParser(clock=lambda: SCRAPED_AT).parse(html) == []


def test_table_parser_accepts_unaccented_header():
    """Test the header match tolerates a missing accent"""
    html = """
    <table><tr><th>Data</th><th>Ocorrencia</th></tr>
    <tr><td>03/11/25 14:30</td><td>Incêndio</td><td>Pavuna</td><td>Rio de Janeiro</td><td>RJ</td></tr>
    </table>
    """
    incidents = OttTableParser(clock=lambda: SCRAPED_AT).parse(html)

    assert [i.incident_type for i in incidents] == [IncidentType.INCENDIO]


def test_table_parser_empty_page():
    """Test a page without tables yields no incidents"""
    assert OttTableParser().parse("<html><body><p>Manutenção</p></body></html>") == []


def test_split_captions():
    """Test captions split on dashed lines and on runs of blank lines"""
    captions = split_captions(CAPTIONS)

    assert len(captions) == 4
    assert captions[0].startswith("OTT 360 INFORMA:")
    assert captions[3].endswith("Copacabana - Rio de Janeiro RJ")


def test_split_captions_keeps_single_blank_line_together():
    """Test one blank line does not split a caption"""
    text = "OTT 360 INFORMA:\n\nTiroteio - 15/10/25 06:33\nPavuna - Rio de Janeiro RJ"
    assert len(split_captions(text)) == 1


def test_caption_parser():
    """Test captions parse with the wider label vocabulary"""
    parser = CaptionParser(clock=lambda: SCRAPED_AT)

    incidents = parser.parse(CAPTIONS)

    assert [i.incident_type for i in incidents] == [
        IncidentType.TIROTEIO,
        IncidentType.OPERACAO_POLICIAL,
        IncidentType.ARRASTAO,
    ]
    mare = incidents[1]
    assert mare.neighborhood == "Complexo da Maré"
    assert mare.municipality == "Rio de Janeiro"
    assert mare.state == "RJ"
    assert mare.occurred_at == datetime(2025, 10, 16, 8, 10)
    assert mare.source == IngestionSource.OTT_INSTAGRAM.value


def test_caption_parser_rejects_malformed_captions():
    """Test short captions and unparseable lines yield None"""
    parser = CaptionParser(clock=lambda: SCRAPED_AT)

    assert parser.parse_caption("OTT 360 INFORMA:\nTiroteio - 15/10/25 06:33") is None
    assert parser.parse_caption("OTT 360 INFORMA:\nTiroteio em Pavuna\nPavuna - Rio de Janeiro RJ") is None
    assert parser.parse_caption("OTT 360 INFORMA:\nTiroteio - 15/10/25 06:33\nPavuna, Rio de Janeiro") is None
    assert parser.parse_caption("OTT 360 INFORMA:\nTiroteio - 32/10/25 06:33\nPavuna - Rio de Janeiro RJ") is None
