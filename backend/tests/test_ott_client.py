from unittest.mock import MagicMock

import pytest
import requests
from requests.adapters import HTTPAdapter

from safeplace.services.ingestion.exceptions import IngestionError, SourceFetchError
from safeplace.services.ingestion.ott_client import OttClient, build_retrying_session

REPORT_URL = "https://ott.example.org/reportview.php"


def make_client(session):
    return OttClient(url=REPORT_URL, user_agent="SafePlaceTest/1.0", timeout=5, session=session)


def test_fetch_report_page():
    session = MagicMock()
    session.get.return_value.text = "<table></table>"

    html = make_client(session).fetch_report_page()

    assert html == "<table></table>"
    args, kwargs = session.get.call_args
    assert args == (REPORT_URL,)
    assert kwargs["timeout"] == 5
    assert kwargs["headers"]["User-Agent"] == "SafePlaceTest/1.0"


def test_fetch_report_page_http_error():
    """Test non-2xx responses surface as SourceFetchError"""
    session = MagicMock()
    session.get.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("503 Server Error")

    with pytest.raises(SourceFetchError):
        make_client(session).fetch_report_page()


def test_fetch_report_page_network_error():
    session = MagicMock()
    session.get.side_effect = requests.exceptions.Timeout("read timed out")

    with pytest.raises(IngestionError, match="read timed out"):
        make_client(session).fetch_report_page()


def test_build_retrying_session():
    session = build_retrying_session(max_retries=3)

    adapter = session.get_adapter(REPORT_URL)
    assert isinstance(adapter, HTTPAdapter)
    assert adapter.max_retries.total == 3
    assert 503 in adapter.max_retries.status_forcelist
