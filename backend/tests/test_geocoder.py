import threading
from unittest.mock import MagicMock

import requests

from conftest import make_incident
from safeplace.services.ingestion.geocoder import (
    Geocoder,
    NominatimProvider,
    RequestThrottle,
    location_cache_key,
)
from safeplace.services.ingestion.types import GeocodedLocation


class FakeProvider:
    def __init__(self, results=None, error=None):
        self.results = results or {}
        self.error = error
        self.queries = []

    def geocode(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.results.get(query)


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


PAVUNA_QUERY = "Pavuna, Rio de Janeiro, RJ, Brazil"
PAVUNA = GeocodedLocation(latitude=-22.81, longitude=-43.36, confidence=0.6)


def test_geocode_builds_query_with_country():
    provider = FakeProvider({PAVUNA_QUERY: PAVUNA})
    geocoder = Geocoder(provider=provider, country="Brazil")

    assert geocoder.geocode("Pavuna", "Rio de Janeiro", "RJ") == PAVUNA
    assert provider.queries == [PAVUNA_QUERY]


def test_geocode_cache_hit_skips_provider():
    """Test repeated lookups are served from the cache"""
    provider = FakeProvider({PAVUNA_QUERY: PAVUNA})
    geocoder = Geocoder(provider=provider, country="Brazil")

    geocoder.geocode("Pavuna", "Rio de Janeiro", "RJ")
    geocoder.geocode("  pavuna ", "RIO DE JANEIRO", "rj")

    assert len(provider.queries) == 1
    assert geocoder.cache_stats()["size"] == 1


def test_geocode_misses_are_not_cached():
    """Test a failed lookup is retried on the next call"""
    provider = FakeProvider()
    geocoder = Geocoder(provider=provider, country="Brazil")

    assert geocoder.geocode("Lugar Nenhum", "Rio de Janeiro", "RJ") is None
    assert geocoder.geocode("Lugar Nenhum", "Rio de Janeiro", "RJ") is None
    assert len(provider.queries) == 2
    assert geocoder.cache_stats()["size"] == 0


def test_geocode_provider_error_returns_none():
    """Test provider exceptions never escape the geocoder"""
    geocoder = Geocoder(provider=FakeProvider(error=RuntimeError("boom")), country="Brazil")

    assert geocoder.geocode("Pavuna", "Rio de Janeiro", "RJ") is None


def test_batch_geocode_keeps_unresolved_incidents():
    provider = FakeProvider({PAVUNA_QUERY: PAVUNA})
    geocoder = Geocoder(provider=provider, country="Brazil")

    results = geocoder.batch_geocode([make_incident("Pavuna"), make_incident("Lugar Nenhum")])

    assert len(results) == 2
    assert (results[0].latitude, results[0].longitude) == (-22.81, -43.36)
    assert not results[1].has_coordinates
    assert results[1].neighborhood == "Lugar Nenhum"


def test_location_cache_key():
    assert location_cache_key(" Complexo  da Maré", "Rio de Janeiro", "RJ") == "complexo da maré|rio de janeiro|rj"


def test_throttle_spaces_requests():
    """Test consecutive permits are at least min_interval apart"""
    clock = FakeClock()
    throttle = RequestThrottle(min_interval=1.0, clock=clock, sleep=clock.sleep)

    throttle.wait()
    clock.now += 0.25
    throttle.wait()
    clock.now += 2.0
    throttle.wait()

    assert clock.sleeps == [0.75]


class RecordingThrottle(RequestThrottle):
    """Throttle that keeps every permit time, recorded while the lock is held"""

    def __init__(self, *args, **kwargs):
        self.permits = []
        super().__init__(*args, **kwargs)

    @property
    def _last_permit(self):
        return self.permits[-1] if self.permits else None

    @_last_permit.setter
    def _last_permit(self, value):
        if value is not None:
            self.permits.append(value)


def test_throttle_serializes_concurrent_callers():
    """Test permits handed to concurrent threads are still min_interval apart"""
    clock = FakeClock()
    throttle = RecordingThrottle(min_interval=1.0, clock=clock, sleep=clock.sleep)
    start = threading.Barrier(8)

    def worker():
        start.wait()
        throttle.wait()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(throttle.permits) == 8
    gaps = [later - earlier for earlier, later in zip(throttle.permits, throttle.permits[1:])]
    assert all(gap >= 1.0 for gap in gaps)


def test_throttle_first_call_does_not_wait():
    clock = FakeClock()
    throttle = RequestThrottle(min_interval=1.0, clock=clock, sleep=clock.sleep)

    throttle.wait()

    assert clock.sleeps == []


def make_response(ok=True, status_code=200, payload=None):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = payload
    return response


def make_provider(session):
    clock = FakeClock()
    throttle = RequestThrottle(min_interval=1.0, clock=clock, sleep=clock.sleep)
    return NominatimProvider(
        base_url="https://nominatim.example.org/",
        user_agent="SafePlaceTest/1.0",
        throttle=throttle,
        timeout=5,
        session=session,
    )


def test_nominatim_geocode():
    session = MagicMock()
    session.get.return_value = make_response(payload=[{"lat": "-22.81", "lon": "-43.36", "importance": 0.61}])

    location = make_provider(session).geocode(PAVUNA_QUERY)

    assert location == GeocodedLocation(latitude=-22.81, longitude=-43.36, confidence=0.61)
    session.get.assert_called_once_with(
        "https://nominatim.example.org/search",
        params={"q": PAVUNA_QUERY, "format": "json", "limit": 1},
        headers={"User-Agent": "SafePlaceTest/1.0"},
        timeout=5,
    )


def test_nominatim_empty_result():
    session = MagicMock()
    session.get.return_value = make_response(payload=[])

    assert make_provider(session).geocode(PAVUNA_QUERY) is None


def test_nominatim_error_status():
    session = MagicMock()
    session.get.return_value = make_response(ok=False, status_code=503)

    assert make_provider(session).geocode(PAVUNA_QUERY) is None


def test_nominatim_network_error():
    session = MagicMock()
    session.get.side_effect = requests.exceptions.ConnectionError("connection refused")

    assert make_provider(session).geocode(PAVUNA_QUERY) is None


def test_nominatim_bad_payload():
    session = MagicMock()
    session.get.return_value = make_response(payload=[{"display_name": "Pavuna"}])

    assert make_provider(session).geocode(PAVUNA_QUERY) is None
