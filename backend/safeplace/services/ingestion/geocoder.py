"""
Resolves neighborhood + municipality + state to coordinates.

Lookups are cached for the lifetime of the Geocoder and the external
provider is called through a single-flight throttle.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Protocol, Sequence

import requests

from safeplace.core.config import get_settings
from safeplace.services.ingestion.ott_client import build_retrying_session
from safeplace.services.ingestion.types import GeocodedIncident, GeocodedLocation, RawIncident

logger = logging.getLogger(__name__)


class RequestThrottle:
    """
    Minimum-interval gate shared by every caller of one provider.

    ``wait()`` blocks until at least ``min_interval`` seconds have passed
    since the previous permit. Callers are serialized on a lock; the lock is
    released before the caller performs its request.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_permit: Optional[float] = None

    def wait(self) -> None:
        with self._lock:
            if self._last_permit is not None:
                elapsed = self._clock() - self._last_permit
                if elapsed < self.min_interval:
                    self._sleep(self.min_interval - elapsed)
            self._last_permit = self._clock()


class GeocodingProvider(Protocol):
    def geocode(self, query: str) -> Optional[GeocodedLocation]:
        ...


class NominatimProvider:
    """OpenStreetMap Nominatim provider (free, 1 request per second)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        throttle: Optional[RequestThrottle] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.throttle = throttle or RequestThrottle(settings.geocode_min_interval_seconds)
        self.timeout = timeout or settings.http_timeout_seconds
        self.session = session or build_retrying_session(settings.http_max_retries)

    def geocode(self, query: str) -> Optional[GeocodedLocation]:
        """
        Look up a free-text place.

        Returns:
            GeocodedLocation, or None on network error, non-2xx status or
            empty result
        """
        self.throttle.wait()

        try:
            response = self.session.get(
                f"{self.base_url}/search",
                params={"q": query, "format": "json", "limit": 1},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Nominatim request failed for {query!r}: {str(e)}")
            return None

        if not response.ok:
            logger.warning(f"Nominatim returned {response.status_code} for: {query!r}")
            return None

        try:
            data = response.json()
            if not data:
                return None
            first = data[0]
            return GeocodedLocation(
                latitude=float(first["lat"]),
                longitude=float(first["lon"]),
                confidence=float(first.get("importance") or 0.5),
            )
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Unexpected Nominatim payload for {query!r}: {str(e)}")
            return None


def location_cache_key(neighborhood: str, municipality: str, state: str) -> str:
    parts = (neighborhood, municipality, state)
    return "|".join(" ".join(part.lower().split()) for part in parts)


class Geocoder:
    """Geocoder with an in-memory, process-lifetime cache."""

    def __init__(self, provider: Optional[GeocodingProvider] = None, country: Optional[str] = None):
        settings = get_settings()
        self.provider = provider or NominatimProvider()
        self.country = country or settings.geocode_country
        self._cache: Dict[str, GeocodedLocation] = {}

    def geocode(self, neighborhood: str, municipality: str, state: str) -> Optional[GeocodedLocation]:
        """
        Geocode a single location.

        Failed lookups are not cached, so a later run retries them.
        """
        cache_key = location_cache_key(neighborhood, municipality, state)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        query = f"{neighborhood}, {municipality}, {state}, {self.country}"
        try:
            result = self.provider.geocode(query)
        except Exception as e:
            logger.error(f"Geocoding failed for {cache_key}: {str(e)}")
            return None

        if result is not None:
            self._cache[cache_key] = result
        return result

    def batch_geocode(self, incidents: Sequence[RawIncident]) -> List[GeocodedIncident]:
        """Geocode incidents one by one; unresolved incidents keep no coordinates."""
        results: List[GeocodedIncident] = []

        for incident in incidents:
            location = self.geocode(incident.neighborhood, incident.municipality, incident.state)
            results.append(
                GeocodedIncident.from_raw(
                    incident,
                    latitude=location.latitude if location else None,
                    longitude=location.longitude if location else None,
                )
            )

        resolved = sum(1 for r in results if r.has_coordinates)
        logger.info(f"Geocoded {resolved}/{len(results)} incidents ({len(self._cache)} cached locations)")
        return results

    def cache_stats(self) -> dict:
        return {
            "size": len(self._cache),
            "entries": list(self._cache.keys()),
        }


# Singleton instance, so the cache and the throttle live as long as the process
_geocoder: Optional[Geocoder] = None


def get_geocoder() -> Geocoder:
    global _geocoder
    if _geocoder is None:
        _geocoder = Geocoder()
    return _geocoder
