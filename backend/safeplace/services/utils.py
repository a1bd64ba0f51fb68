import math
from datetime import datetime
from zoneinfo import ZoneInfo

from geoalchemy2.shape import from_shape
from shapely.geometry import Point

from safeplace.core.config import get_settings


def lat_lng_to_geography(lat: float, lng: float):
    """Convert lat/lng to PostGIS Geography POINT"""
    point = Point(lng, lat)
    return from_shape(point, srid=4326)


def local_now() -> datetime:
    """
    Current civil time in the source timezone, without tzinfo.

    Incident timestamps are stored as naive local datetimes (the report
    tables publish local time), so every cutoff must be computed on the same
    clock.
    """
    settings = get_settings()
    return datetime.now(ZoneInfo(settings.source_timezone)).replace(tzinfo=None)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounded towards +infinity"""
    return int(math.floor(value + 0.5))
