"""Geodesy Helpers — great-circle distance and catalog key normalization.

Invariants:
    - distance_meters is haversine on a sphere of radius EARTH_RADIUS_METERS
    - normalize_key is the ONLY way district/province names are compared

Design Decisions:
    - Haversine over an ellipsoidal model: 100 m verification radius makes the
      sub-0.5% spherical error irrelevant
"""

import math

EARTH_RADIUS_METERS: float = 6_371_000.0


def normalize_key(value: object) -> str | None:
    """Case/whitespace-insensitive comparison key. None stays None."""
    if value is None:
        return None
    return str(value).strip().lower()


def distance_meters(
    lat1: float, lon1: float, lat2: float, lon2: float,
) -> float:
    """Haversine great-circle distance between two WGS84 points, in meters."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c
