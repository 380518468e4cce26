"""Shared geodesic utilities on a spherical earth.

Used by the position estimator and the coverage classifier.
"""
from __future__ import annotations

import math

EARTH_RADIUS_NM: float = 3440.065   # Earth mean radius in nautical miles


def destination_point(lat: float, lon: float, bearing_deg: float, distance_nm: float) -> tuple[float, float]:
    """Destination (lat, lon) in degrees given start, bearing, and distance in nm."""
    d = distance_nm / EARTH_RADIUS_NM
    lat_r = math.radians(lat)
    lon_r = math.radians(lon)
    brng = math.radians(bearing_deg)

    lat2 = math.asin(
        math.sin(lat_r) * math.cos(d) + math.cos(lat_r) * math.sin(d) * math.cos(brng)
    )
    lon2 = lon_r + math.atan2(
        math.sin(brng) * math.sin(d) * math.cos(lat_r),
        math.cos(d) - math.sin(lat_r) * math.sin(lat2),
    )
    return math.degrees(lat2), math.degrees(lon2)


def planar_distance_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Euclidean distance in raw degrees (lat/lon treated as a flat plane).

    Matches the semantics of a PostGIS ST_DWithin on SRID 4326 geometries.
    """
    return math.hypot(lat2 - lat1, lon2 - lon1)
