"""Dead-reckoning position estimation.

Projects a vessel's last fix forward along its course at its reported speed
for the time elapsed since the fix, using the spherical forward geodesic
(destination point given start, bearing and angular distance).

Stale fixes (older than MAX_ESTIMATE_HOURS) and fixes from the future
(clock skew) are returned unchanged.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from darkwatch.config import settings
from darkwatch.utils.geo import destination_point
from darkwatch.utils.timestamps import ensure_utc


def elapsed_hours(last_seen: datetime, now: datetime) -> float:
    """Hours from last_seen to now; naive datetimes are read as UTC."""
    return (ensure_utc(now) - ensure_utc(last_seen)).total_seconds() / 3600


def estimate_position(
    lat: float,
    lon: float,
    speed_kn: float,
    course_deg: float,
    last_seen: datetime,
    now: datetime,
    max_hours: Optional[float] = None,
) -> tuple[float, float]:
    """Return the predicted (lat, lon) in degrees.

    Never raises; output range is not clamped (polar inputs are mathematically
    defined but otherwise unchecked).
    """
    horizon = settings.MAX_ESTIMATE_HOURS if max_hours is None else max_hours
    dt_hours = elapsed_hours(last_seen, now)

    if dt_hours > horizon or dt_hours < 0:
        return lat, lon

    distance_nm = speed_kn * dt_hours
    return destination_point(lat, lon, course_deg, distance_nm)
