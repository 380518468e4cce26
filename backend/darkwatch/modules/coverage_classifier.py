"""Coverage-zone and signal-gap classification.

A vessel is *dark* when its silence exceeds DARK_THRESHOLD_MINUTES, and
*in coverage* when its last fix lies within COVERAGE_RADIUS_DEG (planar
degrees, ~110 km at the equator) of any coastal receiver hub.  A dark vessel
inside coverage is the interesting case: the receiver should hear it, so the
silence is likely deliberate.

Hubs are loaded once from ``config/coverage_hubs.yaml``; the built-in set is
used when the file is missing or malformed.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import NamedTuple, Optional, Sequence

import yaml

from darkwatch.config import settings
from darkwatch.schemas.vessel import Vessel
from darkwatch.utils.geo import planar_distance_deg
from darkwatch.utils.timestamps import ensure_utc

logger = logging.getLogger(__name__)


class CoverageHub(NamedTuple):
    """A receiver station point; immutable."""
    name: str
    lat: float
    lon: float


class CoverageStatus(NamedTuple):
    is_dark: bool
    in_coverage_zone: bool
    gap_minutes: int


DEFAULT_COVERAGE_HUBS: tuple[CoverageHub, ...] = (
    CoverageHub("Suez", 29.9, 32.5),
    CoverageHub("Bab-el-Mandeb", 12.6, 43.4),
    CoverageHub("Singapore", 1.3, 103.8),
    CoverageHub("Gulf of Thailand", 12.7, 100.9),
    CoverageHub("Hormuz", 26.6, 56.5),
    CoverageHub("Colombo", 6.9, 79.8),
)


def _resolve_config_path(config_path: str) -> Path:
    path = Path(config_path)
    if path.is_absolute() or path.exists():
        return path
    # config/ is at repo root (two levels above the package)
    return Path(__file__).resolve().parents[3] / config_path


def load_coverage_hubs(config_path: Optional[str] = None) -> tuple[CoverageHub, ...]:
    """Load hubs from YAML, falling back to DEFAULT_COVERAGE_HUBS."""
    path = _resolve_config_path(config_path or settings.COVERAGE_HUBS_CONFIG)
    if not path.exists():
        logger.info("Coverage hub config %s not found; using built-in hubs.", path)
        return DEFAULT_COVERAGE_HUBS

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        hubs = tuple(
            CoverageHub(str(h["name"]), float(h["lat"]), float(h["lon"]))
            for h in data.get("hubs", [])
        )
    except (yaml.YAMLError, KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Malformed coverage hub config %s (%s); using built-in hubs.", path, exc)
        return DEFAULT_COVERAGE_HUBS

    if not hubs:
        logger.warning("Coverage hub config %s lists no hubs; using built-in hubs.", path)
        return DEFAULT_COVERAGE_HUBS
    return hubs


def compute_gap_minutes(last_seen: datetime, now: datetime) -> int:
    """Minutes of silence, rounded half-up to the nearest integer."""
    minutes = (ensure_utc(now) - ensure_utc(last_seen)).total_seconds() / 60
    return int(math.floor(minutes + 0.5))


def in_coverage_zone(
    lat: float,
    lon: float,
    hubs: Sequence[CoverageHub],
    radius_deg: Optional[float] = None,
) -> bool:
    radius = settings.COVERAGE_RADIUS_DEG if radius_deg is None else radius_deg
    return any(planar_distance_deg(lat, lon, h.lat, h.lon) <= radius for h in hubs)


def classify_coverage(
    vessel: Vessel,
    now: datetime,
    hubs: Sequence[CoverageHub] = DEFAULT_COVERAGE_HUBS,
    dark_threshold_minutes: Optional[float] = None,
    radius_deg: Optional[float] = None,
) -> CoverageStatus:
    """Classify one vessel. Pure: the vessel is not modified."""
    threshold = (
        settings.DARK_THRESHOLD_MINUTES if dark_threshold_minutes is None else dark_threshold_minutes
    )
    gap = compute_gap_minutes(vessel.timestamp, now)
    return CoverageStatus(
        is_dark=gap > threshold,
        in_coverage_zone=in_coverage_zone(vessel.latitude, vessel.longitude, hubs, radius_deg),
        gap_minutes=gap,
    )
