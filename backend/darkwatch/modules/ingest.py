"""Snapshot normalization and enrichment.

Turns raw vessel records (from any VesselSource) into fresh Vessel objects
for one ingest cycle:
  1. Map alternate column names (``ship_name``, ``speed_kn``, ``last_seen`` …)
  2. Validate with the Vessel schema; invalid rows are skipped and logged
  3. Derive ship type from the name unless the record supplies a known one
  4. Recompute dark/coverage/gap unless all three arrive pre-computed
  5. Dead-reckon the estimated current position

Nothing is carried over from earlier cycles.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from darkwatch.modules.coverage_classifier import (
    DEFAULT_COVERAGE_HUBS,
    CoverageHub,
    classify_coverage,
)
from darkwatch.modules.position_estimator import estimate_position
from darkwatch.schemas.vessel import ShipTypeEnum, Vessel
from darkwatch.utils.timestamps import ensure_utc, utcnow
from darkwatch.utils.vessel import classify_ship_type

logger = logging.getLogger(__name__)

# Alternate source column → canonical field
_FIELD_ALIASES: dict[str, str] = {
    "ship_name": "name",
    "shipName": "name",
    "vessel_name": "name",
    "lat": "latitude",
    "lon": "longitude",
    "speed_kn": "speed",
    "sog": "speed",
    "cog": "course",
    "last_seen": "timestamp",
    "lastSeen": "timestamp",
    "timestamp_utc": "timestamp",
    "is_dark": "isDark",
    "in_coverage": "inCoverage",
    "in_coverage_zone": "inCoverage",
    "gap_minutes": "gapMinutes",
    "ship_type": "shipType",
}

_PRECOMPUTED_KEYS = ("isDark", "inCoverage", "gapMinutes")
_KNOWN_SHIP_TYPES = frozenset(t.value for t in ShipTypeEnum)


def normalize_record(record: Mapping[str, Any]) -> dict[str, Any]:
    """Rename alternate columns; canonical keys already present win."""
    out: dict[str, Any] = {}
    for key, value in record.items():
        canonical = _FIELD_ALIASES.get(key, key)
        if canonical in out and canonical != key:
            continue
        out[canonical] = value
    return out


def _has_precomputed_coverage(record: Mapping[str, Any]) -> bool:
    return all(record.get(k) is not None for k in _PRECOMPUTED_KEYS)


def enrich_vessel(
    vessel: Vessel,
    now: datetime,
    hubs: Sequence[CoverageHub],
    recompute_coverage: bool = True,
) -> Vessel:
    """Return a copy of *vessel* with all derived fields filled in."""
    update: dict[str, Any] = {}
    if recompute_coverage:
        status = classify_coverage(vessel, now, hubs)
        update.update(
            is_dark=status.is_dark,
            in_coverage=status.in_coverage_zone,
            gap_minutes=status.gap_minutes,
        )
    est_lat, est_lon = estimate_position(
        vessel.latitude, vessel.longitude, vessel.speed, vessel.course, vessel.timestamp, now,
    )
    update.update(estimated_lat=est_lat, estimated_lon=est_lon)
    return vessel.model_copy(update=update)


def build_vessels(
    records: Iterable[Mapping[str, Any]],
    now: Optional[datetime] = None,
    hubs: Sequence[CoverageHub] = DEFAULT_COVERAGE_HUBS,
) -> list[Vessel]:
    """Validate and enrich one snapshot. Output order follows input order."""
    now = ensure_utc(now) if now is not None else utcnow()
    vessels: list[Vessel] = []
    rejected = 0

    for raw in records:
        if not isinstance(raw, Mapping):
            rejected += 1
            logger.warning("Rejected snapshot record of type %s: not a mapping", type(raw).__name__)
            continue
        record = normalize_record(raw)
        try:
            vessel = Vessel.model_validate(record)
        except ValidationError as exc:
            rejected += 1
            logger.warning(
                "Rejected snapshot record for MMSI %s: %d validation error(s)",
                record.get("mmsi"), exc.error_count(),
            )
            continue

        # Missing or unrecognised type: fall back to the name convention
        if record.get("shipType") not in _KNOWN_SHIP_TYPES:
            vessel = vessel.model_copy(update={"ship_type": classify_ship_type(vessel.name)})

        vessels.append(enrich_vessel(
            vessel, now, hubs, recompute_coverage=not _has_precomputed_coverage(record),
        ))

    if rejected:
        logger.info("Snapshot: %d records accepted, %d rejected.", len(vessels), rejected)
    return vessels


def count_by_type(vessels: Iterable[Vessel]) -> dict[str, int]:
    counts = {t.value: 0 for t in ShipTypeEnum}
    for v in vessels:
        counts[v.ship_type.value] += 1
    return counts
