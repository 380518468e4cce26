"""Demonstration data: a fixed vessel set and random demo alerts.

Used when no feed is configured, when DEMO_MODE is on, and as the
scheduler's fallback when a real fetch fails.  Behaves like any other
VesselSource; core logic never special-cases it.
"""
from __future__ import annotations

import random
import uuid
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from darkwatch.modules.vessel_source import VesselSource
from darkwatch.schemas.alerts import Alert, AlertTypeEnum
from darkwatch.schemas.vessel import ShipTypeEnum, Vessel
from darkwatch.utils.timestamps import ensure_utc, utcnow

# Gulf of Thailand and southern Red Sea
DEMO_VESSELS: tuple[dict[str, Any], ...] = (
    {"mmsi": 567000123, "name": "HTMS Chakri Naruebet", "latitude": 13.75, "longitude": 100.58,
     "speed": 12.5, "course": 135, "shipType": "Military"},
    {"mmsi": 529000456, "name": "MV Bangkok Express", "latitude": 13.72, "longitude": 100.55,
     "speed": 8.2, "course": 90, "shipType": "Commercial"},
    {"mmsi": 416001789, "name": "Unknown Vessel", "latitude": 13.78, "longitude": 100.52,
     "speed": 15.8, "course": 270, "shipType": "Unknown"},
    {"mmsi": 567000234, "name": "HTMS Naresuan", "latitude": 13.68, "longitude": 100.60,
     "speed": 10.3, "course": 45, "shipType": "Military"},
    {"mmsi": 477000999, "name": "Red Sea Explorer", "latitude": 15.5, "longitude": 41.2,
     "speed": 14.2, "course": 320, "shipType": "Commercial"},
    {"mmsi": 477000888, "name": "Naval Sentry Red Sea", "latitude": 12.8, "longitude": 43.1,
     "speed": 22.5, "course": 180, "shipType": "Military"},
)

# Simulated motion per fetch in DEMO_MODE (±0.0005°)
DEMO_JITTER_DEG = 0.001

DEMO_ALERT_TEMPLATES: tuple[tuple[AlertTypeEnum, str], ...] = (
    (AlertTypeEnum.MILITARY, "Military vessel detected in monitored zone"),
    (AlertTypeEnum.ZONE_BREACH, "Vessel approaching restricted area"),
    (AlertTypeEnum.SUSPICIOUS, "Suspicious vessel movement pattern detected"),
)


class DemoVesselSource(VesselSource):
    """Fixed demo fleet, timestamped "now" on every fetch.

    With ``jitter_deg`` > 0 each fetch nudges positions by up to ±jitter/2
    and perturbs speed (±1 kn) and course (±5°) to simulate motion.
    """

    def __init__(
        self,
        jitter_deg: float = 0.0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.jitter_deg = jitter_deg
        self.rng = rng or random.Random()
        self.clock = clock
        self._state = [dict(v) for v in DEMO_VESSELS]

    def name(self) -> str:
        return "demo"

    def fetch(self) -> list[dict[str, Any]]:
        if self.jitter_deg > 0:
            self._drift()
        now = ensure_utc(self.clock()).isoformat()
        return [{**v, "timestamp": now} for v in self._state]

    def _drift(self) -> None:
        for v in self._state:
            v["latitude"] += (self.rng.random() - 0.5) * self.jitter_deg
            v["longitude"] += (self.rng.random() - 0.5) * self.jitter_deg
            v["speed"] = max(0.0, v["speed"] + (self.rng.random() - 0.5) * 2)
            v["course"] = (v["course"] + (self.rng.random() - 0.5) * 10) % 360


def random_demo_alert(
    vessels: Sequence[Vessel],
    rng: random.Random,
    now: Optional[datetime] = None,
) -> Alert:
    """One random demo alert, linked to the first Military vessel if any."""
    alert_type, message = rng.choice(DEMO_ALERT_TEMPLATES)
    linked = next((v for v in vessels if v.ship_type == ShipTypeEnum.MILITARY), None)
    return Alert(
        id=f"demo-{uuid.uuid4().hex[:12]}",
        type=alert_type,
        message=message,
        timestamp=ensure_utc(now) if now is not None else utcnow(),
        vessel=linked.model_copy(deep=True) if linked is not None else None,
    )
