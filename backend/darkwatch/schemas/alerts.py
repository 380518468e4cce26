"""Pydantic schemas for the alert and activity feeds."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from darkwatch.schemas.vessel import CamelModel, Vessel


class AlertTypeEnum(str, enum.Enum):
    MILITARY = "military"
    ZONE_BREACH = "zone_breach"
    SUSPICIOUS = "suspicious"
    DARK_VESSEL = "dark_vessel"


class ActivityTypeEnum(str, enum.Enum):
    ALERT = "alert"
    VESSEL_DETECTED = "vessel_detected"


class Alert(CamelModel):
    id: str
    type: AlertTypeEnum
    message: str
    timestamp: datetime
    vessel: Optional[Vessel] = None  # snapshot at emission time, not a live reference


class ActivityEntry(CamelModel):
    id: str
    type: ActivityTypeEnum
    message: str
    timestamp: datetime
