"""Pydantic schemas for the viewport and render-ready output."""
from __future__ import annotations

import enum
from typing import Optional

from pydantic import Field

from darkwatch.schemas.vessel import CamelModel, ClusteredVessel, Vessel


class DetailLevelEnum(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Viewport(CamelModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    zoom: float = Field(ge=0, le=24)


class RenderRecord(CamelModel):
    id: str
    position: tuple[float, float]           # [lon, lat], estimated when available
    original_position: tuple[float, float]  # [lon, lat] as reported
    color: tuple[int, int, int, int]
    radius: float
    icon: str
    visible: bool
    cluster_size: Optional[int] = None
    vessel: ClusteredVessel | Vessel
