"""Pydantic schemas for vessel snapshots, used for ingest validation and API responses."""
from __future__ import annotations

import enum
import math
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from darkwatch.utils.timestamps import parse_timestamp_flexible


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input; serializes camelCase for the API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShipTypeEnum(str, enum.Enum):
    MILITARY = "Military"
    COMMERCIAL = "Commercial"
    UNKNOWN = "Unknown"


class Vessel(CamelModel):
    mmsi: int
    name: Optional[str] = None
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    speed: float = Field(default=0.0, ge=0)
    course: float = Field(default=0.0, ge=0, le=360)
    timestamp: datetime
    ship_type: ShipTypeEnum = ShipTypeEnum.UNKNOWN
    # Derived each ingest cycle
    is_dark: bool = False
    in_coverage: bool = False
    gap_minutes: Optional[int] = None
    estimated_lat: Optional[float] = None
    estimated_lon: Optional[float] = None

    @computed_field
    @property
    def id(self) -> str:
        return str(self.mmsi)

    @field_validator("speed", "course", mode="before")
    @classmethod
    def missing_kinematics_are_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("gap_minutes", mode="before")
    @classmethod
    def round_gap_minutes(cls, v: Any) -> Any:
        if isinstance(v, float) and math.isfinite(v):
            return int(math.floor(v + 0.5))
        return v

    @field_validator("ship_type", mode="before")
    @classmethod
    def unrecognised_type_is_unknown(cls, v: Any) -> Any:
        if v is None or v == "":
            return ShipTypeEnum.UNKNOWN
        if isinstance(v, str) and v not in ShipTypeEnum._value2member_map_:
            return ShipTypeEnum.UNKNOWN
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        parsed = parse_timestamp_flexible(v)
        if parsed is None:
            raise ValueError(f"Unparseable timestamp: {v!r}")
        return parsed


class ClusteredVessel(Vessel):
    """Synthetic representative of a multi-vessel grid cell."""

    cluster_size: int
    members: list[Vessel] = Field(default_factory=list)
