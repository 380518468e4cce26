"""Latest enriched vessel set, replaced wholesale each ingest cycle."""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from darkwatch.schemas.vessel import ShipTypeEnum, Vessel


class VesselStore:
    def __init__(self) -> None:
        self.vessels: list[Vessel] = []
        self.last_update: Optional[datetime] = None
        self.source_name: Optional[str] = None
        self.version = 0

    def replace(self, vessels: Sequence[Vessel], updated_at: datetime, source_name: Optional[str] = None) -> None:
        # Swap the reference so concurrent readers see either the old or the new set
        self.vessels = list(vessels)
        self.last_update = updated_at
        self.source_name = source_name
        self.version += 1

    @property
    def military_vessels(self) -> list[Vessel]:
        return [v for v in self.vessels if v.ship_type == ShipTypeEnum.MILITARY]

    @property
    def commercial_vessels(self) -> list[Vessel]:
        return [v for v in self.vessels if v.ship_type == ShipTypeEnum.COMMERCIAL]

    @property
    def unknown_vessels(self) -> list[Vessel]:
        return [v for v in self.vessels if not v.ship_type or v.ship_type == ShipTypeEnum.UNKNOWN]

    def by_type(self, ship_type: Optional[ShipTypeEnum]) -> list[Vessel]:
        if ship_type is None:
            return list(self.vessels)
        if ship_type == ShipTypeEnum.UNKNOWN:
            return self.unknown_vessels
        return [v for v in self.vessels if v.ship_type == ship_type]
