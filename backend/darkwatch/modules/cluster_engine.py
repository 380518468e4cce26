"""Density-aware reduction of the vessel set into a bounded render set.

Three sequential policies, applied per call:
  1. Priority cap — above MAX_RENDER_VESSELS, keep the highest-scoring
     vessels (Military +100, dark +50); stable, so ties keep input order.
  2. Zoom-gated grid clustering — at zoom >= CLUSTER_DISABLE_ZOOM every vessel
     is rendered individually.  Below it, vessels are bucketed into square
     cells (coarse below CLUSTER_FINE_ZOOM, fine at/above) by flooring
     lat/lon to the cell origin.  Vessels without finite coordinates are
     dropped here.
  3. Representative synthesis — singleton cells pass through; larger cells
     collapse to one ClusteredVessel at the members' mean position, copying
     the fields of the first Military member, else the first dark member,
     else the first member.

Styling (color/radius/icon) is precomputed once per reduction in
``to_render_record``.

The engine holds no domain state.  Viewport bounds and the throttle timestamp
persist across calls; ``reduce`` resets the bounds from its viewport argument,
so equal inputs always give equal outputs.
"""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, NamedTuple, Optional, Sequence

from darkwatch.config import settings
from darkwatch.schemas.render import DetailLevelEnum, RenderRecord, Viewport
from darkwatch.schemas.vessel import ClusteredVessel, ShipTypeEnum, Vessel
from darkwatch.utils.vessel import priority_score

logger = logging.getLogger(__name__)

# RGBA colors (tailwind palette)
COLOR_DARK_IN_COVERAGE = (220, 38, 38, 255)    # red-600
COLOR_DARK_OUT_OF_COVERAGE = (107, 114, 128, 179)  # gray-500, translucent
COLOR_MILITARY = (239, 68, 68, 255)            # red-500
COLOR_COMMERCIAL = (34, 197, 94, 255)          # green-500
COLOR_UNKNOWN = (234, 179, 8, 255)             # yellow-500

# Radius in metres
RADIUS_ALARM = 8000
RADIUS_CLUSTER_BASE = 12000
RADIUS_CLUSTER_PER_MEMBER = 1000
RADIUS_STANDARD = 4000

ICON_MILITARY = "⚓"
ICON_COMMERCIAL = "🚢"
ICON_PIN = "📍"


@dataclass(frozen=True)
class ClusterConfig:
    """Policy constants for the engine. Picklable, so it can cross to a worker."""
    max_vessels: int = 200
    disable_zoom: float = 8.0
    fine_zoom: float = 4.0
    coarse_cell_deg: float = 0.5
    fine_cell_deg: float = 0.2
    padding_deg: float = 0.5
    throttle_ms: float = 100.0

    @classmethod
    def from_settings(cls) -> "ClusterConfig":
        return cls(
            max_vessels=settings.MAX_RENDER_VESSELS,
            disable_zoom=settings.CLUSTER_DISABLE_ZOOM,
            fine_zoom=settings.CLUSTER_FINE_ZOOM,
            coarse_cell_deg=settings.CLUSTER_CELL_COARSE_DEG,
            fine_cell_deg=settings.CLUSTER_CELL_FINE_DEG,
            padding_deg=settings.VIEWPORT_PADDING_DEG,
            throttle_ms=settings.RENDER_THROTTLE_MS,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ViewportBounds(NamedTuple):
    west: float
    south: float
    east: float
    north: float


def has_valid_position(vessel: Vessel) -> bool:
    lat = getattr(vessel, "latitude", None)
    lon = getattr(vessel, "longitude", None)
    if lat is None or lon is None:
        return False
    try:
        return math.isfinite(lat) and math.isfinite(lon)
    except TypeError:
        return False


class ClusterEngine:
    """One instance per session, owned by whoever drives rendering."""

    def __init__(self, config: Optional[ClusterConfig] = None) -> None:
        self.config = config or ClusterConfig.from_settings()
        self.viewport_bounds: Optional[ViewportBounds] = None
        self._last_update_ms: Optional[float] = None

    # ── Viewport / throttle / LOD ───────────────────────────────────────────

    def update_viewport_bounds(self, viewport: Viewport) -> ViewportBounds:
        """Approximate visible bounds: 180°/2^zoom tall, 360°/2^zoom wide."""
        scale = 2 ** viewport.zoom
        lat_delta = 180 / scale
        lng_delta = 360 / scale
        self.viewport_bounds = ViewportBounds(
            west=viewport.longitude - lng_delta / 2,
            south=viewport.latitude - lat_delta / 2,
            east=viewport.longitude + lng_delta / 2,
            north=viewport.latitude + lat_delta / 2,
        )
        return self.viewport_bounds

    def is_visible(self, latitude: float, longitude: float) -> bool:
        """Padded bounding-box cull; everything is visible before bounds are set."""
        if self.viewport_bounds is None:
            return True
        b = self.viewport_bounds
        pad = self.config.padding_deg
        return (
            b.south - pad <= latitude <= b.north + pad
            and b.west - pad <= longitude <= b.east + pad
        )

    def should_update(self, now_ms: float) -> bool:
        """True at most once per throttle_ms of monotonic time."""
        if self._last_update_ms is None or now_ms - self._last_update_ms >= self.config.throttle_ms:
            self._last_update_ms = now_ms
            return True
        return False

    @staticmethod
    def detail_level(zoom: float) -> DetailLevelEnum:
        if zoom >= 10:
            return DetailLevelEnum.HIGH
        if zoom >= 6:
            return DetailLevelEnum.MEDIUM
        return DetailLevelEnum.LOW

    # ── Reduction ───────────────────────────────────────────────────────────

    def prioritize(self, vessels: Sequence[Vessel]) -> list[Vessel]:
        """Apply the hard render cap. sorted() is stable, so ties keep input order."""
        if len(vessels) <= self.config.max_vessels:
            return list(vessels)
        ranked = sorted(vessels, key=lambda v: priority_score(v.ship_type, v.is_dark), reverse=True)
        return ranked[: self.config.max_vessels]

    def cell_size(self, zoom: float) -> float:
        return self.config.coarse_cell_deg if zoom < self.config.fine_zoom else self.config.fine_cell_deg

    @staticmethod
    def cell_key(lat: float, lon: float, cell_deg: float) -> tuple[int, int]:
        return math.floor(lat / cell_deg), math.floor(lon / cell_deg)

    def cluster_vessels(self, vessels: Sequence[Vessel], zoom: float) -> list[Vessel]:
        working = self.prioritize(vessels)
        if zoom >= self.config.disable_zoom:
            return working

        cell_deg = self.cell_size(zoom)
        # dicts keep insertion order: cells come out in order of first member
        cells: dict[tuple[int, int], list[Vessel]] = defaultdict(list)
        dropped = 0
        for vessel in working:
            if not has_valid_position(vessel):
                dropped += 1
                continue
            cells[self.cell_key(vessel.latitude, vessel.longitude, cell_deg)].append(vessel)

        if dropped:
            logger.debug("Clustering dropped %d vessels without finite coordinates.", dropped)
        return [self._representative(members) for members in cells.values()]

    @staticmethod
    def _representative(members: list[Vessel]) -> Vessel:
        if len(members) == 1:
            return members[0]

        n = len(members)
        avg_lat = sum(v.latitude for v in members) / n
        avg_lon = sum(v.longitude for v in members) / n
        avg_est_lat = sum(v.estimated_lat if v.estimated_lat is not None else v.latitude for v in members) / n
        avg_est_lon = sum(v.estimated_lon if v.estimated_lon is not None else v.longitude for v in members) / n

        priority = (
            next((v for v in members if v.ship_type == ShipTypeEnum.MILITARY), None)
            or next((v for v in members if v.is_dark), None)
            or members[0]
        )
        fields = priority.model_dump(exclude={"id"})
        fields.update(
            latitude=avg_lat,
            longitude=avg_lon,
            estimated_lat=avg_est_lat,
            estimated_lon=avg_est_lon,
            cluster_size=n,
            members=list(members),
        )
        return ClusteredVessel(**fields)

    # ── Styling ─────────────────────────────────────────────────────────────

    @staticmethod
    def vessel_color(vessel: Vessel) -> tuple[int, int, int, int]:
        if vessel.is_dark:
            return COLOR_DARK_IN_COVERAGE if vessel.in_coverage else COLOR_DARK_OUT_OF_COVERAGE
        if vessel.ship_type == ShipTypeEnum.MILITARY:
            return COLOR_MILITARY
        if vessel.ship_type == ShipTypeEnum.COMMERCIAL:
            return COLOR_COMMERCIAL
        return COLOR_UNKNOWN

    @staticmethod
    def vessel_radius(vessel: Vessel) -> float:
        if vessel.is_dark and vessel.in_coverage:
            return RADIUS_ALARM
        cluster_size = getattr(vessel, "cluster_size", None)
        if cluster_size:
            return RADIUS_CLUSTER_BASE + cluster_size * RADIUS_CLUSTER_PER_MEMBER
        return RADIUS_STANDARD

    @staticmethod
    def vessel_icon(vessel: Vessel) -> str:
        cluster_size = getattr(vessel, "cluster_size", None)
        if cluster_size:
            return f"{ICON_PIN}{cluster_size}"
        if vessel.ship_type == ShipTypeEnum.MILITARY:
            return ICON_MILITARY
        if vessel.ship_type == ShipTypeEnum.COMMERCIAL:
            return ICON_COMMERCIAL
        return ICON_PIN

    def to_render_record(self, vessel: Vessel) -> RenderRecord:
        est_lat = vessel.estimated_lat if vessel.estimated_lat is not None else vessel.latitude
        est_lon = vessel.estimated_lon if vessel.estimated_lon is not None else vessel.longitude
        return RenderRecord(
            id=str(vessel.mmsi),
            position=(est_lon, est_lat),
            original_position=(vessel.longitude, vessel.latitude),
            color=self.vessel_color(vessel),
            radius=self.vessel_radius(vessel),
            icon=self.vessel_icon(vessel),
            visible=self.is_visible(vessel.latitude, vessel.longitude),
            cluster_size=getattr(vessel, "cluster_size", None),
            vessel=vessel,
        )

    def prepare_render_set(self, vessels: Sequence[Vessel]) -> list[RenderRecord]:
        return [self.to_render_record(v) for v in vessels if has_valid_position(v)]

    def reduce(self, vessels: Sequence[Vessel], viewport: Viewport) -> list[RenderRecord]:
        self.update_viewport_bounds(viewport)
        clustered = self.cluster_vessels(vessels, viewport.zoom)
        return self.prepare_render_set(clustered)
