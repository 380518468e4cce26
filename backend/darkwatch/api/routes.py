from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from darkwatch.modules.alert_manager import AlertManager
from darkwatch.modules.cluster_executor import ClusterExecutor
from darkwatch.modules.scheduler import RenderCache
from darkwatch.modules.vessel_store import VesselStore
from darkwatch.schemas.alerts import ActivityEntry, Alert
from darkwatch.schemas.render import RenderRecord, Viewport
from darkwatch.schemas.vessel import ShipTypeEnum
from darkwatch.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request) -> VesselStore:
    return request.app.state.store


def get_alert_manager(request: Request) -> AlertManager:
    return request.app.state.alert_manager


def get_executor(request: Request) -> ClusterExecutor:
    return request.app.state.cluster_executor


def get_render_cache(request: Request) -> RenderCache:
    return request.app.state.render_cache


# ---------------------------------------------------------------------------
# Vessels
# ---------------------------------------------------------------------------


@router.get("/vessels", tags=["vessels"])
def list_vessels(
    ship_type: Optional[ShipTypeEnum] = Query(None, description="Military, Commercial or Unknown"),
    store: VesselStore = Depends(get_store),
):
    """Latest enriched vessel set (estimated position, dark flag, coverage, gap)."""
    vessels = store.by_type(ship_type)
    return {
        "success": True,
        "data": [v.model_dump(by_alias=True, mode="json") for v in vessels],
        "count": len(vessels),
        "timestamp": (store.last_update or utcnow()).isoformat(),
        "source": store.source_name,
    }


@router.get("/coverage-hubs", tags=["vessels"])
def list_coverage_hubs(request: Request):
    return [hub._asdict() for hub in request.app.state.coverage_hubs]


# ---------------------------------------------------------------------------
# Alerts / activity
# ---------------------------------------------------------------------------


@router.get("/alerts", tags=["alerts"], response_model=list[Alert])
def list_alerts(
    active_only: bool = Query(False, description="Only alerts from the last 24h"),
    alert_manager: AlertManager = Depends(get_alert_manager),
):
    if active_only:
        return alert_manager.active_alerts()
    return alert_manager.alerts


@router.get("/activity", tags=["alerts"], response_model=list[ActivityEntry])
def list_activity(alert_manager: AlertManager = Depends(get_alert_manager)):
    return alert_manager.recent_activity


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------


@router.post("/render", tags=["render"], response_model=list[RenderRecord])
async def compute_render_set(
    viewport: Viewport,
    store: VesselStore = Depends(get_store),
    executor: ClusterExecutor = Depends(get_executor),
    render_cache: RenderCache = Depends(get_render_cache),
):
    """Cluster and style the current vessel set for *viewport*.

    Also makes *viewport* the one the render driver keeps refreshed.
    """
    render_cache.set_viewport(viewport)
    return await executor.compute(store.vessels, viewport)


@router.get("/render", tags=["render"])
def get_cached_render_set(render_cache: RenderCache = Depends(get_render_cache)):
    """Render set last produced by the render driver for the current viewport."""
    viewport = render_cache.viewport
    return {
        "viewport": viewport.model_dump(by_alias=True) if viewport else None,
        "detailLevel": render_cache.engine.detail_level(viewport.zoom).value if viewport else None,
        "stale": render_cache.stale,
        "data": [r.model_dump(by_alias=True, mode="json") for r in render_cache.records],
    }
