"""Pipeline drivers.

UpdateScheduler — the ingest loop: fetch → estimate + classify → alert →
    publish to the VesselStore, every INGEST_INTERVAL_SECONDS.  A failed
    fetch is logged and replaced by the demo dataset; the consumer always
    gets *some* vessel set.
RenderDriver — a fixed-timestep loop at RENDER_TARGET_FPS.  The frame
    timestamp is carried forward by the remainder of the elapsed time, so
    late frames don't shift the long-run cadence.
RenderCache — the render driver's consumer: recomputes the render set for
    the current viewport when the vessel set or viewport changed and the
    cluster engine's throttle allows it.

Both loops run as asyncio tasks on the same event loop.  Vessel and alert
state is written only by the ingest loop; the render side reads the store's
current list reference.  ``stop()`` on either is safe at any time and
awaits the task, so no callback fires after it returns.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import random
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from darkwatch.config import settings
from darkwatch.modules.alert_manager import AlertManager
from darkwatch.modules.cluster_engine import ClusterEngine
from darkwatch.modules.cluster_executor import ClusterExecutor
from darkwatch.modules.coverage_classifier import DEFAULT_COVERAGE_HUBS, CoverageHub
from darkwatch.modules.demo_data import DemoVesselSource, random_demo_alert
from darkwatch.modules.ingest import build_vessels
from darkwatch.modules.vessel_source import VesselSource
from darkwatch.modules.vessel_store import VesselStore
from darkwatch.schemas.render import RenderRecord, Viewport
from darkwatch.schemas.vessel import Vessel
from darkwatch.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


async def _cancel_task(task: Optional[asyncio.Task]) -> None:
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


class UpdateScheduler:
    def __init__(
        self,
        source: VesselSource,
        alert_manager: AlertManager,
        store: VesselStore,
        hubs: Sequence[CoverageHub] = DEFAULT_COVERAGE_HUBS,
        fallback_source: Optional[VesselSource] = None,
        interval_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
        demo_alert_probability: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.source = source
        self.alert_manager = alert_manager
        self.store = store
        self.hubs = hubs
        self.fallback_source = fallback_source or DemoVesselSource(clock=clock)
        self.interval_seconds = (
            settings.INGEST_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self.clock = clock
        self.demo_alert_probability = (
            settings.DEMO_RANDOM_ALERT_PROBABILITY
            if demo_alert_probability is None else demo_alert_probability
        )
        self.rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _fetch(self) -> tuple[list[dict[str, Any]], VesselSource]:
        try:
            records = await asyncio.to_thread(self.source.fetch)
            return records, self.source
        except Exception as exc:
            logger.error(
                "Vessel fetch from %s source failed: %s; using demo data.", self.source.name(), exc,
            )
            return self.fallback_source.fetch(), self.fallback_source

    async def run_cycle(self) -> list[Vessel]:
        """One ingest cycle. Never raises on fetch failure."""
        records, used = await self._fetch()
        now = self.clock()
        vessels = build_vessels(records, now, self.hubs)
        emitted = self.alert_manager.process_vessels(vessels, now)

        if isinstance(used, DemoVesselSource) and self.rng.random() < self.demo_alert_probability:
            self.alert_manager.add_alert(random_demo_alert(vessels, self.rng, now))

        self.store.replace(vessels, now, source_name=used.name())
        logger.info(
            "Ingest cycle (%s): %d vessels, %d dark, %d alerts emitted.",
            used.name(), len(vessels), sum(1 for v in vessels if v.is_dark), len(emitted),
        )
        return vessels

    async def _run(self) -> None:
        while True:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Ingest cycle failed; keeping previous vessel set.")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start (or restart) the loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="darkwatch-ingest")

    async def stop(self) -> None:
        task, self._task = self._task, None
        await _cancel_task(task)

    async def restart(self) -> None:
        await self.stop()
        self.start()


FrameCallback = Callable[[float], Union[None, Awaitable[None]]]


class RenderDriver:
    def __init__(
        self,
        callback: FrameCallback,
        target_fps: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        fps = settings.RENDER_TARGET_FPS if target_fps is None else target_fps
        self.callback = callback
        self.frame_interval = 1.0 / fps
        self.clock = clock
        self._last_frame: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self, now: float) -> Optional[float]:
        """Return the frame delta if a frame is due at *now*, else None.

        The first call only primes the clock.
        """
        if self._last_frame is None:
            self._last_frame = now
            return None
        delta = now - self._last_frame
        if delta < self.frame_interval:
            return None
        self._last_frame = now - (delta % self.frame_interval)
        return delta

    async def _run(self) -> None:
        while True:
            delta = self.tick(self.clock())
            if delta is not None:
                try:
                    result = self.callback(delta)
                    if inspect.isawaitable(result):
                        await result
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Render frame callback failed.")
            elapsed = self.clock() - (self._last_frame or 0.0)
            await asyncio.sleep(max(0.0, self.frame_interval - elapsed))

    def start(self) -> None:
        if self.running:
            return
        self._last_frame = None
        self._task = asyncio.get_running_loop().create_task(self._run(), name="darkwatch-render")

    async def stop(self) -> None:
        task, self._task = self._task, None
        await _cancel_task(task)


class RenderCache:
    """Render set for the current viewport, refreshed from render frames."""

    def __init__(
        self,
        store: VesselStore,
        engine: ClusterEngine,
        executor: ClusterExecutor,
        viewport: Optional[Viewport] = None,
        clock_ms: Callable[[], float] = lambda: time.monotonic() * 1000,
    ) -> None:
        self.store = store
        self.engine = engine
        self.executor = executor
        self.viewport = viewport
        self.clock_ms = clock_ms
        self.records: list[RenderRecord] = []
        self._rendered_key: Optional[tuple[int, Viewport]] = None

    def set_viewport(self, viewport: Viewport) -> None:
        self.viewport = viewport

    @property
    def stale(self) -> bool:
        return self.viewport is not None and self._rendered_key != (self.store.version, self.viewport)

    async def on_frame(self, delta: float) -> bool:
        """Recompute if stale and not throttled. Returns True when recomputed."""
        if not self.stale or not self.engine.should_update(self.clock_ms()):
            return False
        key = (self.store.version, self.viewport)
        self.records = await self.executor.compute(self.store.vessels, self.viewport)
        self._rendered_key = key
        return True
