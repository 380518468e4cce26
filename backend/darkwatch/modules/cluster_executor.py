"""Execution strategies for the cluster reduction.

Both strategies expose ``compute(vessels, viewport) -> list[RenderRecord]``
and return identical results for identical inputs:

  InlineClusterExecutor   — runs ClusterEngine.reduce in the calling process.
  ProcessClusterExecutor  — ships a plain-dict message (vessels + viewport +
                            engine config) to a worker process and validates
                            the returned dicts back into RenderRecords.  If
                            the worker is unavailable it falls back to the
                            inline path for that call.

Usage:
    executor = make_cluster_executor(engine, use_worker=True)
    records = await executor.compute(store.vessels, viewport)
    executor.close()
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Optional, Sequence

from darkwatch.modules.cluster_engine import ClusterConfig, ClusterEngine
from darkwatch.schemas.render import RenderRecord, Viewport
from darkwatch.schemas.vessel import Vessel

logger = logging.getLogger(__name__)


def _compute_in_worker(message: dict[str, Any]) -> list[dict[str, Any]]:
    """Worker entry point. Module-level so the process pool can import it."""
    engine = ClusterEngine(ClusterConfig(**message["config"]))
    vessels = [Vessel.model_validate(v) for v in message["vessels"]]
    viewport = Viewport.model_validate(message["viewport"])
    return [r.model_dump() for r in engine.reduce(vessels, viewport)]


class ClusterExecutor(ABC):
    """Capability: compute a render set from a vessel set and a viewport."""

    @abstractmethod
    async def compute(self, vessels: Sequence[Vessel], viewport: Viewport) -> list[RenderRecord]:
        ...

    def close(self) -> None:
        """Release resources. Safe to call more than once."""


class InlineClusterExecutor(ClusterExecutor):
    def __init__(self, engine: ClusterEngine) -> None:
        self.engine = engine

    async def compute(self, vessels: Sequence[Vessel], viewport: Viewport) -> list[RenderRecord]:
        return self.engine.reduce(vessels, viewport)


class ProcessClusterExecutor(ClusterExecutor):
    def __init__(self, config: ClusterConfig, max_workers: int = 1) -> None:
        self.config = config
        self._pool: Optional[ProcessPoolExecutor] = ProcessPoolExecutor(max_workers=max_workers)
        self._fallback = InlineClusterExecutor(ClusterEngine(config))

    async def compute(self, vessels: Sequence[Vessel], viewport: Viewport) -> list[RenderRecord]:
        if self._pool is None:
            return await self._fallback.compute(vessels, viewport)

        message = {
            "config": self.config.to_dict(),
            "vessels": [v.model_dump() for v in vessels],
            "viewport": viewport.model_dump(),
        }
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(self._pool, _compute_in_worker, message)
        except Exception as exc:
            logger.warning("Cluster worker failed (%s); computing in-process.", exc)
            return await self._fallback.compute(vessels, viewport)
        return [RenderRecord.model_validate(r) for r in result]

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=False, cancel_futures=True)
            self._pool = None


def make_cluster_executor(engine: ClusterEngine, use_worker: bool = True) -> ClusterExecutor:
    """Worker-backed executor when requested and available, else inline."""
    if not use_worker:
        return InlineClusterExecutor(engine)
    try:
        return ProcessClusterExecutor(engine.config)
    except (OSError, NotImplementedError, ImportError) as exc:
        logger.warning("No cluster worker available (%s); clustering in-process.", exc)
        return InlineClusterExecutor(engine)
