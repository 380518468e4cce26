"""Vessel snapshot sources.

Every source implements ``fetch() -> list[dict]`` returning raw snapshot
records; normalization happens in ``darkwatch.modules.ingest``.  Sources are
synchronous and may raise; the scheduler runs them off the event loop and
owns failure recovery.

Sources:
  HttpVesselSource      — JSON snapshot endpoint (bare list or
                          ``{success, data, count, timestamp}`` envelope)
  DatabaseVesselSource  — latest fix per MMSI from a ``vessels`` table
  DemoVesselSource      — fixed demonstration set (see demo_data)
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import httpx
from sqlalchemy import text
from sqlalchemy.orm import Session

from darkwatch.config import settings
from darkwatch.utils.http_retry import retry_request

logger = logging.getLogger(__name__)


class VesselSource(ABC):
    """Abstract snapshot provider."""

    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def fetch(self) -> list[dict[str, Any]]:
        ...


class HttpVesselSource(VesselSource):
    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
        delays: Optional[list[float]] = None,
    ) -> None:
        self.url = url
        self.timeout = settings.VESSEL_FETCH_TIMEOUT if timeout is None else timeout
        self._client = client
        self.delays = delays

    def name(self) -> str:
        return "http"

    def fetch(self) -> list[dict[str, Any]]:
        if self._client is not None:
            resp = retry_request(self._client.get, self.url, delays=self.delays)
            return self._unwrap(resp.json())
        with httpx.Client(timeout=self.timeout) as client:
            resp = retry_request(client.get, self.url, delays=self.delays)
            return self._unwrap(resp.json())

    @staticmethod
    def _unwrap(payload: Any) -> list[dict[str, Any]]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            if payload.get("success") is False:
                raise ValueError(f"Feed reported failure: {payload.get('error') or payload}")
            data = payload.get("data")
            if isinstance(data, list):
                return data
        raise ValueError("Unexpected snapshot payload shape")


# Latest fix per MMSI within the freshness window, valid coordinates only.
_LATEST_VESSELS_SQL = text("""
    SELECT DISTINCT ON (mmsi)
        mmsi, ship_name AS name, latitude, longitude,
        speed_kn AS speed, course, last_seen AS timestamp
    FROM vessels
    WHERE last_seen > NOW() - make_interval(hours => :max_age_hours)
      AND latitude IS NOT NULL
      AND longitude IS NOT NULL
      AND latitude BETWEEN -90 AND 90
      AND longitude BETWEEN -180 AND 180
    ORDER BY mmsi, last_seen DESC
    LIMIT :limit
""")


class DatabaseVesselSource(VesselSource):
    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_age_hours: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> None:
        self.session_factory = session_factory
        self.max_age_hours = settings.SNAPSHOT_MAX_AGE_HOURS if max_age_hours is None else max_age_hours
        self.limit = settings.SNAPSHOT_LIMIT if limit is None else limit

    def name(self) -> str:
        return "database"

    def fetch(self) -> list[dict[str, Any]]:
        db = self.session_factory()
        try:
            result = db.execute(
                _LATEST_VESSELS_SQL,
                {"max_age_hours": self.max_age_hours, "limit": self.limit},
            )
            return [dict(row) for row in result.mappings()]
        finally:
            db.close()


def build_vessel_source() -> VesselSource:
    """Pick the configured source: demo > feed URL > database > demo."""
    from darkwatch.modules.demo_data import DEMO_JITTER_DEG, DemoVesselSource

    if settings.DEMO_MODE:
        return DemoVesselSource(jitter_deg=DEMO_JITTER_DEG)
    if settings.VESSEL_FEED_URL:
        return HttpVesselSource(settings.VESSEL_FEED_URL)
    if settings.DATABASE_URL:
        from darkwatch.database import make_session_factory
        return DatabaseVesselSource(make_session_factory())
    logger.info("No vessel feed or database configured; using demo data.")
    return DemoVesselSource()
