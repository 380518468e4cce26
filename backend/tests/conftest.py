"""Shared fixtures: a fixed clock, a vessel factory, and an API client."""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from darkwatch.config import settings
from darkwatch.schemas.vessel import ShipTypeEnum, Vessel


NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_vessel():
    """Factory for enriched Vessel objects with sensible defaults."""
    counter = [100000000]

    def _make(
        mmsi=None,
        name="MV Test",
        latitude=10.0,
        longitude=100.0,
        speed=0.0,
        course=0.0,
        minutes_ago=1,
        ship_type=ShipTypeEnum.COMMERCIAL,
        is_dark=None,
        in_coverage=False,
        gap_minutes=None,
        **extra,
    ):
        if mmsi is None:
            counter[0] += 1
            mmsi = counter[0]
        gap = minutes_ago if gap_minutes is None else gap_minutes
        return Vessel(
            mmsi=mmsi,
            name=name,
            latitude=latitude,
            longitude=longitude,
            speed=speed,
            course=course,
            timestamp=NOW - timedelta(minutes=minutes_ago),
            ship_type=ship_type,
            is_dark=gap > 15 if is_dark is None else is_dark,
            in_coverage=in_coverage,
            gap_minutes=gap,
            **extra,
        )

    return _make


@pytest.fixture
def api_client(monkeypatch):
    """TestClient with background loops and the process worker disabled."""
    monkeypatch.setattr(settings, "BACKGROUND_LOOPS_ENABLED", False)
    monkeypatch.setattr(settings, "CLUSTER_WORKER_ENABLED", False)
    monkeypatch.setattr(settings, "DEMO_MODE", True)

    from darkwatch.main import app

    with TestClient(app) as client:
        yield client
