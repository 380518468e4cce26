"""Tests for the HTTP API."""
import asyncio

from darkwatch.main import VERSION
from darkwatch.schemas.vessel import ShipTypeEnum


def _seed(client, make_vessel, now):
    state = client.app.state
    vessels = [
        make_vessel(mmsi=1, name="HTMS Naresuan", latitude=13.68, longitude=100.60,
                    ship_type=ShipTypeEnum.MILITARY, estimated_lat=13.7, estimated_lon=100.62),
        make_vessel(mmsi=2, name="MV Bangkok Express", latitude=13.72, longitude=100.55),
        make_vessel(mmsi=3, name="Ghost", latitude=-30.0, longitude=70.0, minutes_ago=17),
    ]
    state.alert_manager.process_vessels(vessels, now)
    state.store.replace(vessels, now, source_name="test")
    return vessels


def test_health(api_client):
    resp = api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": VERSION}


def test_empty_vessel_list_before_first_cycle(api_client):
    body = api_client.get("/api/v1/vessels").json()
    assert body["success"] is True
    assert body["data"] == []
    assert body["count"] == 0


def test_vessels_are_camel_case(api_client, make_vessel, now):
    _seed(api_client, make_vessel, now)
    body = api_client.get("/api/v1/vessels").json()

    assert body["count"] == 3
    assert body["source"] == "test"
    first = body["data"][0]
    assert first["id"] == "1"
    assert first["shipType"] == "Military"
    assert first["estimatedLat"] == 13.7
    assert "isDark" in first and "inCoverage" in first and "gapMinutes" in first


def test_vessels_filtered_by_type(api_client, make_vessel, now):
    _seed(api_client, make_vessel, now)
    body = api_client.get("/api/v1/vessels", params={"ship_type": "Military"}).json()
    assert [v["mmsi"] for v in body["data"]] == [1]

    resp = api_client.get("/api/v1/vessels", params={"ship_type": "Submarine"})
    assert resp.status_code == 422


def test_alerts_and_activity(api_client, make_vessel, now):
    _seed(api_client, make_vessel, now)

    alerts = api_client.get("/api/v1/alerts").json()
    assert len(alerts) == 1
    assert alerts[0]["type"] == "dark_vessel"
    assert alerts[0]["message"] == "SIGNAL LOST: Ghost (17m gap)"
    assert alerts[0]["vessel"]["gapMinutes"] == 17

    activity = api_client.get("/api/v1/activity").json()
    assert [a["id"] for a in activity] == [alerts[0]["id"]]
    assert activity[0]["type"] == "alert"


def test_active_alerts_filter(api_client, make_vessel, now):
    _seed(api_client, make_vessel, now)
    # Seeded alert is timestamped at the fixed test clock, long before the wall clock
    assert len(api_client.get("/api/v1/alerts").json()) == 1
    assert api_client.get("/api/v1/alerts", params={"active_only": True}).json() == []


def test_coverage_hubs(api_client):
    hubs = api_client.get("/api/v1/coverage-hubs").json()
    assert len(hubs) == 6
    assert {"name": "Singapore", "lat": 1.3, "lon": 103.8} in hubs


def test_render_clusters_for_viewport(api_client, make_vessel, now):
    _seed(api_client, make_vessel, now)

    resp = api_client.post("/api/v1/render", json={"latitude": 13.7, "longitude": 100.6, "zoom": 3})
    assert resp.status_code == 200
    records = resp.json()
    assert len(records) == 2
    cluster = records[0]
    assert cluster["clusterSize"] == 2
    assert cluster["icon"] == "📍2"
    assert cluster["vessel"]["name"] == "HTMS Naresuan"
    assert records[1]["visible"] is False

    resp = api_client.post("/api/v1/render", json={"latitude": 13.7, "longitude": 100.6, "zoom": 12})
    assert len(resp.json()) == 3


def test_render_rejects_invalid_viewport(api_client):
    resp = api_client.post("/api/v1/render", json={"latitude": 95, "longitude": 0, "zoom": 3})
    assert resp.status_code == 422
    resp = api_client.post("/api/v1/render", json={"latitude": 0, "longitude": 0, "zoom": 30})
    assert resp.status_code == 422


def test_cached_render_set(api_client, make_vessel, now):
    empty = api_client.get("/api/v1/render").json()
    assert empty == {"viewport": None, "detailLevel": None, "stale": False, "data": []}

    _seed(api_client, make_vessel, now)
    api_client.post("/api/v1/render", json={"latitude": 13.7, "longitude": 100.6, "zoom": 3})
    pending = api_client.get("/api/v1/render").json()
    assert pending["stale"] is True
    assert pending["detailLevel"] == "low"

    render_cache = api_client.app.state.render_cache
    assert asyncio.run(render_cache.on_frame(1 / 60)) is True
    fresh = api_client.get("/api/v1/render").json()
    assert fresh["stale"] is False
    assert fresh["viewport"]["zoom"] == 3
    assert len(fresh["data"]) == 2
