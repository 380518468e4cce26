"""Tests for priority truncation, grid clustering, culling and styling."""

import pytest

from darkwatch.modules.cluster_engine import (
    COLOR_COMMERCIAL,
    COLOR_DARK_IN_COVERAGE,
    COLOR_DARK_OUT_OF_COVERAGE,
    COLOR_MILITARY,
    COLOR_UNKNOWN,
    ClusterConfig,
    ClusterEngine,
)
from darkwatch.schemas.render import DetailLevelEnum, Viewport
from darkwatch.schemas.vessel import ClusteredVessel, ShipTypeEnum, Vessel

MIL = ShipTypeEnum.MILITARY
COM = ShipTypeEnum.COMMERCIAL
UNK = ShipTypeEnum.UNKNOWN


@pytest.fixture
def engine():
    return ClusterEngine(ClusterConfig())


def _spread(make_vessel, n, **kwargs):
    """n vessels one degree apart so no two share a cell."""
    return [make_vessel(latitude=-60 + (i // 100), longitude=-170 + (i % 100) * 3, **kwargs) for i in range(n)]


# --- Priority cap ---

def test_priority_cap_keeps_highest_scores_stably(engine, make_vessel):
    commercial = _spread(make_vessel, 230)
    military = [make_vessel(latitude=70, longitude=i, ship_type=MIL) for i in range(10)]
    dark = [make_vessel(latitude=75, longitude=i, minutes_ago=30) for i in range(20)]
    # Interleave so priority vessels are not already at the front
    vessels = commercial[:100] + dark + commercial[100:] + military

    kept = engine.prioritize(vessels)

    assert len(kept) == 200
    assert [v.mmsi for v in kept[:10]] == [v.mmsi for v in military]
    assert [v.mmsi for v in kept[10:30]] == [v.mmsi for v in dark]
    assert [v.mmsi for v in kept[30:]] == [v.mmsi for v in commercial[:170]]


def test_dark_military_outranks_military(engine, make_vessel):
    plain = _spread(make_vessel, 199, ship_type=MIL)
    dark_mil = make_vessel(ship_type=MIL, minutes_ago=40)
    extra = make_vessel(ship_type=COM)
    kept = engine.prioritize(plain + [extra, dark_mil])
    assert kept[0].mmsi == dark_mil.mmsi
    assert extra.mmsi not in {v.mmsi for v in kept}


def test_under_cap_keeps_input_order(engine, make_vessel):
    vessels = [make_vessel(), make_vessel(ship_type=MIL), make_vessel()]
    assert engine.prioritize(vessels) == vessels


def test_reduce_never_exceeds_cap(engine, make_vessel):
    vessels = _spread(make_vessel, 500)
    records = engine.reduce(vessels, Viewport(latitude=0, longitude=0, zoom=12))
    assert len(records) == 200


# --- Zoom-gated clustering ---

def test_two_close_vessels_cluster_at_low_zoom(engine, make_vessel):
    a = make_vessel(latitude=1.000, longitude=1.000)
    b = make_vessel(latitude=1.050, longitude=1.050)

    result = engine.cluster_vessels([a, b], zoom=2)

    assert len(result) == 1
    rep = result[0]
    assert isinstance(rep, ClusteredVessel)
    assert rep.cluster_size == 2
    assert rep.latitude == pytest.approx(1.025)
    assert rep.longitude == pytest.approx(1.025)
    assert [m.mmsi for m in rep.members] == [a.mmsi, b.mmsi]


def test_high_zoom_skips_clustering(engine, make_vessel):
    vessels = [make_vessel(latitude=1.0 + i * 0.001, longitude=1.0) for i in range(5)]
    assert engine.cluster_vessels(vessels, zoom=8) == vessels
    records = engine.reduce(vessels, Viewport(latitude=1, longitude=1, zoom=9))
    assert len(records) == 5
    assert all(r.cluster_size is None for r in records)


def test_fine_grid_at_mid_zoom(engine, make_vessel):
    a = make_vessel(latitude=1.05, longitude=1.05)
    b = make_vessel(latitude=1.25, longitude=1.05)
    assert len(engine.cluster_vessels([a, b], zoom=2)) == 1   # 0.5° cells
    assert len(engine.cluster_vessels([a, b], zoom=5)) == 2   # 0.2° cells


def test_negative_coordinates_floor_to_cell_origin(engine, make_vessel):
    a = make_vessel(latitude=-0.1, longitude=-0.1)
    b = make_vessel(latitude=0.1, longitude=0.1)
    assert len(engine.cluster_vessels([a, b], zoom=2)) == 2


def test_singleton_cells_pass_through(engine, make_vessel):
    a = make_vessel(latitude=10.0, longitude=10.0)
    b = make_vessel(latitude=20.0, longitude=20.0)
    assert engine.cluster_vessels([a, b], zoom=2) == [a, b]


def test_cells_keep_first_appearance_order(engine, make_vessel):
    a = make_vessel(latitude=10.0, longitude=10.0)
    b = make_vessel(latitude=20.0, longitude=20.0)
    c = make_vessel(latitude=10.1, longitude=10.1)
    result = engine.cluster_vessels([a, b, c], zoom=2)
    assert result[0].cluster_size == 2
    assert result[1] is b


@pytest.mark.parametrize("bad_lat", [float("nan"), float("inf"), None])
def test_invalid_coordinates_are_dropped(engine, make_vessel, bad_lat):
    good = make_vessel()
    bad = Vessel.model_construct(**{**good.model_dump(exclude={"id"}), "mmsi": 999, "latitude": bad_lat})

    assert engine.cluster_vessels([good, bad], zoom=2) == [good]
    records = engine.reduce([good, bad], Viewport(latitude=10, longitude=100, zoom=12))
    assert [r.id for r in records] == [str(good.mmsi)]


# --- Representative selection ---

def test_military_member_represents_cluster(engine, make_vessel):
    com = make_vessel(latitude=1.0, longitude=1.0)
    dark = make_vessel(latitude=1.1, longitude=1.1, minutes_ago=30)
    mil = make_vessel(latitude=1.2, longitude=1.2, ship_type=MIL, name="HTMS Naresuan")
    rep = engine.cluster_vessels([com, dark, mil], zoom=2)[0]
    assert rep.mmsi == mil.mmsi
    assert rep.name == "HTMS Naresuan"
    assert rep.ship_type == MIL
    assert rep.cluster_size == 3


def test_dark_member_represents_when_no_military(engine, make_vessel):
    com = make_vessel(latitude=1.0, longitude=1.0)
    dark = make_vessel(latitude=1.1, longitude=1.1, minutes_ago=30)
    rep = engine.cluster_vessels([com, dark], zoom=2)[0]
    assert rep.mmsi == dark.mmsi
    assert rep.is_dark is True


def test_first_member_represents_otherwise(engine, make_vessel):
    a = make_vessel(latitude=1.0, longitude=1.0)
    b = make_vessel(latitude=1.1, longitude=1.1)
    assert engine.cluster_vessels([a, b], zoom=2)[0].mmsi == a.mmsi


def test_cluster_position_averages_estimates(engine, make_vessel):
    a = make_vessel(latitude=1.0, longitude=1.0, estimated_lat=1.1, estimated_lon=1.1)
    b = make_vessel(latitude=1.2, longitude=1.2, estimated_lat=1.3, estimated_lon=1.3)
    record = engine.reduce([a, b], Viewport(latitude=1, longitude=1, zoom=2))[0]
    assert record.position == pytest.approx((1.2, 1.2))
    assert record.original_position == pytest.approx((1.1, 1.1))


# --- Viewport, throttle, detail level ---

def test_everything_visible_before_bounds(engine):
    assert engine.is_visible(89.0, 179.0) is True


def test_visibility_uses_padded_bounds(engine):
    bounds = engine.update_viewport_bounds(Viewport(latitude=0, longitude=0, zoom=4))
    assert bounds.north == pytest.approx(5.625)
    assert bounds.east == pytest.approx(11.25)
    assert engine.is_visible(6.0, 0.0) is True      # inside the 0.5° pad
    assert engine.is_visible(6.2, 0.0) is False
    assert engine.is_visible(0.0, -11.7) is True
    assert engine.is_visible(0.0, -11.8) is False


def test_should_update_throttles_to_100ms(engine):
    calls = [engine.should_update(t) for t in (0, 50, 99.9, 100, 150, 199.9, 200)]
    assert calls == [True, False, False, True, False, False, True]


@pytest.mark.parametrize("zoom,level", [
    (12, DetailLevelEnum.HIGH), (10, DetailLevelEnum.HIGH), (9.9, DetailLevelEnum.MEDIUM),
    (6, DetailLevelEnum.MEDIUM), (5.9, DetailLevelEnum.LOW), (0, DetailLevelEnum.LOW),
])
def test_detail_level(engine, zoom, level):
    assert engine.detail_level(zoom) == level


# --- Styling ---

@pytest.mark.parametrize("kwargs,color", [
    ({"minutes_ago": 30, "in_coverage": True}, COLOR_DARK_IN_COVERAGE),
    ({"minutes_ago": 30, "in_coverage": False, "ship_type": MIL}, COLOR_DARK_OUT_OF_COVERAGE),
    ({"ship_type": MIL}, COLOR_MILITARY),
    ({"ship_type": COM}, COLOR_COMMERCIAL),
    ({"ship_type": UNK}, COLOR_UNKNOWN),
])
def test_vessel_color(engine, make_vessel, kwargs, color):
    assert engine.vessel_color(make_vessel(**kwargs)) == color


def test_radius_and_icon(engine, make_vessel):
    alarm = make_vessel(minutes_ago=30, in_coverage=True)
    mil = make_vessel(ship_type=MIL)
    com = make_vessel(ship_type=COM)
    unk = make_vessel(ship_type=UNK)

    assert engine.vessel_radius(alarm) == 8000
    assert engine.vessel_radius(com) == 4000
    assert engine.vessel_icon(mil) == "⚓"
    assert engine.vessel_icon(com) == "🚢"
    assert engine.vessel_icon(unk) == "📍"


def test_cluster_radius_scales_with_size(engine, make_vessel):
    vessels = [make_vessel(latitude=1.0 + i * 0.01, longitude=1.0) for i in range(4)]
    record = engine.reduce(vessels, Viewport(latitude=1, longitude=1, zoom=2))[0]
    assert record.cluster_size == 4
    assert record.radius == 12000 + 4 * 1000
    assert record.icon == "📍4"


def test_render_record_positions(engine, make_vessel):
    vessel = make_vessel(latitude=10.0, longitude=100.0, estimated_lat=10.5, estimated_lon=100.5)
    record = engine.to_render_record(vessel)
    assert record.id == str(vessel.mmsi)
    assert record.position == (100.5, 10.5)
    assert record.original_position == (100.0, 10.0)


def test_render_record_without_estimate_uses_report(engine, make_vessel):
    record = engine.to_render_record(make_vessel(latitude=10.0, longitude=100.0))
    assert record.position == (100.0, 10.0)


def test_render_record_visibility_flag(engine, make_vessel):
    near = make_vessel(latitude=0.5, longitude=0.5)
    far = make_vessel(latitude=40.0, longitude=40.0)
    records = engine.reduce([near, far], Viewport(latitude=0, longitude=0, zoom=9))
    assert [r.visible for r in records] == [True, False]


def test_render_set_serializes_camel_case(engine, make_vessel):
    vessels = [make_vessel(latitude=1.0, longitude=1.0), make_vessel(latitude=1.1, longitude=1.1)]
    payload = engine.reduce(vessels, Viewport(latitude=1, longitude=1, zoom=2))[0].model_dump(by_alias=True)
    assert payload["clusterSize"] == 2
    assert "originalPosition" in payload
    assert len(payload["vessel"]["members"]) == 2
