import random
from datetime import date, time

import pytest

from wastefleet.errors import NoAvailableDriversError
from wastefleet.models.domain import Driver, Location, Priority, RouteStatus, TimeWindow
from wastefleet.services.geospatial import haversine_km
from wastefleet.services.routing.builder import BuilderConstraints, build_routes
from wastefleet.services.routing.sequencing import NearestNeighborSequencer
from wastefleet.services.schedules.resolver import DueBin

DEPOT = (51.5, -0.12)
ROUTE_DATE = date(2024, 5, 1)


def _due(
    bid: str,
    lat: float = 51.51,
    lon: float = -0.12,
    priority: Priority = Priority.MEDIUM,
    fill: float = 0.5,
    window: TimeWindow | None = None,
) -> DueBin:
    return DueBin(
        bin_id=bid,
        location=Location(latitude=lat, longitude=lon),
        priority=priority,
        fill_ratio=fill,
        reason="calendar",
        next_due=None,
        window=window,
    )


def _constraints(capacity: int = 3) -> BuilderConstraints:
    return BuilderConstraints(
        route_capacity=capacity,
        service_minutes_per_bin=5.0,
        average_speed_kmh=30.0,
        depot=DEPOT,
        shift_window=TimeWindow(start=time(6, 0), end=time(18, 0)),
    )


def _drivers(count: int) -> list[Driver]:
    return [Driver(driver_id=f"D{i}", name=f"Driver {i}") for i in range(1, count + 1)]


def _build(due, drivers=1, capacity=3):
    return build_routes(
        due=due,
        drivers=_drivers(drivers),
        route_date=ROUTE_DATE,
        constraints=_constraints(capacity),
        sequencer=NearestNeighborSequencer(),
    )


def _five_bins() -> list[DueBin]:
    return [
        _due("B1", lat=51.501, priority=Priority.LOW, fill=0.9),
        _due("B2", lat=51.502, priority=Priority.HIGH, fill=0.4),
        _due("B3", lat=51.503, priority=Priority.MEDIUM, fill=0.9),
        _due("B4", lat=51.504, priority=Priority.HIGH, fill=0.6),
        _due("B5", lat=51.505, priority=Priority.MEDIUM, fill=0.4),
    ]


def test_single_driver_takes_highest_priority_bins_and_defers_the_rest():
    result = _build(_five_bins(), drivers=1, capacity=3)

    assert len(result.routes) == 1
    route = result.routes[0]
    assert sorted(route.bin_ids) == ["B2", "B3", "B4"]
    assert route.status is RouteStatus.PENDING
    assert route.driver_id is None
    assert result.deferred_bin_ids == ["B5", "B1"]
    assert {item.reason for item in result.deferred} == {"capacity"}
    assert result.metadata["status"] == "partial"


def test_routes_fill_to_capacity_before_opening_the_next():
    result = _build(_five_bins(), drivers=2, capacity=3)

    assert [len(route.bin_ids) for route in result.routes] == [3, 2]
    assert not result.deferred


def test_builder_is_deterministic():
    bins = _five_bins()
    shuffled = list(bins)
    random.Random(7).shuffle(shuffled)

    first = _build(bins, drivers=2, capacity=2)
    second = _build(shuffled, drivers=2, capacity=2)

    assert [(r.route_id, r.bin_ids, r.estimated_duration) for r in first.routes] == [
        (r.route_id, r.bin_ids, r.estimated_duration) for r in second.routes
    ]
    assert first.deferred_bin_ids == second.deferred_bin_ids


def test_time_windows_split_bins_across_routes():
    morning = TimeWindow(start=time(9, 0), end=time(12, 0))
    afternoon = TimeWindow(start=time(13, 0), end=time(16, 0))
    late_morning = TimeWindow(start=time(10, 0), end=time(11, 0))
    due = [
        _due("A", priority=Priority.HIGH, window=morning),
        _due("B", priority=Priority.MEDIUM, window=afternoon),
        _due("C", priority=Priority.LOW, window=late_morning),
    ]

    result = _build(due, drivers=2, capacity=10)

    by_bins = {tuple(sorted(route.bin_ids)): route for route in result.routes}
    assert set(by_bins) == {("A", "C"), ("B",)}
    assert by_bins[("A", "C")].time_window == late_morning
    assert by_bins[("B",)].time_window == afternoon


def test_bin_window_that_fits_no_open_route_is_deferred():
    morning = TimeWindow(start=time(9, 0), end=time(12, 0))
    afternoon = TimeWindow(start=time(13, 0), end=time(16, 0))
    due = [_due("A", priority=Priority.HIGH, window=morning), _due("B", window=afternoon)]

    result = _build(due, drivers=1, capacity=10)

    assert [route.bin_ids for route in result.routes] == [["A"]]
    assert [(item.bin_id, item.reason) for item in result.deferred] == [("B", "time_window")]


def test_bin_window_outside_shift_is_deferred():
    evening = TimeWindow(start=time(19, 0), end=time(21, 0))

    result = _build([_due("A", window=evening)], drivers=1)

    assert result.routes == []
    assert [(item.bin_id, item.reason) for item in result.deferred] == [("A", "time_window")]


def test_no_drivers_raises_with_every_due_bin():
    with pytest.raises(NoAvailableDriversError) as excinfo:
        _build(_five_bins(), drivers=0)

    assert excinfo.value.deferred_bin_ids == ["B4", "B2", "B3", "B5", "B1"]


def test_nothing_due_builds_nothing():
    result = _build([], drivers=0)

    assert result.routes == []
    assert result.deferred == []
    assert result.metadata["status"] == "idle"


def test_visits_are_ordered_nearest_first_from_depot():
    due = [
        _due("A_far", lat=51.5, lon=-0.08),
        _due("B_mid", lat=51.5, lon=-0.10),
        _due("C_near", lat=51.5, lon=-0.11),
    ]

    result = _build(due, drivers=1, capacity=3)

    assert result.routes[0].bin_ids == ["C_near", "B_mid", "A_far"]


def test_estimated_duration_is_service_time_plus_straight_line_travel():
    result = _build([_due("A", lat=51.52, lon=-0.12)], drivers=1)

    leg_km = haversine_km(DEPOT[0], DEPOT[1], 51.52, -0.12)
    route = result.routes[0]
    assert route.estimated_distance_km == pytest.approx(2 * leg_km, abs=0.001)
    assert route.estimated_duration == pytest.approx(5.0 + (2 * leg_km) / 30.0 * 60.0, abs=0.1)


def test_route_identifiers_use_prefix_and_start_index():
    result = build_routes(
        due=_five_bins(),
        drivers=_drivers(2),
        route_date=ROUTE_DATE,
        constraints=_constraints(3),
        sequencer=NearestNeighborSequencer(),
        id_prefix="R20240501",
        first_index=4,
    )

    assert [route.route_id for route in result.routes] == ["R20240501-004", "R20240501-005"]
    assert all(route.route_date == ROUTE_DATE for route in result.routes)
