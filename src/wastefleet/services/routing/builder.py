"""Greedy route construction from ranked due bins."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Sequence

from ...config import settings
from ...errors import NoAvailableDriversError, ValidationError
from ...models.domain import Driver, Route, TimeWindow
from ..geospatial import closed_tour_km
from ..schedules.resolver import DueBin, urgency_key
from .models import DEFER_CAPACITY, DEFER_TIME_WINDOW, DeferredBin, PlanningResult
from .sequencing import SequencingStrategy, get_sequencer

logger = logging.getLogger(__name__)


def _default_shift() -> TimeWindow:
    return TimeWindow(start=settings.shift_start, end=settings.shift_end)


@dataclass(slots=True)
class BuilderConstraints:
    route_capacity: int = settings.route_capacity
    service_minutes_per_bin: float = settings.service_minutes_per_bin
    average_speed_kmh: float = settings.average_speed_kmh
    depot: tuple[float, float] = (settings.depot_latitude, settings.depot_longitude)
    shift_window: TimeWindow = field(default_factory=_default_shift)


@dataclass(slots=True)
class _Bucket:
    window: TimeWindow
    stops: list[DueBin] = field(default_factory=list)


def estimate_duration_minutes(distance_km: float, stop_count: int, constraints: BuilderConstraints) -> float:
    """Service time per bin plus straight-line travel at the average speed."""

    travel_min = distance_km / constraints.average_speed_kmh * 60.0
    return stop_count * constraints.service_minutes_per_bin + travel_min


def reestimate_route(
    route: Route,
    bin_ids: Sequence[str],
    points: Sequence[tuple[float, float]],
    constraints: BuilderConstraints | None = None,
) -> Route:
    """Recompute distance and duration for a route whose stops were dropped, keeping visit order."""
    constraints = constraints or BuilderConstraints()
    distance_km = closed_tour_km(constraints.depot, points)
    duration = estimate_duration_minutes(distance_km, len(points), constraints)
    return replace(
        route,
        bin_ids=list(bin_ids),
        estimated_duration=round(duration, 1),
        estimated_distance_km=round(distance_km, 3),
    )


def build_routes(
    *,
    due: Sequence[DueBin],
    drivers: Sequence[Driver],
    route_date: date,
    constraints: BuilderConstraints | None = None,
    sequencer: SequencingStrategy | None = None,
    id_prefix: str | None = None,
    first_index: int = 1,
) -> PlanningResult:
    """Group due bins into at most ``len(drivers)`` pending routes.

    The result depends only on the arguments: bins are ranked by
    (priority desc, fill desc, id asc), placed greedily into the first open
    route with room and an overlapping time window, and a new route is opened
    only when none admits the bin. Bins that fit nowhere are deferred with a
    reason. Routes come back pending and unassigned.

    Raises:
        NoAvailableDriversError: due bins exist but ``drivers`` is empty.
    """
    constraints = constraints or BuilderConstraints()
    sequencer = sequencer or get_sequencer()
    if constraints.route_capacity < 1:
        raise ValidationError("route_capacity must be >= 1")

    ranked = sorted(due, key=urgency_key)
    if not ranked:
        return PlanningResult(routes=[], deferred=[], metadata={"status": "idle", "due_bins": 0})
    if not drivers:
        raise NoAvailableDriversError([item.bin_id for item in ranked])

    shift = constraints.shift_window
    buckets: list[_Bucket] = []
    deferred: list[DeferredBin] = []

    for item in ranked:
        bin_window = shift.intersect(item.window) if item.window else shift
        if bin_window is None:
            deferred.append(DeferredBin(item.bin_id, DEFER_TIME_WINDOW, item.priority))
            continue

        placed = False
        for bucket in buckets:
            if len(bucket.stops) >= constraints.route_capacity:
                continue
            overlap = bucket.window.intersect(bin_window)
            if overlap is None:
                continue
            bucket.window = overlap
            bucket.stops.append(item)
            placed = True
            break
        if placed:
            continue

        if len(buckets) < len(drivers):
            buckets.append(_Bucket(window=bin_window, stops=[item]))
            continue

        all_full = all(len(bucket.stops) >= constraints.route_capacity for bucket in buckets)
        reason = DEFER_CAPACITY if all_full else DEFER_TIME_WINDOW
        deferred.append(DeferredBin(item.bin_id, reason, item.priority))

    prefix = id_prefix or f"R{route_date:%Y%m%d}"
    routes: list[Route] = []
    for offset, bucket in enumerate(buckets):
        ordered = sequencer.sequence(depot=constraints.depot, stops=bucket.stops)
        points = [(stop.location.latitude, stop.location.longitude) for stop in ordered]
        distance_km = closed_tour_km(constraints.depot, points)
        duration = estimate_duration_minutes(distance_km, len(ordered), constraints)
        routes.append(
            Route(
                route_id=f"{prefix}-{first_index + offset:03d}",
                route_date=route_date,
                bin_ids=[stop.bin_id for stop in ordered],
                estimated_duration=round(duration, 1),
                estimated_distance_km=round(distance_km, 3),
                time_window=bucket.window,
            )
        )

    if deferred:
        logger.warning(
            "Deferred %d of %d due bins to the next planning cycle",
            len(deferred),
            len(ranked),
        )
    logger.info(
        "Built %d route(s) from %d due bins with %d available driver(s)",
        len(routes),
        len(ranked),
        len(drivers),
    )

    return PlanningResult(
        routes=routes,
        deferred=deferred,
        metadata={
            "status": "partial" if deferred else "complete",
            "due_bins": len(ranked),
            "drivers_available": len(drivers),
            "route_capacity": constraints.route_capacity,
            "sequencing": sequencer.name,
        },
    )
