"""Serialize engine state to the bins/drivers/routes/schedules JSON layout and back."""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any, Iterator

from ..errors import ValidationError
from ..models.domain import (
    Bin,
    BinType,
    CollectionSchedule,
    Driver,
    DriverStatus,
    Frequency,
    Location,
    Priority,
    Route,
    RouteStatus,
    TimeWindow,
)

if TYPE_CHECKING:
    from ..services.engine import CollectionEngine


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if len(text) == 10:
        return datetime.fromisoformat(f"{text}T00:00:00+00:00")
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _window_to_json(window: TimeWindow | None) -> dict | None:
    if window is None:
        return None
    return {"start": window.start.strftime("%H:%M"), "end": window.end.strftime("%H:%M")}


def _window_from_json(value: dict | None) -> TimeWindow | None:
    if not value:
        return None
    return TimeWindow(start=time.fromisoformat(value["start"]), end=time.fromisoformat(value["end"]))


def _rows(payload: dict, key: str) -> Iterator[dict]:
    """Collections may be stored keyed by id or as plain lists."""
    collection = payload.get(key) or []
    if isinstance(collection, dict):
        for identifier, row in collection.items():
            yield {"id": identifier, **row}
    else:
        yield from collection


def bin_to_json(bin_: Bin) -> dict:
    return {
        "location": {
            "latitude": bin_.location.latitude,
            "longitude": bin_.location.longitude,
            "address": bin_.location.address,
        },
        "capacity": bin_.capacity,
        "current_level": bin_.current_level,
        "type": bin_.bin_type.value,
        "last_collected": _iso(bin_.last_collected),
    }


def bin_from_json(row: dict) -> Bin:
    location = row.get("location") or {}
    return Bin(
        bin_id=str(row["id"]),
        location=Location(
            latitude=float(location["latitude"]),
            longitude=float(location["longitude"]),
            address=str(location.get("address", "")),
        ),
        capacity=float(row["capacity"]),
        current_level=float(row.get("current_level", 0)),
        bin_type=BinType(row.get("type", BinType.GENERAL.value)),
        last_collected=_parse_datetime(row.get("last_collected")),
    )


def schedule_to_json(schedule: CollectionSchedule) -> dict:
    return {
        "bin_id": schedule.bin_id,
        "frequency": schedule.frequency.value,
        "preferred_time_window": _window_to_json(schedule.preferred_window),
        "priority": schedule.priority.value,
    }


def schedule_from_json(row: dict) -> CollectionSchedule:
    window = _window_from_json(row.get("preferred_time_window"))
    if window is None:
        raise ValidationError(f"Schedule '{row.get('id')}' is missing preferred_time_window.")
    return CollectionSchedule(
        schedule_id=str(row["id"]),
        bin_id=str(row["bin_id"]),
        frequency=Frequency(row["frequency"]),
        preferred_window=window,
        priority=Priority(row.get("priority", Priority.MEDIUM.value)),
    )


def driver_to_json(driver: Driver) -> dict:
    return {
        "name": driver.name,
        "contact": driver.contact,
        "active_status": driver.active_status.value,
        "current_route": driver.current_route,
    }


def driver_from_json(row: dict) -> Driver:
    return Driver(
        driver_id=str(row["id"]),
        name=str(row["name"]),
        contact=str(row.get("contact", "")),
        active_status=DriverStatus(row.get("active_status", DriverStatus.AVAILABLE.value)),
        current_route=row.get("current_route"),
    )


def route_to_json(route: Route) -> dict:
    return {
        "driver_id": route.driver_id,
        "bin_ids": list(route.bin_ids),
        "status": route.status.value,
        "date": route.route_date.isoformat(),
        "estimated_duration": route.estimated_duration,
        "estimated_distance_km": route.estimated_distance_km,
        "time_window": _window_to_json(route.time_window),
        "actual_duration": route.actual_duration,
        "created_at": _iso(route.created_at),
        "dispatched_at": _iso(route.dispatched_at),
        "completed_at": _iso(route.completed_at),
    }


def route_from_json(row: dict) -> Route:
    return Route(
        route_id=str(row["id"]),
        route_date=date.fromisoformat(str(row["date"])[:10]),
        bin_ids=[str(bin_id) for bin_id in row.get("bin_ids", [])],
        estimated_duration=float(row.get("estimated_duration", 0.0)),
        estimated_distance_km=float(row.get("estimated_distance_km", 0.0)),
        time_window=_window_from_json(row.get("time_window")),
        status=RouteStatus(row.get("status", RouteStatus.PENDING.value)),
        driver_id=row.get("driver_id"),
        actual_duration=row.get("actual_duration"),
        created_at=_parse_datetime(row.get("created_at")),
        dispatched_at=_parse_datetime(row.get("dispatched_at")),
        completed_at=_parse_datetime(row.get("completed_at")),
    )


def dump_state(engine: "CollectionEngine") -> dict:
    with engine.lock:
        return {
            "bins": {bin_.bin_id: bin_to_json(bin_) for bin_ in engine.bins.list()},
            "drivers": {driver.driver_id: driver_to_json(driver) for driver in engine.drivers.list()},
            "routes": {route.route_id: route_to_json(route) for route in engine.routes.list()},
            "schedules": {
                schedule.schedule_id: schedule_to_json(schedule) for schedule in engine.schedules.list()
            },
        }


def _check_consistency(routes: list[Route], drivers: dict[str, Driver]) -> None:
    active_bins = Counter(bin_id for route in routes if route.is_active for bin_id in route.bin_ids)
    doubled = sorted(bin_id for bin_id, count in active_bins.items() if count > 1)
    if doubled:
        raise ValidationError(f"Bins {', '.join(doubled)} appear on more than one active route.")
    for route in routes:
        if route.status is RouteStatus.IN_PROGRESS:
            driver = drivers.get(route.driver_id or "")
            if driver is None or driver.current_route != route.route_id:
                raise ValidationError(
                    f"In-progress route '{route.route_id}' is not held by driver '{route.driver_id}'."
                )
        elif route.status is RouteStatus.PENDING and route.driver_id is not None:
            raise ValidationError(f"Pending route '{route.route_id}' cannot have a driver.")
    by_id = {route.route_id: route for route in routes}
    for driver in drivers.values():
        if driver.current_route is None:
            if driver.active_status is DriverStatus.ON_ROUTE:
                raise ValidationError(f"Driver '{driver.driver_id}' is on-route without a current route.")
            continue
        route = by_id.get(driver.current_route)
        if (
            route is None
            or route.status is not RouteStatus.IN_PROGRESS
            or route.driver_id != driver.driver_id
        ):
            raise ValidationError(
                f"Driver '{driver.driver_id}' holds '{driver.current_route}', which is not an in-progress route of theirs."
            )
        if driver.active_status is not DriverStatus.ON_ROUTE:
            raise ValidationError(
                f"Driver '{driver.driver_id}' holds route '{driver.current_route}' but is {driver.active_status.value}."
            )


def load_state(engine: "CollectionEngine", payload: dict) -> None:
    """Populate an empty engine from a snapshot or seed payload."""
    bins = [bin_from_json(row) for row in _rows(payload, "bins")]
    drivers = [driver_from_json(row) for row in _rows(payload, "drivers")]
    schedules = [schedule_from_json(row) for row in _rows(payload, "schedules")]
    routes = [route_from_json(row) for row in _rows(payload, "routes")]
    _check_consistency(routes, {driver.driver_id: driver for driver in drivers})

    with engine.lock:
        engine.bins.register_many(bins)
        engine.drivers.register_many(drivers)
        for schedule in schedules:
            engine.schedules.create(schedule)
        for route in routes:
            if not route.is_active:
                continue
            for bin_id in route.bin_ids:
                if bin_id not in engine.bins:
                    raise ValidationError(f"Route '{route.route_id}' references unknown bin '{bin_id}'.")
        engine.routes.restore({route.route_id: route for route in routes})
