"""Read-only projections consumed by the mobile client.

Nothing here holds state: every function reads the engine's registries under
its lock and shapes the result into response schemas.
"""

from __future__ import annotations

from datetime import datetime

from ...models.domain import Bin, CollectionSchedule, Driver, Frequency, Route, RouteStatus, TimeWindow
from ...schemas.bins import BinDetailModel, BinModel, LocationModel
from ...schemas.dashboard import DashboardSummary
from ...schemas.drivers import DriverModel
from ...schemas.routes import DeferredBinModel, PlanResponse, RouteDetailModel, RouteSummaryModel
from ...schemas.schedules import ScheduleModel, TimeWindowModel
from ..clock import as_utc, utc_now
from ..engine import CollectionEngine
from ..routing.models import PlanningResult

UNKNOWN_DRIVER = "Unknown Driver"


def _window_model(window: TimeWindow | None) -> TimeWindowModel | None:
    if window is None:
        return None
    return TimeWindowModel(start=window.start, end=window.end)


def bin_to_model(engine: CollectionEngine, bin_: Bin) -> BinModel:
    return BinModel(
        id=bin_.bin_id,
        location=LocationModel(
            latitude=bin_.location.latitude,
            longitude=bin_.location.longitude,
            address=bin_.location.address,
        ),
        status=engine.bins.derive_status(bin_),
        current_level=bin_.current_level,
        capacity=bin_.capacity,
        fill_percentage=round(bin_.fill_ratio * 100.0, 1),
        type=bin_.bin_type,
        last_collected=bin_.last_collected,
    )


def schedule_to_model(schedule: CollectionSchedule) -> ScheduleModel:
    return ScheduleModel(
        id=schedule.schedule_id,
        bin_id=schedule.bin_id,
        frequency=schedule.frequency,
        preferred_time_window=_window_model(schedule.preferred_window),
        priority=schedule.priority,
    )


def driver_to_model(driver: Driver) -> DriverModel:
    return DriverModel(
        id=driver.driver_id,
        name=driver.name,
        contact=driver.contact,
        active_status=driver.active_status,
        current_route=driver.current_route,
    )


def _driver_names(engine: CollectionEngine) -> dict[str, str]:
    return {driver.driver_id: driver.name for driver in engine.drivers.list()}


def _summary_fields(route: Route, names: dict[str, str]) -> dict:
    return {
        "id": route.route_id,
        "driver_id": route.driver_id,
        "driver_name": names.get(route.driver_id or "", UNKNOWN_DRIVER),
        "status": route.status,
        "bin_count": len(route.bin_ids),
        "estimated_duration": route.estimated_duration,
        "date": route.route_date,
    }


def route_to_detail(engine: CollectionEngine, route: Route, names: dict[str, str] | None = None) -> RouteDetailModel:
    names = names if names is not None else _driver_names(engine)
    return RouteDetailModel(
        **_summary_fields(route, names),
        bin_ids=list(route.bin_ids),
        bins=[
            bin_to_model(engine, engine.bins.get(bin_id)) for bin_id in route.bin_ids if bin_id in engine.bins
        ],
        estimated_distance_km=route.estimated_distance_km,
        time_window=_window_model(route.time_window),
        actual_duration=route.actual_duration,
        dispatched_at=route.dispatched_at,
        completed_at=route.completed_at,
    )


def list_bins(engine: CollectionEngine) -> list[BinModel]:
    with engine.lock:
        return [bin_to_model(engine, bin_) for bin_ in engine.bins.list()]


def bin_details(engine: CollectionEngine, bin_id: str) -> BinDetailModel:
    with engine.lock:
        bin_ = engine.bins.get(bin_id)
        schedule = engine.schedules.for_bin(bin_id)
        active_route = next(
            (route.route_id for route in engine.routes.active_routes() if bin_id in route.bin_ids),
            None,
        )
        return BinDetailModel(
            **bin_to_model(engine, bin_).model_dump(),
            schedule_id=schedule.schedule_id if schedule else None,
            active_route_id=active_route,
        )


def list_routes(engine: CollectionEngine, status: RouteStatus | None = None) -> list[RouteSummaryModel]:
    with engine.lock:
        names = _driver_names(engine)
        return [
            RouteSummaryModel(**_summary_fields(route, names))
            for route in engine.routes.list()
            if status is None or route.status is status
        ]


def route_details(engine: CollectionEngine, route_id: str) -> RouteDetailModel:
    with engine.lock:
        return route_to_detail(engine, engine.routes.get(route_id))


def list_schedules(
    engine: CollectionEngine,
    query: str | None = None,
    frequency: Frequency | None = None,
) -> list[ScheduleModel]:
    with engine.lock:
        return [schedule_to_model(schedule) for schedule in engine.schedules.search(query, frequency)]


def list_drivers(engine: CollectionEngine) -> list[DriverModel]:
    with engine.lock:
        return [driver_to_model(driver) for driver in engine.drivers.list()]


def due_bin_count(engine: CollectionEngine, as_of: datetime | None = None) -> int:
    with engine.lock:
        return len(engine.schedules.due_bins(as_utc(as_of or utc_now())))


def active_route_count(engine: CollectionEngine) -> int:
    with engine.lock:
        return len(engine.routes.active_routes())


def dashboard_summary(engine: CollectionEngine, as_of: datetime | None = None) -> DashboardSummary:
    as_of = as_utc(as_of or utc_now())
    with engine.lock:
        return DashboardSummary(
            active_bins=len(engine.bins),
            bins_requiring_collection=due_bin_count(engine, as_of),
            active_routes=active_route_count(engine),
            available_drivers=len(engine.drivers.available_drivers()),
            as_of=as_of,
        )


def plan_response(engine: CollectionEngine, result: PlanningResult) -> PlanResponse:
    with engine.lock:
        names = _driver_names(engine)
        routes = [route_to_detail(engine, route, names) for route in result.routes]
    return PlanResponse(
        routes=routes,
        deferred_bin_ids=result.deferred_bin_ids,
        deferred=[
            DeferredBinModel(bin_id=item.bin_id, reason=item.reason, priority=item.priority)
            for item in result.deferred
        ],
        metadata=result.metadata,
    )
