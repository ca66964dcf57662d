"""Route state machine: pending -> in-progress -> completed."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator

from ...errors import ConflictError, DuplicateIdError, InvalidTransitionError, NotFoundError, ValidationError
from ...models.domain import Route, RouteStatus
from ..bins.registry import BinRegistry
from ..clock import as_utc, utc_now
from ..drivers.pool import DriverPool

logger = logging.getLogger(__name__)


def _copy(route: Route) -> Route:
    return replace(route, bin_ids=list(route.bin_ids))


class RouteLifecycleManager:
    """Owns route state and drives the cross-registry writes of each transition.

    ``dispatch`` and ``complete`` touch the driver pool and the bin registry as
    well as the route. Both run inside ``_atomic`` so a failure part-way
    through restores all three to their prior state.
    """

    def __init__(self, bins: BinRegistry, drivers: DriverPool) -> None:
        self._bins = bins
        self._drivers = drivers
        self._routes: dict[str, Route] = {}

    def __contains__(self, route_id: object) -> bool:
        return route_id in self._routes

    def add(self, route: Route) -> Route:
        """Accept a freshly built pending route."""
        if route.route_id in self._routes:
            raise DuplicateIdError("Route", route.route_id)
        if route.status is not RouteStatus.PENDING or route.driver_id is not None:
            raise InvalidTransitionError(f"New route '{route.route_id}' must be pending and unassigned.")
        for bin_id in route.bin_ids:
            if bin_id not in self._bins:
                raise NotFoundError("Bin", bin_id)
        clashes = sorted(set(route.bin_ids) & self.active_bin_ids())
        if clashes:
            raise ConflictError(
                f"Bins {', '.join(clashes)} are already on a route that is not completed."
            )
        self._routes[route.route_id] = _copy(route)
        return _copy(route)

    def get(self, route_id: str) -> Route:
        return _copy(self._require(route_id))

    def list(self) -> list[Route]:
        return [
            _copy(route)
            for route in sorted(self._routes.values(), key=lambda item: (item.route_date, item.route_id))
        ]

    def active_routes(self) -> list[Route]:
        return [route for route in self.list() if route.is_active]

    def active_bin_ids(self) -> set[str]:
        return {bin_id for route in self._routes.values() if route.is_active for bin_id in route.bin_ids}

    def route_ids(self) -> list[str]:
        return list(self._routes)

    def dispatch(self, route_id: str, driver_id: str, at: datetime | None = None) -> Route:
        route = self._require(route_id)
        if route.status is not RouteStatus.PENDING:
            raise InvalidTransitionError(
                f"Route '{route_id}' is {route.status.value}; only pending routes can be dispatched."
            )
        with self._atomic():
            self._drivers.assign(driver_id, route_id)
            route.driver_id = driver_id
            route.status = RouteStatus.IN_PROGRESS
            route.dispatched_at = as_utc(at or utc_now())
        logger.info("Route %s dispatched to driver %s", route_id, driver_id)
        return _copy(route)

    def complete(self, route_id: str, actual_duration: float, completed_at: datetime | None = None) -> Route:
        route = self._require(route_id)
        if route.status is not RouteStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Route '{route_id}' is {route.status.value}; only in-progress routes can be completed."
            )
        if actual_duration < 0:
            raise ValidationError("actual_duration must be >= 0")
        if route.driver_id is None:
            raise InvalidTransitionError(f"Route '{route_id}' is in progress without a driver.")
        timestamp = as_utc(completed_at or utc_now())

        with self._atomic():
            for bin_id in route.bin_ids:
                self._bins.mark_collected(bin_id, timestamp)
            self._drivers.release(route.driver_id)
            route.status = RouteStatus.COMPLETED
            route.actual_duration = actual_duration
            route.completed_at = timestamp
        logger.info(
            "Route %s completed in %.1f min (estimated %.1f), %d bins collected",
            route_id,
            actual_duration,
            route.estimated_duration,
            len(route.bin_ids),
        )
        return _copy(route)

    def cancel(self, route_id: str) -> None:
        """Delete a pending route. No driver was assigned so none is released."""
        route = self._require(route_id)
        if route.status is not RouteStatus.PENDING:
            raise InvalidTransitionError(
                f"Route '{route_id}' is {route.status.value}; only pending routes can be cancelled."
            )
        del self._routes[route_id]
        logger.info("Route %s cancelled", route_id)

    def snapshot(self) -> dict[str, Route]:
        return {key: _copy(route) for key, route in self._routes.items()}

    def restore(self, snapshot: dict[str, Route]) -> None:
        self._routes = {key: _copy(route) for key, route in snapshot.items()}

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        bins = self._bins.snapshot()
        drivers = self._drivers.snapshot()
        routes = self.snapshot()
        try:
            yield
        except Exception:
            self._bins.restore(bins)
            self._drivers.restore(drivers)
            self.restore(routes)
            logger.warning("Rolled back partial route transition")
            raise

    def _require(self, route_id: str) -> Route:
        try:
            return self._routes[route_id]
        except KeyError:
            raise NotFoundError("Route", route_id) from None
