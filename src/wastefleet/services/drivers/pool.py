"""Driver availability and route assignment tracking."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from ...errors import DriverUnavailableError, DuplicateIdError, NotAssignedError, NotFoundError
from ...models.domain import Driver, DriverStatus

logger = logging.getLogger(__name__)


class DriverPool:
    def __init__(self) -> None:
        self._drivers: dict[str, Driver] = {}

    def __contains__(self, driver_id: object) -> bool:
        return driver_id in self._drivers

    def register(self, driver: Driver) -> Driver:
        if driver.driver_id in self._drivers:
            raise DuplicateIdError("Driver", driver.driver_id)
        self._drivers[driver.driver_id] = replace(driver)
        return replace(driver)

    def register_many(self, drivers: Iterable[Driver]) -> None:
        for driver in drivers:
            self.register(driver)

    def get(self, driver_id: str) -> Driver:
        return replace(self._require(driver_id))

    def list(self) -> list[Driver]:
        return [replace(self._drivers[key]) for key in sorted(self._drivers)]

    def available_drivers(self) -> list[Driver]:
        return [driver for driver in self.list() if driver.active_status is DriverStatus.AVAILABLE]

    def assign(self, driver_id: str, route_id: str) -> Driver:
        driver = self._require(driver_id)
        if driver.active_status is not DriverStatus.AVAILABLE or driver.current_route is not None:
            raise DriverUnavailableError(
                f"Driver '{driver_id}' is {driver.active_status.value}"
                + (f" on route '{driver.current_route}'." if driver.current_route else ".")
            )
        driver.active_status = DriverStatus.ON_ROUTE
        driver.current_route = route_id
        logger.info("Driver %s assigned to route %s", driver_id, route_id)
        return replace(driver)

    def release(self, driver_id: str) -> Driver:
        driver = self._require(driver_id)
        if driver.current_route is None:
            raise NotAssignedError(f"Driver '{driver_id}' has no active route.")
        logger.info("Driver %s released from route %s", driver_id, driver.current_route)
        driver.active_status = DriverStatus.AVAILABLE
        driver.current_route = None
        return replace(driver)

    def set_off_duty(self, driver_id: str, off_duty: bool) -> Driver:
        driver = self._require(driver_id)
        if driver.current_route is not None:
            raise DriverUnavailableError(
                f"Driver '{driver_id}' is on route '{driver.current_route}' and cannot change duty status."
            )
        driver.active_status = DriverStatus.OFF_DUTY if off_duty else DriverStatus.AVAILABLE
        return replace(driver)

    def snapshot(self) -> dict[str, Driver]:
        return {key: replace(driver) for key, driver in self._drivers.items()}

    def restore(self, snapshot: dict[str, Driver]) -> None:
        self._drivers = {key: replace(driver) for key, driver in snapshot.items()}

    def _require(self, driver_id: str) -> Driver:
        try:
            return self._drivers[driver_id]
        except KeyError:
            raise NotFoundError("Driver", driver_id) from None
