import pytest

from wastefleet.errors import ConflictError, DriverUnavailableError, NotAssignedError, NotFoundError
from wastefleet.models.domain import Driver, DriverStatus
from wastefleet.services.drivers.pool import DriverPool


def _pool() -> DriverPool:
    pool = DriverPool()
    pool.register_many(
        [
            Driver(driver_id="D3", name="Sam Patel"),
            Driver(driver_id="D1", name="John Smith", contact="+44 123 456 7890"),
            Driver(driver_id="D2", name="Jane Doe", active_status=DriverStatus.OFF_DUTY),
        ]
    )
    return pool


def test_available_drivers_ordered_by_id():
    assert [driver.driver_id for driver in _pool().available_drivers()] == ["D1", "D3"]


def test_assign_marks_driver_on_route():
    pool = _pool()

    pool.assign("D1", "R1")

    driver = pool.get("D1")
    assert driver.active_status is DriverStatus.ON_ROUTE
    assert driver.current_route == "R1"
    assert [d.driver_id for d in pool.available_drivers()] == ["D3"]


def test_assign_twice_is_a_conflict():
    pool = _pool()
    pool.assign("D1", "R1")

    with pytest.raises(DriverUnavailableError) as excinfo:
        pool.assign("D1", "R2")

    assert isinstance(excinfo.value, ConflictError)
    assert pool.get("D1").current_route == "R1"


def test_off_duty_driver_cannot_be_assigned():
    with pytest.raises(DriverUnavailableError):
        _pool().assign("D2", "R1")


def test_release_returns_driver_to_available():
    pool = _pool()
    pool.assign("D1", "R1")

    pool.release("D1")

    driver = pool.get("D1")
    assert driver.active_status is DriverStatus.AVAILABLE
    assert driver.current_route is None


def test_release_without_route_fails():
    with pytest.raises(NotAssignedError):
        _pool().release("D1")


def test_duty_toggle_is_blocked_while_on_route():
    pool = _pool()
    pool.assign("D1", "R1")

    with pytest.raises(DriverUnavailableError):
        pool.set_off_duty("D1", True)
    assert pool.set_off_duty("D2", False).active_status is DriverStatus.AVAILABLE


def test_unknown_driver_raises_not_found():
    with pytest.raises(NotFoundError):
        _pool().assign("D9", "R1")
