"""Driver endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...errors import EngineError
from ...models.domain import Driver
from ...schemas.drivers import DriverCreateRequest, DriverDutyRequest, DriverModel
from ...services.engine import CollectionEngine
from ...services.query import facade
from ..dependencies import get_engine
from ..errors import to_http_exception

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.get("", response_model=list[DriverModel], status_code=status.HTTP_200_OK)
def list_drivers(engine: CollectionEngine = Depends(get_engine)) -> list[DriverModel]:
    return facade.list_drivers(engine)


@router.post("", response_model=DriverModel, status_code=status.HTTP_201_CREATED)
def register_driver(payload: DriverCreateRequest, engine: CollectionEngine = Depends(get_engine)) -> DriverModel:
    try:
        driver = engine.register_driver(
            Driver(driver_id=payload.id, name=payload.name, contact=payload.contact)
        )
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    return facade.driver_to_model(driver)


@router.put("/{driver_id}/duty", response_model=DriverModel, status_code=status.HTTP_200_OK)
def set_duty(driver_id: str, payload: DriverDutyRequest, engine: CollectionEngine = Depends(get_engine)) -> DriverModel:
    """Toggle a driver between available and off-duty. Drivers on a route are rejected."""
    try:
        driver = engine.set_driver_off_duty(driver_id, payload.off_duty)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    return facade.driver_to_model(driver)
