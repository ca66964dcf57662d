"""Collection schedule endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ...errors import EngineError
from ...models.domain import CollectionSchedule, Frequency, TimeWindow
from ...schemas.schedules import ScheduleCreateRequest, ScheduleModel, ScheduleUpdateRequest, TimeWindowModel
from ...services.engine import CollectionEngine
from ...services.query import facade
from ..dependencies import get_engine
from ..errors import to_http_exception

router = APIRouter(prefix="/schedules", tags=["schedules"])


def _window(model: TimeWindowModel) -> TimeWindow:
    return TimeWindow(start=model.start, end=model.end)


@router.get("", response_model=list[ScheduleModel], status_code=status.HTTP_200_OK)
def list_schedules(
    q: str | None = Query(default=None, description="Case-insensitive bin id search"),
    frequency: Frequency | None = Query(default=None, description="Only schedules with this frequency"),
    engine: CollectionEngine = Depends(get_engine),
) -> list[ScheduleModel]:
    return facade.list_schedules(engine, q, frequency)


@router.get("/{schedule_id}", response_model=ScheduleModel, status_code=status.HTTP_200_OK)
def get_schedule(schedule_id: str, engine: CollectionEngine = Depends(get_engine)) -> ScheduleModel:
    try:
        return facade.schedule_to_model(engine.schedules.get(schedule_id))
    except EngineError as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=ScheduleModel, status_code=status.HTTP_201_CREATED)
def create_schedule(payload: ScheduleCreateRequest, engine: CollectionEngine = Depends(get_engine)) -> ScheduleModel:
    schedule = CollectionSchedule(
        schedule_id=(payload.id or "").strip(),
        bin_id=payload.bin_id,
        frequency=payload.frequency,
        preferred_window=_window(payload.preferred_time_window),
        priority=payload.priority,
    )
    try:
        return facade.schedule_to_model(engine.create_schedule(schedule))
    except EngineError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{schedule_id}", response_model=ScheduleModel, status_code=status.HTTP_200_OK)
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdateRequest,
    engine: CollectionEngine = Depends(get_engine),
) -> ScheduleModel:
    window = payload.preferred_time_window
    try:
        updated = engine.update_schedule(
            schedule_id,
            frequency=payload.frequency,
            preferred_window=_window(window) if window else None,
            priority=payload.priority,
        )
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    return facade.schedule_to_model(updated)


@router.delete("/{schedule_id}", status_code=status.HTTP_200_OK)
def delete_schedule(schedule_id: str, engine: CollectionEngine = Depends(get_engine)) -> dict:
    """Delete a schedule. Routes keep their bins, nothing else is removed."""
    try:
        engine.delete_schedule(schedule_id)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    return {"success": True, "message": f"Schedule {schedule_id} deleted"}
