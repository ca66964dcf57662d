"""Route planning and lifecycle schemas."""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import Priority, RouteStatus
from .bins import BinModel
from .schedules import TimeWindowModel


class RouteSummaryModel(BaseModel):
    id: str
    driver_id: Optional[str] = None
    driver_name: str
    status: RouteStatus
    bin_count: int
    estimated_duration: float
    date: dt.date


class RouteDetailModel(RouteSummaryModel):
    bin_ids: List[str]
    bins: List[BinModel] = Field(default_factory=list)
    estimated_distance_km: float
    time_window: Optional[TimeWindowModel] = None
    actual_duration: Optional[float] = None
    dispatched_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None


class PlanRequest(BaseModel):
    as_of: Optional[dt.datetime] = Field(default=None, description="Planning instant, defaults to now (UTC).")
    route_capacity: Optional[int] = Field(default=None, ge=1)
    sequencing: Optional[Literal["nearest_neighbor", "ortools"]] = None
    persist: Optional[bool] = None


class DeferredBinModel(BaseModel):
    bin_id: str
    reason: str
    priority: Priority


class PlanResponse(BaseModel):
    routes: List[RouteDetailModel]
    deferred_bin_ids: List[str]
    deferred: List[DeferredBinModel]
    metadata: dict


class DispatchRequest(BaseModel):
    driver_id: str = Field(..., min_length=1)


class CompleteRequest(BaseModel):
    actual_duration: float = Field(..., ge=0, description="Minutes.")
    completed_at: Optional[dt.datetime] = None
