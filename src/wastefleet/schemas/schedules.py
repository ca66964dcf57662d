"""Collection schedule schemas."""

from __future__ import annotations

from datetime import time
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..models.domain import Frequency, Priority


class TimeWindowModel(BaseModel):
    start: time
    end: time

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindowModel":
        if self.start >= self.end:
            raise ValueError("start must be earlier than end")
        return self


class ScheduleModel(BaseModel):
    id: str
    bin_id: str
    frequency: Frequency
    preferred_time_window: TimeWindowModel
    priority: Priority


class ScheduleCreateRequest(BaseModel):
    id: Optional[str] = Field(default=None, description="Generated when omitted.")
    bin_id: str
    frequency: Frequency
    preferred_time_window: TimeWindowModel
    priority: Priority = Priority.MEDIUM


class ScheduleUpdateRequest(BaseModel):
    frequency: Optional[Frequency] = None
    preferred_time_window: Optional[TimeWindowModel] = None
    priority: Optional[Priority] = None
