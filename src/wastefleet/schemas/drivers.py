"""Driver schemas."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import DriverStatus


class DriverModel(BaseModel):
    id: str
    name: str
    contact: str
    active_status: DriverStatus
    current_route: Optional[str] = None


class DriverCreateRequest(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    contact: str = ""

    @field_validator("id", "name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class DriverDutyRequest(BaseModel):
    off_duty: bool
