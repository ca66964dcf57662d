"""Bin request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import BinStatus, BinType


class LocationModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = ""


class BinModel(BaseModel):
    id: str
    location: LocationModel
    status: BinStatus
    current_level: float
    capacity: float
    fill_percentage: float
    type: BinType
    last_collected: Optional[datetime] = None


class BinDetailModel(BinModel):
    schedule_id: Optional[str] = None
    active_route_id: Optional[str] = None


class BinCreateRequest(BaseModel):
    id: str = Field(..., min_length=1)
    location: LocationModel
    capacity: float = Field(..., gt=0, description="Volume in litres.")
    current_level: float = Field(default=0.0, ge=0)
    type: BinType = BinType.GENERAL
    last_collected: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class BinLevelUpdate(BaseModel):
    current_level: float = Field(..., ge=0)
