"""Dashboard summary schema."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class DashboardSummary(BaseModel):
    active_bins: int
    bins_requiring_collection: int
    active_routes: int
    available_drivers: int
    as_of: datetime
