"""Dashboard endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from ...schemas.dashboard import DashboardSummary
from ...services.engine import CollectionEngine
from ...services.query import facade
from ..dependencies import get_engine

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummary, status_code=status.HTTP_200_OK)
def summary(
    as_of: datetime | None = Query(default=None, description="Evaluate due bins at this instant (UTC)."),
    engine: CollectionEngine = Depends(get_engine),
) -> DashboardSummary:
    return facade.dashboard_summary(engine, as_of)
