"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...persistence.filesystem import FileStorage
from ...persistence.state import dump_state
from ...services.engine import CollectionEngine
from ..dependencies import get_engine

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.post("/health/snapshot", status_code=status.HTTP_200_OK)
def write_snapshot(engine: CollectionEngine = Depends(get_engine)) -> dict:
    """Write the bins, drivers, routes and schedules collections to a snapshot file."""
    try:
        state = dump_state(engine)
        path = FileStorage().write_snapshot(state)
    except OSError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to write snapshot: {str(exc)}",
        ) from exc
    return {
        "status": "success",
        "path": str(path),
        "counts": {key: len(collection) for key, collection in state.items()},
    }
