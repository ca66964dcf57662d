"""Bin endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import EngineError
from ...models.domain import Bin, Location
from ...schemas.bins import BinCreateRequest, BinDetailModel, BinLevelUpdate, BinModel
from ...services.engine import CollectionEngine
from ...services.query import facade
from ..dependencies import get_engine
from ..errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bins", tags=["bins"])


@router.get("", response_model=list[BinModel], status_code=status.HTTP_200_OK)
def list_bins(engine: CollectionEngine = Depends(get_engine)) -> list[BinModel]:
    """All bins ordered by id, with status derived from the current fill level."""
    return facade.list_bins(engine)


@router.get("/{bin_id}", response_model=BinDetailModel, status_code=status.HTTP_200_OK)
def get_bin(bin_id: str, engine: CollectionEngine = Depends(get_engine)) -> BinDetailModel:
    try:
        return facade.bin_details(engine, bin_id)
    except EngineError as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=BinModel, status_code=status.HTTP_201_CREATED)
def register_bin(payload: BinCreateRequest, engine: CollectionEngine = Depends(get_engine)) -> BinModel:
    bin_ = Bin(
        bin_id=payload.id,
        location=Location(
            latitude=payload.location.latitude,
            longitude=payload.location.longitude,
            address=payload.location.address,
        ),
        capacity=payload.capacity,
        current_level=payload.current_level,
        bin_type=payload.type,
        last_collected=payload.last_collected,
    )
    try:
        stored = engine.register_bin(bin_)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    logger.info("Registered bin %s", stored.bin_id)
    return facade.bin_to_model(engine, stored)


@router.put("/{bin_id}/level", response_model=BinModel, status_code=status.HTTP_200_OK)
def record_level(bin_id: str, payload: BinLevelUpdate, engine: CollectionEngine = Depends(get_engine)) -> BinModel:
    """Record a sensor or operator fill reading."""
    try:
        updated = engine.record_level(bin_id, payload.current_level)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        logger.exception(f"Error recording level for bin {bin_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to record level: {str(exc)}",
        ) from exc
    return facade.bin_to_model(engine, updated)


@router.delete("/{bin_id}", status_code=status.HTTP_200_OK)
def remove_bin(bin_id: str, engine: CollectionEngine = Depends(get_engine)) -> dict:
    """Remove a bin and its schedule. Bins on a pending or in-progress route are rejected."""
    try:
        engine.remove_bin(bin_id)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    return {"success": True, "message": f"Bin {bin_id} removed"}
