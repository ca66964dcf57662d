"""Route planning and lifecycle endpoints."""

from __future__ import annotations

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import EngineError
from ...models.domain import RouteStatus
from ...schemas.routes import (
    CompleteRequest,
    DispatchRequest,
    PlanRequest,
    PlanResponse,
    RouteDetailModel,
    RouteSummaryModel,
)
from ...services.engine import CollectionEngine
from ...services.query import facade
from ...services.routing.builder import BuilderConstraints
from ..dependencies import get_engine
from ..errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.get("", response_model=list[RouteSummaryModel], status_code=status.HTTP_200_OK)
def list_routes(
    route_status: RouteStatus | None = Query(default=None, alias="status", description="Filter by route status"),
    engine: CollectionEngine = Depends(get_engine),
) -> list[RouteSummaryModel]:
    return facade.list_routes(engine, route_status)


@router.get("/{route_id}", response_model=RouteDetailModel, status_code=status.HTTP_200_OK)
def get_route(route_id: str, engine: CollectionEngine = Depends(get_engine)) -> RouteDetailModel:
    try:
        return facade.route_details(engine, route_id)
    except EngineError as exc:
        raise to_http_exception(exc) from exc


@router.post("/plan", response_model=PlanResponse, status_code=status.HTTP_200_OK)
def plan(payload: PlanRequest | None = None, engine: CollectionEngine = Depends(get_engine)) -> PlanResponse:
    """Run a planning cycle.

    Under-provisioned cycles are not errors: bins that could not be placed,
    including the case where no driver is available, come back in
    ``deferred`` and the next cycle picks them up.
    """
    payload = payload or PlanRequest()
    constraints = BuilderConstraints()
    if payload.route_capacity is not None:
        constraints = replace(constraints, route_capacity=payload.route_capacity)
    try:
        result = engine.plan(
            payload.as_of,
            constraints=constraints,
            sequencing=payload.sequencing,
            persist=payload.persist,
        )
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        logger.exception(f"Error planning routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan routes: {str(exc)}",
        ) from exc
    return facade.plan_response(engine, result)


@router.post("/{route_id}/dispatch", response_model=RouteDetailModel, status_code=status.HTTP_200_OK)
def dispatch(route_id: str, payload: DispatchRequest, engine: CollectionEngine = Depends(get_engine)) -> RouteDetailModel:
    try:
        route = engine.dispatch(route_id, payload.driver_id)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    return facade.route_to_detail(engine, route)


@router.post("/{route_id}/complete", response_model=RouteDetailModel, status_code=status.HTTP_200_OK)
def complete(route_id: str, payload: CompleteRequest, engine: CollectionEngine = Depends(get_engine)) -> RouteDetailModel:
    try:
        route = engine.complete(route_id, payload.actual_duration, payload.completed_at)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        logger.exception(f"Error completing route {route_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to complete route: {str(exc)}",
        ) from exc
    return facade.route_to_detail(engine, route)


@router.delete("/{route_id}", status_code=status.HTTP_200_OK)
def cancel(route_id: str, engine: CollectionEngine = Depends(get_engine)) -> dict:
    """Cancel a pending route. Its bins become plannable again."""
    try:
        engine.cancel(route_id)
    except EngineError as exc:
        raise to_http_exception(exc) from exc
    return {"success": True, "message": f"Route {route_id} cancelled"}
