"""Route planning and route lifecycle endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.domain import Coordinate, RouteStatus
from ...persistence import RouteStore
from ...schemas.routing import (
    AddStopRequest,
    BuildRouteRequest,
    BuildRouteResponse,
    ProximityRequest,
    ProximityResponse,
    ReconcileResponse,
    RouteModel,
    RouteStatusUpdate,
)
from ...services.geospatial import format_distance
from ...services.proximity import find_nearby_stop
from ...services.routing import reconciler
from ...services.routing.service import (
    activate_route,
    build_route,
    delete_route,
    load_route,
    route_history,
    set_route_status,
)
from ..dependencies import get_store, get_user_id, translate_errors

router = APIRouter(tags=["routes"])


@router.post("/route", response_model=BuildRouteResponse, status_code=status.HTTP_201_CREATED)
def create_route(
    payload: BuildRouteRequest,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> BuildRouteResponse:
    with translate_errors("build route"):
        result = build_route(user_id, payload.company_ids, payload.to_origin(), store=store)
    return BuildRouteResponse(
        route_id=result.route_id,
        route=RouteModel.from_route(result.route, result.stops),
        metrics_available=result.itinerary.total_distance_mi is not None,
        source=result.itinerary.source,
        dropped_company_ids=result.itinerary.dropped_company_ids,
    )


@router.get("/route/active", response_model=RouteModel)
def get_active_route(
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> RouteModel:
    """The single source of truth for the user's route in progress."""
    with translate_errors("load active route"):
        route = store.get_active_route(user_id)
        if route is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active route.")
        return RouteModel.from_route(route, store.get_route_stops(route.id))


@router.get("/routes/history", response_model=List[RouteModel])
def get_route_history(
    status_filter: Optional[RouteStatus] = Query(default=None, alias="status"),
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> List[RouteModel]:
    with translate_errors("load route history"):
        snapshots = route_history(user_id, status_filter, store=store)
    return [RouteModel.from_route(snapshot.route, snapshot.stops) for snapshot in snapshots]


@router.get("/route/{route_id}", response_model=RouteModel)
def get_route(
    route_id: str,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> RouteModel:
    with translate_errors("load route"):
        snapshot = load_route(route_id, user_id, store=store)
    return RouteModel.from_route(snapshot.route, snapshot.stops)


@router.post("/route/{route_id}/activate", response_model=RouteModel)
def activate(
    route_id: str,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> RouteModel:
    with translate_errors("activate route"):
        route = activate_route(route_id, user_id, store=store)
        return RouteModel.from_route(route, store.get_route_stops(route_id))


@router.patch("/route/{route_id}", response_model=RouteModel)
def update_route(
    route_id: str,
    payload: RouteStatusUpdate,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> RouteModel:
    with translate_errors("update route"):
        route = set_route_status(route_id, user_id, payload.status, store=store)
        return RouteModel.from_route(route, store.get_route_stops(route_id))


@router.delete("/route/{route_id}", status_code=status.HTTP_200_OK)
def remove_route(
    route_id: str,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> dict:
    with translate_errors("delete route"):
        delete_route(route_id, user_id, store=store)
    return {"success": True, "message": f"Route {route_id} deleted"}


@router.post("/route/{route_id}/stops", response_model=ReconcileResponse)
def add_route_stop(
    route_id: str,
    payload: AddStopRequest,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> ReconcileResponse:
    """Add a company mid-route and re-plan the unfinished stops."""
    with translate_errors("add stop"):
        load_route(route_id, user_id, store=store)
        position = payload.position.to_coordinate() if payload.position else None
        outcome = reconciler.add_stop(route_id, payload.company_id, position, store=store)
    return ReconcileResponse(
        route=RouteModel.from_route(outcome.route, outcome.stops),
        rebuilt=outcome.rebuilt,
        rebuild_failed=outcome.rebuild_failed,
        notice=outcome.notice,
    )


@router.post("/route/{route_id}/proximity", response_model=ProximityResponse)
def check_proximity(
    route_id: str,
    payload: ProximityRequest,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> ProximityResponse:
    """Nearest uncompleted stop within the check-in threshold of a position."""
    with translate_errors("check proximity"):
        snapshot = load_route(route_id, user_id, store=store)
    nearby = find_nearby_stop(
        Coordinate(payload.lat, payload.lng),
        snapshot.stops,
        snapshot.route.current_stop_index,
        payload.threshold_m,
    )
    if nearby is None:
        return ProximityResponse(nearby=False)
    stop = snapshot.stops[nearby.index]
    return ProximityResponse(
        nearby=True,
        stop_index=stop.stop_index,
        company_id=nearby.company_id,
        name=stop.name,
        distance_m=nearby.distance_m,
        distance_label=format_distance(nearby.distance_m),
        is_next_planned_stop=nearby.is_next_planned_stop,
    )
