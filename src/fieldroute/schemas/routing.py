"""Routing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field

from ..models.domain import (
    ANY_START,
    Coordinate,
    FixedOrigin,
    Origin,
    Route,
    RouteStatus,
    RouteStopRecord,
)


class CoordinateModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


class BuildRouteRequest(BaseModel):
    company_ids: List[str] = Field(..., description="Companies to visit, in any order.")
    origin: Union[CoordinateModel, Literal["gps"]] = Field(
        default="gps",
        description="Fixed start coordinate, or 'gps' to let the optimizer start at any stop.",
    )

    def to_origin(self) -> Origin:
        if isinstance(self.origin, CoordinateModel):
            return FixedOrigin(self.origin.lat, self.origin.lng)
        return ANY_START


class RouteStopModel(BaseModel):
    id: str
    company_id: str
    name: str
    stop_index: int
    lat: float
    lng: float
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    distance_from_prev_mi: Optional[float] = None
    eta_from_prev_min: Optional[float] = None
    completed: bool = False
    completed_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: RouteStopRecord) -> "RouteStopModel":
        return cls(
            id=record.id,
            company_id=record.company_id,
            name=record.name,
            stop_index=record.stop_index,
            lat=record.lat,
            lng=record.lng,
            street=record.street,
            city=record.city,
            state=record.state,
            postal_code=record.postal_code,
            distance_from_prev_mi=record.distance_from_prev_mi,
            eta_from_prev_min=record.eta_from_prev_min,
            completed=record.completed,
            completed_at=record.completed_at,
        )


class RouteModel(BaseModel):
    id: str
    user_id: str
    status: RouteStatus
    total_distance_mi: Optional[float] = Field(
        None, description="Null when the directions service was unavailable."
    )
    total_eta_min: Optional[float] = None
    current_stop_index: int = 0
    created_at: datetime
    completed_at: Optional[datetime] = None
    nav_url: str = ""
    route_geometry: List[CoordinateModel] = Field(default_factory=list)
    stops: List[RouteStopModel] = Field(default_factory=list)

    @classmethod
    def from_route(cls, route: Route, stops: Sequence[RouteStopRecord]) -> "RouteModel":
        return cls(
            id=route.id,
            user_id=route.user_id,
            status=route.status,
            total_distance_mi=route.total_distance_mi,
            total_eta_min=route.total_eta_min,
            current_stop_index=route.current_stop_index,
            created_at=route.created_at,
            completed_at=route.completed_at,
            nav_url=route.nav_url,
            route_geometry=[CoordinateModel(lat=point.lat, lng=point.lng) for point in route.geometry],
            stops=[RouteStopModel.from_record(stop) for stop in sorted(stops, key=lambda s: s.stop_index)],
        )


class BuildRouteResponse(BaseModel):
    route_id: str
    route: RouteModel
    metrics_available: bool
    source: str = Field(..., description="provider, fallback or degenerate")
    dropped_company_ids: List[str] = Field(default_factory=list)


class RouteStatusUpdate(BaseModel):
    status: RouteStatus


class AddStopRequest(BaseModel):
    company_id: str
    position: Optional[CoordinateModel] = Field(
        default=None, description="Current position; the re-planned tail starts here when given."
    )


class ReconcileResponse(BaseModel):
    route: RouteModel
    rebuilt: bool
    rebuild_failed: bool = False
    notice: Optional[str] = None


class ProximityRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    threshold_m: Optional[float] = Field(default=None, gt=0)


class ProximityResponse(BaseModel):
    nearby: bool
    stop_index: Optional[int] = None
    company_id: Optional[str] = None
    name: Optional[str] = None
    distance_m: Optional[float] = None
    distance_label: Optional[str] = None
    is_next_planned_stop: Optional[bool] = None
