"""Domain models for companies, routes, route stops and check-ins."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class FixedOrigin:
    """Route starts at a literal coordinate (usually the rep's position)."""

    lat: float
    lng: float

    def as_coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


@dataclass(frozen=True, slots=True)
class AnyStart:
    """No fixed first leg: the optimizer may start from any stop."""


ANY_START = AnyStart()

Origin = Union[FixedOrigin, AnyStart]


def origin_coordinate(origin: Origin) -> Optional[Coordinate]:
    if isinstance(origin, FixedOrigin):
        return origin.as_coordinate()
    return None


class RouteStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(slots=True)
class Company:
    """A CRM company cached locally, geocoded when an address was available."""

    id: str
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    owner_id: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass(slots=True)
class Stop:
    """A company resolved for a route-build request."""

    company_id: str
    name: str
    lat: float
    lng: float
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    @classmethod
    def from_company(cls, company: Company) -> "Stop":
        if company.lat is None or company.lng is None:
            raise ValueError(f"Company {company.id} has no coordinates.")
        return cls(
            company_id=company.id,
            name=company.name,
            lat=company.lat,
            lng=company.lng,
            street=company.street,
            city=company.city,
            state=company.state,
            postal_code=company.postal_code,
        )


@dataclass(slots=True)
class OrderedStop:
    company_id: str
    name: str
    lat: float
    lng: float
    distance_from_prev_mi: Optional[float] = None
    eta_from_prev_min: Optional[float] = None
    completed: bool = False
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    @classmethod
    def from_stop(
        cls,
        stop: Stop,
        distance_from_prev_mi: Optional[float],
        eta_from_prev_min: Optional[float],
    ) -> "OrderedStop":
        return cls(
            company_id=stop.company_id,
            name=stop.name,
            lat=stop.lat,
            lng=stop.lng,
            distance_from_prev_mi=distance_from_prev_mi,
            eta_from_prev_min=eta_from_prev_min,
            street=stop.street,
            city=stop.city,
            state=stop.state,
            postal_code=stop.postal_code,
        )


@dataclass(slots=True)
class Route:
    id: str
    user_id: str
    total_distance_mi: Optional[float]
    total_eta_min: Optional[float]
    current_stop_index: int = 0
    status: RouteStatus = RouteStatus.PLANNING
    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    nav_url: str = ""
    geometry: list[Coordinate] = field(default_factory=list)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "total_distance_mi": self.total_distance_mi,
            "total_eta_min": self.total_eta_min,
            "current_stop_index": self.current_stop_index,
            "status": self.status.value,
            "created_at": _format_timestamp(self.created_at),
            "completed_at": _format_timestamp(self.completed_at),
            "nav_url": self.nav_url,
            "geometry": [[point.lat, point.lng] for point in self.geometry],
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Route":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            total_distance_mi=row.get("total_distance_mi"),
            total_eta_min=row.get("total_eta_min"),
            current_stop_index=int(row.get("current_stop_index") or 0),
            status=RouteStatus(row.get("status") or RouteStatus.PLANNING.value),
            created_at=_parse_timestamp(row.get("created_at")) or utcnow(),
            completed_at=_parse_timestamp(row.get("completed_at")),
            nav_url=row.get("nav_url") or "",
            geometry=[Coordinate(float(lat), float(lng)) for lat, lng in (row.get("geometry") or [])],
        )


@dataclass(slots=True)
class RouteStopRecord:
    """Durable row for one stop of a route; ``stop_index`` is authoritative for order."""

    id: str
    route_id: str
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
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_ordered_stop(cls, route_id: str, stop_index: int, stop: OrderedStop) -> "RouteStopRecord":
        return cls(
            id=new_id(),
            route_id=route_id,
            company_id=stop.company_id,
            name=stop.name,
            stop_index=stop_index,
            lat=stop.lat,
            lng=stop.lng,
            street=stop.street,
            city=stop.city,
            state=stop.state,
            postal_code=stop.postal_code,
            distance_from_prev_mi=stop.distance_from_prev_mi,
            eta_from_prev_min=stop.eta_from_prev_min,
            completed=stop.completed,
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "route_id": self.route_id,
            "company_id": self.company_id,
            "name": self.name,
            "stop_index": self.stop_index,
            "lat": self.lat,
            "lng": self.lng,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "distance_from_prev_mi": self.distance_from_prev_mi,
            "eta_from_prev_min": self.eta_from_prev_min,
            "completed": self.completed,
            "completed_at": _format_timestamp(self.completed_at),
            "created_at": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "RouteStopRecord":
        return cls(
            id=str(row["id"]),
            route_id=str(row["route_id"]),
            company_id=str(row["company_id"]),
            name=row.get("name") or "",
            stop_index=int(row["stop_index"]),
            lat=float(row["lat"]),
            lng=float(row["lng"]),
            street=row.get("street"),
            city=row.get("city"),
            state=row.get("state"),
            postal_code=row.get("postal_code"),
            distance_from_prev_mi=row.get("distance_from_prev_mi"),
            eta_from_prev_min=row.get("eta_from_prev_min"),
            completed=bool(row.get("completed", False)),
            completed_at=_parse_timestamp(row.get("completed_at")),
            created_at=_parse_timestamp(row.get("created_at")) or utcnow(),
        )


@dataclass(slots=True)
class CheckIn:
    """A field visit logged by a rep at a company."""

    id: str
    user_id: str
    company_id: str
    lat: float
    lng: float
    note: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)
    crm_record_id: Optional[str] = None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_id": self.company_id,
            "lat": self.lat,
            "lng": self.lng,
            "note": self.note,
            "timestamp": _format_timestamp(self.timestamp),
            "crm_record_id": self.crm_record_id,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CheckIn":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            company_id=str(row["company_id"]),
            lat=float(row["lat"]),
            lng=float(row["lng"]),
            note=row.get("note"),
            timestamp=_parse_timestamp(row.get("timestamp")) or utcnow(),
            crm_record_id=row.get("crm_record_id"),
        )
