"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...models.domain import Coordinate, OrderedStop


@dataclass(slots=True)
class Leg:
    distance_m: float
    duration_s: float


@dataclass(slots=True)
class DirectionsResult:
    """Normalized response of the driving-directions service."""

    geometry: List[Coordinate]
    legs: List[Leg]
    distance_m: float
    duration_s: float


@dataclass(slots=True)
class OptimizedRoute:
    """Visiting order plus metrics for a set of coordinates.

    ``order`` is a permutation of input indices. Totals and leg metrics are
    ``None`` when the provider could not be used; that means "unknown", not
    "zero distance".
    """

    order: List[int]
    total_distance_mi: Optional[float]
    total_eta_min: Optional[float]
    leg_distances_mi: List[Optional[float]]
    leg_etas_min: List[Optional[float]]
    geometry: List[Coordinate]
    source: str = "provider"

    @property
    def metrics_available(self) -> bool:
        return self.total_distance_mi is not None


@dataclass(slots=True)
class PlannedItinerary:
    stops: List[OrderedStop]
    total_distance_mi: Optional[float]
    total_eta_min: Optional[float]
    geometry: List[Coordinate]
    nav_url: str
    source: str = "provider"
    dropped_company_ids: List[str] = field(default_factory=list)
