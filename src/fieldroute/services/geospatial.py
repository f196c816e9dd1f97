"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_MILE = 1609.344
METERS_TO_FEET = 3.28084
FEET_PER_MILE = 5280
PROXIMITY_THRESHOLD_FEET = 800
PROXIMITY_THRESHOLD_METERS = PROXIMITY_THRESHOLD_FEET / METERS_TO_FEET


class HasLocation(Protocol):
    @property
    def lat(self) -> Optional[float]: ...

    @property
    def lng(self) -> Optional[float]: ...


T = TypeVar("T", bound=HasLocation)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_meters(p1: HasLocation, p2: HasLocation) -> float:
    return haversine_m(p1.lat, p1.lng, p2.lat, p2.lng)


def distance_miles(p1: HasLocation, p2: HasLocation) -> float:
    return distance_meters(p1, p2) / METERS_PER_MILE


def filter_by_radius(points: Iterable[T], center: HasLocation, radius_miles: float) -> list[tuple[T, float]]:
    """Return ``(point, distance_mi)`` pairs within ``radius_miles`` of ``center``.

    Points without coordinates are dropped. The result is sorted by distance;
    ``sorted`` is stable so equal distances keep their input order.
    """

    within: list[tuple[T, float]] = []
    for point in points:
        if point.lat is None or point.lng is None:
            continue
        distance_mi = distance_miles(center, point)
        if distance_mi <= radius_miles:
            within.append((point, distance_mi))
    return sorted(within, key=lambda pair: pair[1])


def nearest_neighbor_order(points: Sequence[T], start: Optional[HasLocation] = None) -> list[T]:
    """Order points greedily, always visiting the closest unvisited point next.

    Heuristic only (O(n^2)); intended for itineraries within provider limits.
    Without ``start`` the first point seeds the walk and is emitted first.
    """

    remaining = list(points)
    if len(remaining) <= 1:
        return remaining

    ordered: list[T] = []
    current: HasLocation
    if start is None:
        current = remaining.pop(0)
        ordered.append(current)
    else:
        current = start

    while remaining:
        nearest_index = 0
        nearest_distance = math.inf
        for index, candidate in enumerate(remaining):
            distance = distance_meters(current, candidate)
            if distance < nearest_distance:
                nearest_distance = distance
                nearest_index = index
        current = remaining.pop(nearest_index)
        ordered.append(current)
    return ordered


def build_address_string(
    street: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    postal_code: Optional[str] = None,
    country: Optional[str] = None,
) -> str:
    return ", ".join(part for part in (street, city, state, postal_code, country) if part)


def meters_to_feet(meters: float) -> float:
    return meters * METERS_TO_FEET


def meters_to_miles(meters: float) -> float:
    return meters * METERS_TO_FEET / FEET_PER_MILE


def format_distance(meters: float) -> str:
    """Human readable distance: feet under half a mile, miles otherwise."""

    feet = meters_to_feet(meters)
    miles = feet / FEET_PER_MILE
    if miles < 0.5:
        if feet < 100:
            return "< 100 ft"
        return f"{round(feet)} ft"
    return f"{miles:.1f} mi"

