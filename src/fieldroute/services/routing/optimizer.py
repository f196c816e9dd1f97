"""Stop ordering and route metrics on top of the directions service."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate
from .directions_client import DirectionsClient, get_directions_client
from .models import OptimizedRoute

METERS_TO_MILES = 0.000621371

logger = logging.getLogger(__name__)


def greedy_order(coordinates: Sequence[Coordinate], origin: Optional[Coordinate] = None) -> list[int]:
    """Nearest-neighbour visiting order using planar lat/lng distance.

    This is a proximity approximation, not an optimum. Without an origin the
    input order is kept, since there is no anchor to walk from.
    """
    if origin is None:
        return list(range(len(coordinates)))

    unvisited = list(range(len(coordinates)))
    order: list[int] = []
    current = origin
    while unvisited:
        nearest = unvisited[0]
        nearest_dist = math.inf
        for idx in unvisited:
            coord = coordinates[idx]
            dist = math.hypot(coord.lat - current.lat, coord.lng - current.lng)
            if dist < nearest_dist:
                nearest_dist = dist
                nearest = idx
        unvisited.remove(nearest)
        order.append(nearest)
        current = coordinates[nearest]
    return order


def _without_metrics(order: list[int], coordinates: Sequence[Coordinate], source: str) -> OptimizedRoute:
    return OptimizedRoute(
        order=order,
        total_distance_mi=None,
        total_eta_min=None,
        leg_distances_mi=[None] * len(order),
        leg_etas_min=[None] * len(order),
        geometry=list(coordinates),
        source=source,
    )


def optimize_route(
    coordinates: Sequence[Coordinate],
    origin: Optional[Coordinate] = None,
    client: Optional[DirectionsClient] = None,
) -> OptimizedRoute:
    """Order ``coordinates`` and annotate each stop with the leg arriving at it.

    Never raises: any directions failure degrades to the greedy order with
    null totals and null leg metrics.
    """
    if len(coordinates) < 2:
        return OptimizedRoute(
            order=list(range(len(coordinates))),
            total_distance_mi=0.0,
            total_eta_min=0.0,
            leg_distances_mi=[None] * len(coordinates),
            leg_etas_min=[None] * len(coordinates),
            geometry=list(coordinates),
            source="degenerate",
        )

    order = greedy_order(coordinates, origin)
    ordered = [coordinates[idx] for idx in order]
    waypoints = [origin, *ordered] if origin is not None else ordered

    if len(waypoints) > settings.directions_max_waypoints:
        logger.warning(
            f"Route has {len(waypoints)} waypoints, above the provider limit of "
            f"{settings.directions_max_waypoints}. Using greedy order without metrics."
        )
        return _without_metrics(order, coordinates, "fallback")

    if client is None:
        client = get_directions_client()
    if client is None:
        return _without_metrics(order, coordinates, "fallback")

    logger.info(f"Requesting directions for {len(coordinates)} stops, fixed origin: {origin is not None}")
    try:
        result = client.route(waypoints)
    except Exception as exc:
        logger.warning(f"Directions request failed, using greedy order without metrics: {exc}")
        return _without_metrics(order, coordinates, "fallback")

    leg_distances: list[Optional[float]] = []
    leg_etas: list[Optional[float]] = []
    for position in range(len(order)):
        # With an origin, leg i arrives at stop i; otherwise the first stop has no incoming leg
        leg_index = position if origin is not None else position - 1
        if 0 <= leg_index < len(result.legs):
            leg = result.legs[leg_index]
            leg_distances.append(leg.distance_m * METERS_TO_MILES)
            leg_etas.append(leg.duration_s / 60)
        else:
            leg_distances.append(None)
            leg_etas.append(None)

    total_distance_mi = result.distance_m * METERS_TO_MILES
    total_eta_min = result.duration_s / 60
    logger.info(f"Route stats: {total_distance_mi:.2f} mi, {total_eta_min:.1f} min")

    return OptimizedRoute(
        order=order,
        total_distance_mi=total_distance_mi,
        total_eta_min=total_eta_min,
        leg_distances_mi=leg_distances,
        leg_etas_min=leg_etas,
        geometry=result.geometry or list(waypoints),
        source="provider",
    )
