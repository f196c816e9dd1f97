"""Route building: resolve companies, order them and persist the itinerary."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ...data.companies_repository import resolve_companies
from ...errors import InvalidRequest, NotFound
from ...models.domain import (
    Company,
    Coordinate,
    Origin,
    OrderedStop,
    Route,
    RouteStatus,
    RouteStopRecord,
    Stop,
    new_id,
    origin_coordinate,
    utcnow,
)
from ...persistence import RouteStore, get_route_store
from ..geospatial import HasLocation
from .directions_client import DirectionsClient
from .models import PlannedItinerary
from .optimizer import optimize_route

NAVIGATION_BASE_URL = "https://www.google.com/maps/dir/"

CompanyDirectory = Callable[[Sequence[str]], list[Company]]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RouteSnapshot:
    """A route together with its stops ordered by ``stop_index``."""

    route: Route
    stops: list[RouteStopRecord]


@dataclass(slots=True)
class BuildRouteResult:
    route: Route
    stops: list[RouteStopRecord]
    itinerary: PlannedItinerary

    @property
    def route_id(self) -> str:
        return self.route.id


def build_navigation_url(points: Sequence[HasLocation]) -> str:
    """Turn-by-turn link through ``points`` in visiting order."""
    waypoints = "|".join(f"{point.lat},{point.lng}" for point in points)
    return f"{NAVIGATION_BASE_URL}?api=1&waypoints={waypoints}&travelmode=driving"


def _resolve_stops(company_ids: Sequence[str], directory: CompanyDirectory) -> tuple[list[Stop], list[str]]:
    companies = {company.id: company for company in directory(company_ids)}
    stops: list[Stop] = []
    dropped: list[str] = []
    seen: set[str] = set()
    for company_id in company_ids:
        if company_id in seen:
            continue
        seen.add(company_id)
        company = companies.get(company_id)
        if company is None or not company.has_coordinates:
            dropped.append(company_id)
            continue
        stops.append(Stop.from_company(company))
    return stops, dropped


def plan_stops(
    company_ids: Sequence[str],
    origin: Origin,
    *,
    directory: Optional[CompanyDirectory] = None,
    min_stops: int = 2,
    client: Optional[DirectionsClient] = None,
) -> PlannedItinerary:
    """Resolve ``company_ids`` and order them into an itinerary.

    Unknown companies and companies without coordinates are dropped silently;
    the request only fails when fewer than ``min_stops`` remain.

    Raises:
        InvalidRequest: if fewer than ``min_stops`` companies can be placed.
    """
    directory = directory or resolve_companies
    stops, dropped = _resolve_stops(company_ids, directory)
    if dropped:
        logger.info(f"Dropped {len(dropped)} unresolvable companies from route request: {dropped}")
    if len(stops) < min_stops:
        raise InvalidRequest(
            f"At least {min_stops} companies with coordinates are required to build a route, "
            f"got {len(stops)}."
        )

    coordinates = [Coordinate(stop.lat, stop.lng) for stop in stops]
    optimized = optimize_route(coordinates, origin=origin_coordinate(origin), client=client)

    ordered_stops = [
        OrderedStop.from_stop(
            stops[idx],
            optimized.leg_distances_mi[position],
            optimized.leg_etas_min[position],
        )
        for position, idx in enumerate(optimized.order)
    ]

    return PlannedItinerary(
        stops=ordered_stops,
        total_distance_mi=optimized.total_distance_mi,
        total_eta_min=optimized.total_eta_min,
        geometry=optimized.geometry,
        nav_url=build_navigation_url(ordered_stops),
        source=optimized.source,
        dropped_company_ids=dropped,
    )


def build_route(
    user_id: str,
    company_ids: Sequence[str],
    origin: Origin,
    *,
    store: Optional[RouteStore] = None,
    directory: Optional[CompanyDirectory] = None,
    client: Optional[DirectionsClient] = None,
) -> BuildRouteResult:
    """Plan an itinerary and persist it as a new route in ``planning`` status."""
    store = store or get_route_store()
    itinerary = plan_stops(company_ids, origin, directory=directory, client=client)

    route = Route(
        id=new_id(),
        user_id=user_id,
        total_distance_mi=itinerary.total_distance_mi,
        total_eta_min=itinerary.total_eta_min,
        current_stop_index=0,
        status=RouteStatus.PLANNING,
        nav_url=itinerary.nav_url,
        geometry=itinerary.geometry,
    )
    records = [
        RouteStopRecord.from_ordered_stop(route.id, position, stop)
        for position, stop in enumerate(itinerary.stops)
    ]

    route = store.create_route(route)
    try:
        records = store.create_route_stops(records)
    except Exception:
        # A route without its stops is unusable; remove it before propagating
        logger.exception(f"Failed to store stops for route {route.id}, removing route")
        store.delete_route(route.id)
        raise

    logger.info(
        f"Built route {route.id} for user {user_id}: {len(records)} stops, source={itinerary.source}"
    )
    return BuildRouteResult(route=route, stops=records, itinerary=itinerary)


def load_route(
    route_id: str,
    user_id: Optional[str] = None,
    *,
    store: Optional[RouteStore] = None,
) -> RouteSnapshot:
    """Fetch a route and its stops.

    Raises:
        NotFound: if the route does not exist or belongs to another user.
    """
    store = store or get_route_store()
    if user_id is None:
        route = store.require_route(route_id)
    else:
        route = get_owned_route(route_id, user_id, store=store)
    return RouteSnapshot(route=route, stops=store.get_route_stops(route_id))


def get_owned_route(route_id: str, user_id: str, *, store: RouteStore) -> Route:
    """Fetch a route that belongs to ``user_id``.

    Routes of other users are reported as missing rather than forbidden.
    """
    route = store.get_route(route_id)
    if route is None or route.user_id != user_id:
        raise NotFound(f"Route '{route_id}' not found.")
    return route


def activate_route(route_id: str, user_id: str, *, store: Optional[RouteStore] = None) -> Route:
    """Start a route. Any other active route of the user is completed first."""
    store = store or get_route_store()
    route = get_owned_route(route_id, user_id, store=store)
    if route.status == RouteStatus.COMPLETED:
        raise InvalidRequest(f"Route '{route_id}' is already completed.")
    if route.status == RouteStatus.ACTIVE:
        return route

    for other in store.list_routes(user_id, status=RouteStatus.ACTIVE):
        if other.id != route_id:
            store.update_route(other.id, status=RouteStatus.COMPLETED, completed_at=utcnow())
            logger.info(f"Completed route {other.id} because route {route_id} was activated")

    route = store.update_route(route_id, status=RouteStatus.ACTIVE)
    logger.info(f"Activated route {route_id} for user {user_id}")
    return route


def set_route_status(
    route_id: str,
    user_id: str,
    status: RouteStatus,
    *,
    store: Optional[RouteStore] = None,
) -> Route:
    """Move a route forward through planning, active and completed."""
    store = store or get_route_store()
    route = get_owned_route(route_id, user_id, store=store)
    if status == route.status:
        return route
    if status == RouteStatus.ACTIVE:
        return activate_route(route_id, user_id, store=store)
    if status == RouteStatus.COMPLETED:
        route = store.update_route(route_id, status=RouteStatus.COMPLETED, completed_at=utcnow())
        logger.info(f"Route {route_id} ended by user {user_id}")
        return route
    raise InvalidRequest(f"Route '{route_id}' cannot move from {route.status.value} back to {status.value}.")


def delete_route(route_id: str, user_id: str, *, store: Optional[RouteStore] = None) -> None:
    store = store or get_route_store()
    get_owned_route(route_id, user_id, store=store)
    store.delete_route(route_id)


def route_history(
    user_id: str,
    status: Optional[RouteStatus] = None,
    *,
    store: Optional[RouteStore] = None,
) -> list[RouteSnapshot]:
    store = store or get_route_store()
    return [
        RouteSnapshot(route=route, stops=store.get_route_stops(route.id))
        for route in store.list_routes(user_id, status=status)
    ]
