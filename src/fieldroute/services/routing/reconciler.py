"""Keep a route consistent after a stop is completed or added mid-route.

Completed stops always stay at the head of the itinerary in the order they
were completed relative to each other. Only the unfinished tail is sent back
to the planner, and the stored stop set is replaced in one write with
``stop_index`` renumbered from 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from ...data.companies_repository import resolve_companies
from ...errors import InvalidRequest, NotFound, RebuildFailed
from ...models.domain import (
    ANY_START,
    Company,
    Coordinate,
    FixedOrigin,
    Origin,
    Route,
    RouteStatus,
    RouteStopRecord,
    new_id,
    utcnow,
)
from ...persistence import RouteStore, get_route_store
from .models import PlannedItinerary
from .service import CompanyDirectory, build_navigation_url, plan_stops

Planner = Callable[..., PlannedItinerary]

REBUILD_FAILED_NOTICE = "Route update failed, kept current order."

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconcileOutcome:
    route: Route
    stops: list[RouteStopRecord]
    rebuilt: bool = False
    rebuild_failed: bool = False
    notice: Optional[str] = None
    completed_stop: Optional[RouteStopRecord] = None
    added_stop: Optional[RouteStopRecord] = None


def current_stop_index(stops: Sequence[RouteStopRecord]) -> int:
    """Index of the first uncompleted stop, or the last index when all are done."""
    for position, stop in enumerate(stops):
        if not stop.completed:
            return position
    return max(len(stops) - 1, 0)


def _partition(stops: Sequence[RouteStopRecord]) -> tuple[list[RouteStopRecord], list[RouteStopRecord]]:
    ordered = sorted(stops, key=lambda stop: stop.stop_index)
    completed = [stop for stop in ordered if stop.completed]
    remaining = [stop for stop in ordered if not stop.completed]
    return completed, remaining


def _reindex(stops: Sequence[RouteStopRecord]) -> list[RouteStopRecord]:
    return [replace(stop, stop_index=position) for position, stop in enumerate(stops)]


def _company_from_record(record: RouteStopRecord) -> Company:
    return Company(
        id=record.company_id,
        name=record.name,
        lat=record.lat,
        lng=record.lng,
        street=record.street,
        city=record.city,
        state=record.state,
        postal_code=record.postal_code,
    )


def _origin_for(position: Optional[Coordinate]) -> Origin:
    if position is None:
        return ANY_START
    return FixedOrigin(position.lat, position.lng)


def _rebuild_remaining(
    remaining: Sequence[RouteStopRecord],
    position: Optional[Coordinate],
    planner: Planner,
) -> tuple[list[RouteStopRecord], PlannedItinerary]:
    """Re-plan ``remaining`` and return its records in the new order.

    Stored coordinates are used for planning so a company that has since
    changed in the directory cannot drop out of an active route.

    Raises:
        RebuildFailed: if the planner raises for any reason, or could only
            produce its greedy fallback because directions were unavailable.
    """
    by_company = {record.company_id: record for record in remaining}
    snapshot = [_company_from_record(record) for record in remaining]

    def directory(company_ids: Sequence[str]) -> list[Company]:
        wanted = set(company_ids)
        return [company for company in snapshot if company.id in wanted]

    try:
        itinerary = planner(
            [record.company_id for record in remaining],
            _origin_for(position),
            directory=directory,
            min_stops=1,
        )
    except Exception as exc:
        raise RebuildFailed(f"{REBUILD_FAILED_NOTICE} {exc}") from exc
    if itinerary.source == "fallback":
        raise RebuildFailed(f"{REBUILD_FAILED_NOTICE} Directions were unavailable for {len(remaining)} stops.")

    reordered: list[RouteStopRecord] = []
    placed: set[str] = set()
    for stop in itinerary.stops:
        record = by_company.get(stop.company_id)
        if record is None or stop.company_id in placed:
            continue
        placed.add(stop.company_id)
        reordered.append(
            replace(
                record,
                distance_from_prev_mi=stop.distance_from_prev_mi,
                eta_from_prev_min=stop.eta_from_prev_min,
            )
        )
    # Never lose a stop the planner left out
    reordered.extend(record for record in remaining if record.company_id not in placed)
    return reordered, itinerary


def _apply(
    route: Route,
    completed: list[RouteStopRecord],
    remaining: list[RouteStopRecord],
    position: Optional[Coordinate],
    *,
    store: RouteStore,
    planner: Planner,
) -> ReconcileOutcome:
    rebuilt = False
    failure: Optional[RebuildFailed] = None
    route_changes: dict = {}
    try:
        remaining, itinerary = _rebuild_remaining(remaining, position, planner)
    except RebuildFailed as exc:
        failure = exc
        logger.warning(f"Rebuild of route {route.id} failed, keeping current order: {exc.__cause__ or exc}")
        route_changes["nav_url"] = build_navigation_url(remaining)
    else:
        rebuilt = True
        route_changes.update(
            total_distance_mi=itinerary.total_distance_mi,
            total_eta_min=itinerary.total_eta_min,
            geometry=itinerary.geometry,
            nav_url=itinerary.nav_url,
        )

    merged = _reindex([*completed, *remaining])
    merged = store.replace_route_stops(route.id, merged)
    route = store.update_route(route.id, current_stop_index=current_stop_index(merged), **route_changes)
    return ReconcileOutcome(
        route=route,
        stops=merged,
        rebuilt=rebuilt,
        rebuild_failed=failure is not None,
        notice=REBUILD_FAILED_NOTICE if failure is not None else None,
    )


def complete_stop(
    route_id: str,
    company_id: str,
    position: Optional[Coordinate] = None,
    *,
    store: Optional[RouteStore] = None,
    planner: Optional[Planner] = None,
) -> ReconcileOutcome:
    """Mark the first uncompleted stop for ``company_id`` done and re-plan the rest.

    When that was the last open stop the route is completed and the planner is
    not called. Repeating the call on a completed route returns its stored
    state unchanged.

    Raises:
        NotFound: if the route does not exist or has no open stop for the company.
    """
    store = store or get_route_store()
    planner = planner or plan_stops
    route = store.require_route(route_id)
    stops = sorted(store.get_route_stops(route_id), key=lambda stop: stop.stop_index)
    if route.status == RouteStatus.COMPLETED:
        visited = next((stop for stop in stops if stop.company_id == company_id), None)
        if visited is None:
            raise NotFound(f"Route '{route_id}' has no stop for company '{company_id}'.")
        logger.info(f"Route {route_id} is already completed, nothing to reconcile")
        return ReconcileOutcome(route=route, stops=stops, completed_stop=visited)

    target = next((stop for stop in stops if stop.company_id == company_id and not stop.completed), None)
    if target is None:
        raise NotFound(f"Route '{route_id}' has no open stop for company '{company_id}'.")

    now = utcnow()
    done = replace(target, completed=True, completed_at=now)
    stops = [done if stop.id == target.id else stop for stop in stops]
    completed, remaining = _partition(stops)
    logger.info(f"Completed stop {done.stop_index} ({company_id}) on route {route_id}, {len(remaining)} remaining")

    if not remaining:
        store.update_route_stop(done.id, completed=True, completed_at=now)
        route = store.update_route(
            route_id,
            status=RouteStatus.COMPLETED,
            completed_at=now,
            current_stop_index=current_stop_index(stops),
        )
        logger.info(f"Route {route_id} completed")
        return ReconcileOutcome(route=route, stops=store.get_route_stops(route_id), completed_stop=done)

    outcome = _apply(route, completed, remaining, position, store=store, planner=planner)
    outcome.completed_stop = next(stop for stop in outcome.stops if stop.id == done.id)
    return outcome


def add_stop(
    route_id: str,
    company_id: str,
    position: Optional[Coordinate] = None,
    *,
    store: Optional[RouteStore] = None,
    planner: Optional[Planner] = None,
    directory: Optional[CompanyDirectory] = None,
) -> ReconcileOutcome:
    """Add ``company_id`` to an unfinished route and re-plan the open stops.

    If re-planning fails the new stop is appended after the current open stops.

    Raises:
        NotFound: if the route or the company does not exist.
        InvalidRequest: if the route is completed, the company has no
            coordinates, or it is already an open stop on the route.
    """
    store = store or get_route_store()
    planner = planner or plan_stops
    directory = directory or resolve_companies
    route = store.require_route(route_id)
    if route.status == RouteStatus.COMPLETED:
        raise InvalidRequest(f"Cannot add stops to completed route '{route_id}'.")

    matches = directory([company_id])
    if not matches:
        raise NotFound(f"Company '{company_id}' not found.")
    company = matches[0]
    if not company.has_coordinates:
        raise InvalidRequest(f"Company '{company_id}' has no coordinates and cannot be routed.")

    completed, remaining = _partition(store.get_route_stops(route_id))
    if any(stop.company_id == company_id for stop in remaining):
        raise InvalidRequest(f"Company '{company_id}' is already an open stop on route '{route_id}'.")

    added = RouteStopRecord(
        id=new_id(),
        route_id=route_id,
        company_id=company.id,
        name=company.name,
        stop_index=len(completed) + len(remaining),
        lat=company.lat,
        lng=company.lng,
        street=company.street,
        city=company.city,
        state=company.state,
        postal_code=company.postal_code,
    )
    logger.info(f"Adding company {company_id} to route {route_id}")

    outcome = _apply(route, completed, [*remaining, added], position, store=store, planner=planner)
    outcome.added_stop = next(stop for stop in outcome.stops if stop.id == added.id)
    return outcome
