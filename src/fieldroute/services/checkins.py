"""Check-in recording, CRM logging and daily visit summaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..data.companies_repository import resolve_companies
from ..errors import CrmLoggingFailed, NotFound
from ..models.domain import CheckIn, Coordinate, new_id, utcnow
from ..persistence import RouteStore, get_route_store
from .crm import HubSpotLogger
from .geospatial import distance_miles
from .routing.reconciler import Planner, ReconcileOutcome, complete_stop
from .routing.service import CompanyDirectory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckInResult:
    check_in: CheckIn
    company_name: str
    reconcile: Optional[ReconcileOutcome] = None


@dataclass(slots=True)
class DailySummary:
    day: date
    total_visits: int
    total_miles: float
    check_ins: list[tuple[CheckIn, str]]


def record_check_in(
    user_id: str,
    company_id: str,
    position: Coordinate,
    note: Optional[str] = None,
    *,
    timestamp: Optional[datetime] = None,
    store: Optional[RouteStore] = None,
    planner: Optional[Planner] = None,
    directory: Optional[CompanyDirectory] = None,
) -> CheckInResult:
    """Store a visit and, when the company is an open stop on the user's
    active route, complete that stop and re-plan the rest of the route.

    Raises:
        NotFound: if the company does not exist.
    """
    store = store or get_route_store()
    directory = directory or resolve_companies
    companies = directory([company_id])
    if not companies:
        raise NotFound(f"Company '{company_id}' not found.")
    company = companies[0]

    check_in = store.create_check_in(
        CheckIn(
            id=new_id(),
            user_id=user_id,
            company_id=company_id,
            lat=position.lat,
            lng=position.lng,
            note=note,
            timestamp=timestamp or utcnow(),
        )
    )
    logger.info(f"Recorded check-in {check_in.id} for user {user_id} at company {company_id}")

    result = CheckInResult(check_in=check_in, company_name=company.name)
    route = store.get_active_route(user_id)
    if route is None:
        return result

    open_stop = any(
        stop.company_id == company_id and not stop.completed for stop in store.get_route_stops(route.id)
    )
    if open_stop:
        result.reconcile = complete_stop(route.id, company_id, position, store=store, planner=planner)
    return result


def update_check_in_note(
    check_in_id: str,
    user_id: str,
    note: Optional[str],
    *,
    store: Optional[RouteStore] = None,
) -> CheckIn:
    store = store or get_route_store()
    check_in = store.get_check_in(check_in_id)
    if check_in is None or check_in.user_id != user_id:
        raise NotFound(f"Check-in '{check_in_id}' not found.")
    return store.update_check_in(check_in_id, note=note)


def log_check_in_to_crm(
    check_in: CheckIn,
    company_name: str,
    *,
    store: Optional[RouteStore] = None,
    crm: Optional[HubSpotLogger] = None,
) -> Optional[str]:
    """Send a check-in to the CRM after the response has been returned.

    Failures are logged and otherwise ignored; the check-in stays recorded.
    """
    store = store or get_route_store()
    crm = crm or HubSpotLogger()
    try:
        record_id = crm.log_visit(
            check_in.company_id,
            company_name,
            check_in.user_id,
            check_in.lat,
            check_in.lng,
            check_in.note,
            check_in.timestamp,
        )
    except CrmLoggingFailed as exc:
        logger.warning(f"CRM logging failed for check-in {check_in.id}: {exc}")
        return None
    if record_id:
        store.update_check_in(check_in.id, crm_record_id=record_id)
    return record_id


def daily_summary(
    user_id: str,
    day: date,
    *,
    store: Optional[RouteStore] = None,
    directory: Optional[CompanyDirectory] = None,
) -> DailySummary:
    """Visits of one day with the straight-line mileage between consecutive check-ins."""
    store = store or get_route_store()
    directory = directory or resolve_companies
    check_ins = store.get_check_ins_by_date(user_id, day)

    total_miles = 0.0
    for previous, current in zip(check_ins, check_ins[1:]):
        total_miles += distance_miles(previous, current)

    names = {company.id: company.name for company in directory([item.company_id for item in check_ins])}
    return DailySummary(
        day=day,
        total_visits=len(check_ins),
        total_miles=round(total_miles, 1),
        check_ins=[(item, names.get(item.company_id, "Unknown")) for item in check_ins],
    )
