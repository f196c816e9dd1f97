"""Check-in and daily summary endpoints."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from ...models.domain import Coordinate
from ...persistence import RouteStore
from ...schemas.checkins import (
    CheckInModel,
    CheckInRequest,
    CheckInResponse,
    CheckInUpdate,
    SummaryResponse,
)
from ...schemas.routing import RouteModel
from ...services.checkins import (
    daily_summary,
    log_check_in_to_crm,
    record_check_in,
    update_check_in_note,
)
from ..dependencies import get_store, get_user_id, translate_errors

router = APIRouter(tags=["checkins"])


@router.post("/checkins", response_model=CheckInResponse, status_code=status.HTTP_201_CREATED)
def create_check_in(
    payload: CheckInRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> CheckInResponse:
    """Record a visit, complete the matching stop on the active route and
    queue the CRM write for after the response."""
    with translate_errors("record check-in"):
        result = record_check_in(
            user_id,
            payload.company_id,
            Coordinate(payload.lat, payload.lng),
            payload.note,
            store=store,
        )

    background_tasks.add_task(log_check_in_to_crm, result.check_in, result.company_name, store=store)

    response = CheckInResponse(check_in=CheckInModel.from_check_in(result.check_in, result.company_name))
    if result.reconcile is not None:
        response.route = RouteModel.from_route(result.reconcile.route, result.reconcile.stops)
        response.stop_completed = True
        response.rebuild_failed = result.reconcile.rebuild_failed
        response.notice = result.reconcile.notice
    return response


@router.patch("/checkins/{check_in_id}", response_model=CheckInModel)
def edit_check_in(
    check_in_id: str,
    payload: CheckInUpdate,
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> CheckInModel:
    with translate_errors("update check-in"):
        check_in = update_check_in_note(check_in_id, user_id, payload.note, store=store)
    return CheckInModel.from_check_in(check_in)


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    day: Optional[str] = Query(default=None, alias="date", description="YYYY-MM-DD, defaults to today (UTC)."),
    user_id: str = Depends(get_user_id),
    store: RouteStore = Depends(get_store),
) -> SummaryResponse:
    if day:
        try:
            summary_day = date.fromisoformat(day)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid date '{day}', expected YYYY-MM-DD.",
            ) from exc
    else:
        summary_day = datetime.now(timezone.utc).date()

    with translate_errors("build summary"):
        summary = daily_summary(user_id, summary_day, store=store)
    return SummaryResponse(
        date=summary.day,
        total_visits=summary.total_visits,
        total_miles=summary.total_miles,
        check_ins=[CheckInModel.from_check_in(item, name) for item, name in summary.check_ins],
    )
