"""Supabase persistence for routes, route stops and check-ins."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Sequence

from supabase import Client

from ..errors import NotFound
from ..models.domain import CheckIn, Route, RouteStatus, RouteStopRecord
from .base import RouteStore

ROUTES_TABLE = "routes"
ROUTE_STOPS_TABLE = "route_stops"
CHECK_INS_TABLE = "check_ins"

logger = logging.getLogger(__name__)


class SupabaseRouteStore(RouteStore):
    """Route storage on the Supabase tables ``routes``, ``route_stops`` and ``check_ins``.

    Errors from the Supabase client propagate to the caller; a failed write is
    never reported as success.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    def _first(self, table: str, column: str, value: str) -> Optional[dict[str, Any]]:
        response = self.client.table(table).select("*").eq(column, value).limit(1).execute()
        rows = response.data or []
        return rows[0] if rows else None

    # Routes

    def create_route(self, route: Route) -> Route:
        self.client.table(ROUTES_TABLE).insert(route.to_row()).execute()
        return route

    def get_route(self, route_id: str) -> Optional[Route]:
        row = self._first(ROUTES_TABLE, "id", route_id)
        return Route.from_row(row) if row else None

    def update_route(self, route_id: str, **changes: Any) -> Route:
        route = replace(self.require_route(route_id), **changes)
        row = route.to_row()
        row.pop("id")
        self.client.table(ROUTES_TABLE).update(row).eq("id", route_id).execute()
        return route

    def delete_route(self, route_id: str) -> None:
        self.require_route(route_id)
        self.client.table(ROUTE_STOPS_TABLE).delete().eq("route_id", route_id).execute()
        self.client.table(ROUTES_TABLE).delete().eq("id", route_id).execute()
        logger.info(f"Deleted route {route_id} and its stops")

    def list_routes(self, user_id: str, status: Optional[RouteStatus] = None) -> list[Route]:
        query = self.client.table(ROUTES_TABLE).select("*").eq("user_id", user_id)
        if status is not None:
            query = query.eq("status", status.value)
        response = query.order("created_at", desc=True).execute()
        return [Route.from_row(row) for row in (response.data or [])]

    # Route stops

    def get_route_stops(self, route_id: str) -> list[RouteStopRecord]:
        response = (
            self.client.table(ROUTE_STOPS_TABLE)
            .select("*")
            .eq("route_id", route_id)
            .order("stop_index")
            .execute()
        )
        return [RouteStopRecord.from_row(row) for row in (response.data or [])]

    def create_route_stops(self, records: Sequence[RouteStopRecord]) -> list[RouteStopRecord]:
        if records:
            self.client.table(ROUTE_STOPS_TABLE).insert([record.to_row() for record in records]).execute()
        return list(records)

    def update_route_stop(self, stop_id: str, **changes: Any) -> RouteStopRecord:
        row = self._first(ROUTE_STOPS_TABLE, "id", stop_id)
        if row is None:
            raise NotFound(f"Route stop '{stop_id}' not found.")
        record = replace(RouteStopRecord.from_row(row), **changes)
        updated = record.to_row()
        updated.pop("id")
        self.client.table(ROUTE_STOPS_TABLE).update(updated).eq("id", stop_id).execute()
        return record

    def replace_route_stops(self, route_id: str, records: Sequence[RouteStopRecord]) -> list[RouteStopRecord]:
        # Delete first so the (route_id, stop_index) pairs can be reused
        self.client.table(ROUTE_STOPS_TABLE).delete().eq("route_id", route_id).execute()
        return self.create_route_stops(records)

    # Check-ins

    def create_check_in(self, check_in: CheckIn) -> CheckIn:
        self.client.table(CHECK_INS_TABLE).insert(check_in.to_row()).execute()
        return check_in

    def get_check_in(self, check_in_id: str) -> Optional[CheckIn]:
        row = self._first(CHECK_INS_TABLE, "id", check_in_id)
        return CheckIn.from_row(row) if row else None

    def update_check_in(self, check_in_id: str, **changes: Any) -> CheckIn:
        current = self.get_check_in(check_in_id)
        if current is None:
            raise NotFound(f"Check-in '{check_in_id}' not found.")
        check_in = replace(current, **changes)
        row = check_in.to_row()
        row.pop("id")
        self.client.table(CHECK_INS_TABLE).update(row).eq("id", check_in_id).execute()
        return check_in

    def get_check_ins_by_date(self, user_id: str, day: date) -> list[CheckIn]:
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        response = (
            self.client.table(CHECK_INS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .gte("timestamp", start.isoformat())
            .lt("timestamp", end.isoformat())
            .order("timestamp")
            .execute()
        )
        return [CheckIn.from_row(row) for row in (response.data or [])]
