"""Storage contract for routes, route stops and check-ins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional, Sequence

from ..errors import NotFound
from ..models.domain import CheckIn, Route, RouteStatus, RouteStopRecord


class RouteStore(ABC):
    """Contract for durable route storage backends.

    ``update_*`` methods take field changes as keyword arguments and return the
    updated record. They raise ``NotFound`` for unknown ids.
    """

    @abstractmethod
    def create_route(self, route: Route) -> Route:
        raise NotImplementedError

    @abstractmethod
    def get_route(self, route_id: str) -> Optional[Route]:
        raise NotImplementedError

    @abstractmethod
    def update_route(self, route_id: str, **changes: Any) -> Route:
        raise NotImplementedError

    @abstractmethod
    def delete_route(self, route_id: str) -> None:
        """Delete a route and all of its stops."""
        raise NotImplementedError

    @abstractmethod
    def list_routes(self, user_id: str, status: Optional[RouteStatus] = None) -> list[Route]:
        """Routes of ``user_id``, newest first."""
        raise NotImplementedError

    @abstractmethod
    def get_route_stops(self, route_id: str) -> list[RouteStopRecord]:
        """Stops of a route ordered by ``stop_index``."""
        raise NotImplementedError

    @abstractmethod
    def create_route_stops(self, records: Sequence[RouteStopRecord]) -> list[RouteStopRecord]:
        raise NotImplementedError

    @abstractmethod
    def update_route_stop(self, stop_id: str, **changes: Any) -> RouteStopRecord:
        raise NotImplementedError

    @abstractmethod
    def replace_route_stops(self, route_id: str, records: Sequence[RouteStopRecord]) -> list[RouteStopRecord]:
        """Replace every stop of ``route_id`` with ``records``."""
        raise NotImplementedError

    @abstractmethod
    def create_check_in(self, check_in: CheckIn) -> CheckIn:
        raise NotImplementedError

    @abstractmethod
    def update_check_in(self, check_in_id: str, **changes: Any) -> CheckIn:
        raise NotImplementedError

    @abstractmethod
    def get_check_in(self, check_in_id: str) -> Optional[CheckIn]:
        raise NotImplementedError

    @abstractmethod
    def get_check_ins_by_date(self, user_id: str, day: date) -> list[CheckIn]:
        """Check-ins of ``user_id`` on the UTC calendar day ``day``, oldest first."""
        raise NotImplementedError

    def get_active_route(self, user_id: str) -> Optional[Route]:
        routes = self.list_routes(user_id, status=RouteStatus.ACTIVE)
        return routes[0] if routes else None

    def require_route(self, route_id: str) -> Route:
        route = self.get_route(route_id)
        if route is None:
            raise NotFound(f"Route '{route_id}' not found.")
        return route
