"""JSON file storage for routes and check-ins under the data root."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Optional, Sequence

from ..config import settings
from ..errors import NotFound
from ..models.domain import CheckIn, Route, RouteStatus, RouteStopRecord
from .base import RouteStore

logger = logging.getLogger(__name__)


class FileRouteStore(RouteStore):
    """Stores each route (with its stops) and each check-in as one JSON document.

    Layout::

        <root>/routes/<route_id>.json    {"route": {...}, "stops": [...]}
        <root>/checkins/<check_in_id>.json
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.routes_root = self.root / "routes"
        self.checkins_root = self.root / "checkins"
        self.routes_root.mkdir(parents=True, exist_ok=True)
        self.checkins_root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
        tmp_path.replace(path)

    def read_json(self, path: Path) -> Optional[dict[str, Any]]:
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def _route_path(self, route_id: str) -> Path:
        return self.routes_root / f"{route_id}.json"

    def _checkin_path(self, check_in_id: str) -> Path:
        return self.checkins_root / f"{check_in_id}.json"

    def _load_document(self, route_id: str) -> dict[str, Any]:
        document = self.read_json(self._route_path(route_id))
        if document is None:
            raise NotFound(f"Route '{route_id}' not found.")
        return document

    # Routes

    def create_route(self, route: Route) -> Route:
        with self._lock:
            self.write_json(self._route_path(route.id), {"route": route.to_row(), "stops": []})
        return route

    def get_route(self, route_id: str) -> Optional[Route]:
        document = self.read_json(self._route_path(route_id))
        return Route.from_row(document["route"]) if document else None

    def update_route(self, route_id: str, **changes: Any) -> Route:
        with self._lock:
            document = self._load_document(route_id)
            route = replace(Route.from_row(document["route"]), **changes)
            document["route"] = route.to_row()
            self.write_json(self._route_path(route_id), document)
        return route

    def delete_route(self, route_id: str) -> None:
        with self._lock:
            path = self._route_path(route_id)
            if not path.exists():
                raise NotFound(f"Route '{route_id}' not found.")
            path.unlink()
        logger.info(f"Deleted route {route_id}")

    def list_routes(self, user_id: str, status: Optional[RouteStatus] = None) -> list[Route]:
        routes: list[Route] = []
        for path in self.routes_root.glob("*.json"):
            document = self.read_json(path)
            if not document:
                continue
            route = Route.from_row(document["route"])
            if route.user_id != user_id:
                continue
            if status is not None and route.status != status:
                continue
            routes.append(route)
        return sorted(routes, key=lambda item: item.created_at, reverse=True)

    # Route stops

    def get_route_stops(self, route_id: str) -> list[RouteStopRecord]:
        document = self.read_json(self._route_path(route_id))
        if not document:
            return []
        stops = [RouteStopRecord.from_row(row) for row in document.get("stops", [])]
        return sorted(stops, key=lambda stop: stop.stop_index)

    def create_route_stops(self, records: Sequence[RouteStopRecord]) -> list[RouteStopRecord]:
        by_route: dict[str, list[RouteStopRecord]] = {}
        for record in records:
            by_route.setdefault(record.route_id, []).append(record)
        with self._lock:
            for route_id, route_records in by_route.items():
                document = self._load_document(route_id)
                document["stops"].extend(record.to_row() for record in route_records)
                self.write_json(self._route_path(route_id), document)
        return list(records)

    def update_route_stop(self, stop_id: str, **changes: Any) -> RouteStopRecord:
        with self._lock:
            for path in self.routes_root.glob("*.json"):
                document = self.read_json(path)
                if not document:
                    continue
                for position, row in enumerate(document.get("stops", [])):
                    if row["id"] != stop_id:
                        continue
                    record = replace(RouteStopRecord.from_row(row), **changes)
                    document["stops"][position] = record.to_row()
                    self.write_json(path, document)
                    return record
        raise NotFound(f"Route stop '{stop_id}' not found.")

    def replace_route_stops(self, route_id: str, records: Sequence[RouteStopRecord]) -> list[RouteStopRecord]:
        with self._lock:
            document = self._load_document(route_id)
            document["stops"] = [record.to_row() for record in records]
            self.write_json(self._route_path(route_id), document)
        return list(records)

    # Check-ins

    def create_check_in(self, check_in: CheckIn) -> CheckIn:
        with self._lock:
            self.write_json(self._checkin_path(check_in.id), check_in.to_row())
        return check_in

    def update_check_in(self, check_in_id: str, **changes: Any) -> CheckIn:
        with self._lock:
            row = self.read_json(self._checkin_path(check_in_id))
            if row is None:
                raise NotFound(f"Check-in '{check_in_id}' not found.")
            check_in = replace(CheckIn.from_row(row), **changes)
            self.write_json(self._checkin_path(check_in_id), check_in.to_row())
        return check_in

    def get_check_in(self, check_in_id: str) -> Optional[CheckIn]:
        row = self.read_json(self._checkin_path(check_in_id))
        return CheckIn.from_row(row) if row else None

    def get_check_ins_by_date(self, user_id: str, day: date) -> list[CheckIn]:
        check_ins: list[CheckIn] = []
        for path in self.checkins_root.glob("*.json"):
            row = self.read_json(path)
            if not row:
                continue
            check_in = CheckIn.from_row(row)
            if check_in.user_id == user_id and check_in.timestamp.date() == day:
                check_ins.append(check_in)
        return sorted(check_ins, key=lambda item: item.timestamp)
