from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from fieldroute.errors import NotFound
from fieldroute.models.domain import CheckIn, Coordinate, Route, RouteStatus, RouteStopRecord, new_id
from fieldroute.persistence.filesystem import FileRouteStore


def _route(user_id: str = "rep-1", **overrides) -> Route:
    values = dict(
        id=new_id(),
        user_id=user_id,
        total_distance_mi=12.5,
        total_eta_min=30.0,
        geometry=[Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)],
        nav_url="https://www.google.com/maps/dir/?api=1&waypoints=0.0,0.0&travelmode=driving",
    )
    values.update(overrides)
    return Route(**values)


def _stop(route_id: str, company_id: str, stop_index: int) -> RouteStopRecord:
    return RouteStopRecord(
        id=new_id(),
        route_id=route_id,
        company_id=company_id,
        name=f"Company {company_id}",
        stop_index=stop_index,
        lat=0.0,
        lng=float(stop_index),
    )


def test_route_round_trips_through_json(tmp_path: Path) -> None:
    store = FileRouteStore(root=tmp_path)
    route = store.create_route(_route())

    loaded = store.get_route(route.id)

    assert loaded == route
    assert (tmp_path / "routes" / f"{route.id}.json").exists()


def test_update_route_changes_fields(tmp_path: Path) -> None:
    store = FileRouteStore(root=tmp_path)
    route = store.create_route(_route())
    finished = datetime(2024, 5, 1, 17, 0, tzinfo=timezone.utc)

    updated = store.update_route(route.id, status=RouteStatus.COMPLETED, completed_at=finished)

    assert updated.status == RouteStatus.COMPLETED
    assert store.get_route(route.id).completed_at == finished
    with pytest.raises(NotFound):
        store.update_route("missing", status=RouteStatus.ACTIVE)


def test_stops_are_returned_in_stop_index_order(tmp_path: Path) -> None:
    store = FileRouteStore(root=tmp_path)
    route = store.create_route(_route())
    store.create_route_stops([_stop(route.id, "B", 1), _stop(route.id, "A", 0), _stop(route.id, "C", 2)])

    assert [stop.company_id for stop in store.get_route_stops(route.id)] == ["A", "B", "C"]


def test_update_and_replace_route_stops(tmp_path: Path) -> None:
    store = FileRouteStore(root=tmp_path)
    route = store.create_route(_route())
    first, second = store.create_route_stops([_stop(route.id, "A", 0), _stop(route.id, "B", 1)])

    done = store.update_route_stop(first.id, completed=True)
    assert done.completed
    assert store.get_route_stops(route.id)[0].completed

    store.replace_route_stops(route.id, [_stop(route.id, "C", 0)])
    assert [stop.company_id for stop in store.get_route_stops(route.id)] == ["C"]
    with pytest.raises(NotFound):
        store.update_route_stop(second.id, completed=True)


def test_delete_route_removes_stops(tmp_path: Path) -> None:
    store = FileRouteStore(root=tmp_path)
    route = store.create_route(_route())
    store.create_route_stops([_stop(route.id, "A", 0)])

    store.delete_route(route.id)

    assert store.get_route(route.id) is None
    assert store.get_route_stops(route.id) == []
    with pytest.raises(NotFound):
        store.delete_route(route.id)


def test_list_routes_newest_first_and_active_accessor(tmp_path: Path) -> None:
    store = FileRouteStore(root=tmp_path)
    now = datetime.now(timezone.utc)
    old = store.create_route(_route(created_at=now - timedelta(days=2), status=RouteStatus.ACTIVE))
    new = store.create_route(_route(created_at=now, status=RouteStatus.ACTIVE))
    store.create_route(_route(created_at=now - timedelta(days=1)))
    store.create_route(_route(user_id="rep-2", status=RouteStatus.ACTIVE))

    routes = store.list_routes("rep-1")

    assert len(routes) == 3
    assert routes[0].id == new.id
    assert routes[-1].id == old.id
    assert [r.id for r in store.list_routes("rep-1", RouteStatus.ACTIVE)] == [new.id, old.id]
    assert store.get_active_route("rep-1").id == new.id
    assert store.get_active_route("rep-3") is None


def test_check_ins_by_day(tmp_path: Path) -> None:
    store = FileRouteStore(root=tmp_path)
    morning = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    for offset, company_id in [(2, "B"), (0, "A")]:
        store.create_check_in(
            CheckIn(
                id=new_id(),
                user_id="rep-1",
                company_id=company_id,
                lat=0.0,
                lng=0.0,
                timestamp=morning + timedelta(hours=offset),
            )
        )
    store.create_check_in(
        CheckIn(id=new_id(), user_id="rep-1", company_id="C", lat=0.0, lng=0.0, timestamp=morning + timedelta(days=1))
    )

    check_ins = store.get_check_ins_by_date("rep-1", date(2024, 5, 1))

    assert [item.company_id for item in check_ins] == ["A", "B"]
    assert store.get_check_ins_by_date("rep-2", date(2024, 5, 1)) == []

    edited = store.update_check_in(check_ins[0].id, note="Met the buyer")
    assert store.get_check_in(edited.id).note == "Met the buyer"
    with pytest.raises(NotFound):
        store.update_check_in("missing", note="x")
