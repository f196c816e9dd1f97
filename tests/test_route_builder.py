import pytest

from conftest import FakeDirections, directory
from fieldroute.errors import InvalidRequest
from fieldroute.models.domain import ANY_START, Coordinate, FixedOrigin, RouteStatus
from fieldroute.services.routing.service import (
    activate_route,
    build_navigation_url,
    build_route,
    load_route,
    plan_stops,
    route_history,
    set_route_status,
)


def test_plan_stops_orders_by_proximity_to_origin() -> None:
    itinerary = plan_stops(["C", "A", "B"], FixedOrigin(0.0, -1.0), directory=directory, client=FakeDirections())

    assert [stop.company_id for stop in itinerary.stops] == ["A", "B", "C"]
    assert itinerary.stops[0].name == "Acme Supply"
    assert itinerary.stops[0].street == "1 Main St"
    assert itinerary.total_distance_mi > 0
    assert all(stop.distance_from_prev_mi is not None for stop in itinerary.stops)
    assert itinerary.nav_url == (
        "https://www.google.com/maps/dir/?api=1&waypoints=0.0,0.0|0.0,1.0|0.0,2.0&travelmode=driving"
    )


def test_plan_stops_drops_unknown_and_ungeocoded_companies() -> None:
    itinerary = plan_stops(["A", "N", "missing", "B"], ANY_START, directory=directory, client=FakeDirections())

    assert [stop.company_id for stop in itinerary.stops] == ["A", "B"]
    assert itinerary.dropped_company_ids == ["N", "missing"]
    assert itinerary.stops[0].distance_from_prev_mi is None


def test_plan_stops_requires_two_resolvable_companies() -> None:
    with pytest.raises(InvalidRequest):
        plan_stops(["A", "N"], ANY_START, directory=directory)


def test_build_route_rejects_without_creating_route(store) -> None:
    with pytest.raises(InvalidRequest):
        build_route("rep-1", ["A", "N"], ANY_START, store=store, directory=directory)

    assert store.list_routes("rep-1") == []


def test_build_route_persists_route_and_stops(store, directions) -> None:
    result = build_route("rep-1", ["A", "B", "C"], FixedOrigin(0.0, -1.0), store=store, directory=directory)

    route = store.get_route(result.route_id)
    assert route.status == RouteStatus.PLANNING
    assert route.current_stop_index == 0
    assert route.total_distance_mi == pytest.approx(result.itinerary.total_distance_mi)
    assert route.nav_url == result.itinerary.nav_url
    assert route.geometry

    stops = store.get_route_stops(result.route_id)
    assert [stop.company_id for stop in stops] == ["A", "B", "C"]
    assert [stop.stop_index for stop in stops] == [0, 1, 2]
    assert not any(stop.completed for stop in stops)
    assert len(directions.calls) == 1


def test_build_route_without_provider_still_persists(store) -> None:
    result = build_route("rep-1", ["B", "A"], ANY_START, store=store, directory=directory)

    assert result.itinerary.source == "fallback"
    assert result.route.total_distance_mi is None
    assert [stop.company_id for stop in result.stops] == ["B", "A"]
    assert load_route(result.route_id, store=store).route.id == result.route_id


def test_activating_a_route_completes_the_previous_active_route(store) -> None:
    first = build_route("rep-1", ["A", "B"], ANY_START, store=store, directory=directory).route
    second = build_route("rep-1", ["C", "D"], ANY_START, store=store, directory=directory).route

    activate_route(first.id, "rep-1", store=store)
    activate_route(second.id, "rep-1", store=store)

    assert store.get_route(first.id).status == RouteStatus.COMPLETED
    assert store.get_route(first.id).completed_at is not None
    assert store.get_active_route("rep-1").id == second.id


def test_completed_route_cannot_be_reopened(store) -> None:
    route = build_route("rep-1", ["A", "B"], ANY_START, store=store, directory=directory).route
    set_route_status(route.id, "rep-1", RouteStatus.COMPLETED, store=store)

    with pytest.raises(InvalidRequest):
        set_route_status(route.id, "rep-1", RouteStatus.ACTIVE, store=store)


def test_route_history_filters_by_status(store) -> None:
    planned = build_route("rep-1", ["A", "B"], ANY_START, store=store, directory=directory).route
    done = build_route("rep-1", ["C", "D"], ANY_START, store=store, directory=directory).route
    set_route_status(done.id, "rep-1", RouteStatus.COMPLETED, store=store)

    assert [s.route.id for s in route_history("rep-1", RouteStatus.COMPLETED, store=store)] == [done.id]
    assert {s.route.id for s in route_history("rep-1", store=store)} == {planned.id, done.id}
    assert route_history("rep-2", store=store) == []


def test_navigation_url_accepts_any_located_points() -> None:
    url = build_navigation_url([Coordinate(1.5, -2.25)])

    assert url == "https://www.google.com/maps/dir/?api=1&waypoints=1.5,-2.25&travelmode=driving"
