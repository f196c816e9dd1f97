import pytest
from fastapi.testclient import TestClient

from fieldroute.api.dependencies import get_store
from fieldroute.main import create_app

HEADERS = {"X-User-Id": "rep-1"}


@pytest.fixture
def api_client(store) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


def _build(api_client: TestClient, company_ids, origin="gps") -> dict:
    response = api_client.post("/api/route", json={"company_ids": company_ids, "origin": origin}, headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/api/health").json() == {"status": "ok"}


def test_requests_need_a_user(api_client: TestClient) -> None:
    response = api_client.post("/api/route", json={"company_ids": ["A", "B"]})

    assert response.status_code == 401


def test_companies_radius_search(api_client: TestClient) -> None:
    response = api_client.get("/api/companies", params={"lat": 0.0, "lng": -0.5, "radius_mi": 110})

    assert response.status_code == 200
    payload = response.json()
    assert [company["id"] for company in payload["companies"]] == ["A", "B"]
    assert payload["companies"][0]["distance_mi"] <= payload["companies"][1]["distance_mi"]
    assert payload["companies"][0]["address"] == "1 Main St, Springfield, IL, 62701"

    assert api_client.get("/api/companies", params={"lat": 1.0}).status_code == 400
    assert api_client.get("/api/companies/missing").status_code == 404


def test_build_route_with_fixed_origin(api_client: TestClient, directions) -> None:
    payload = _build(api_client, ["C", "A", "B"], origin={"lat": 0.0, "lng": -1.0})

    route = payload["route"]
    assert [stop["company_id"] for stop in route["stops"]] == ["A", "B", "C"]
    assert route["status"] == "planning"
    assert route["current_stop_index"] == 0
    assert route["total_distance_mi"] > 0
    assert payload["metrics_available"] is True
    assert payload["source"] == "provider"
    assert route["nav_url"].startswith("https://www.google.com/maps/dir/?api=1&waypoints=")


def test_build_route_rejects_single_resolvable_company(api_client: TestClient) -> None:
    response = api_client.post("/api/route", json={"company_ids": ["A", "N"]}, headers=HEADERS)

    assert response.status_code == 400
    assert api_client.get("/api/routes/history", headers=HEADERS).json() == []


def test_route_lifecycle_with_check_ins(api_client: TestClient) -> None:
    route_id = _build(api_client, ["A", "B"])["route_id"]

    assert api_client.get("/api/route/active", headers=HEADERS).status_code == 404
    activated = api_client.post(f"/api/route/{route_id}/activate", headers=HEADERS)
    assert activated.json()["status"] == "active"
    assert api_client.get("/api/route/active", headers=HEADERS).json()["id"] == route_id

    near_b = api_client.post(f"/api/route/{route_id}/proximity", json={"lat": 0.0015, "lng": 1.0}, headers=HEADERS)
    assert near_b.json()["nearby"] is True
    assert near_b.json()["company_id"] == "B"
    assert near_b.json()["is_next_planned_stop"] is False

    first = api_client.post("/api/checkins", json={"company_id": "B", "lat": 0.0, "lng": 1.0}, headers=HEADERS)
    assert first.status_code == 201
    assert first.json()["stop_completed"] is True
    assert [stop["company_id"] for stop in first.json()["route"]["stops"]] == ["B", "A"]

    last = api_client.post(
        "/api/checkins",
        json={"company_id": "A", "lat": 0.0, "lng": 0.0, "note": "Signed renewal"},
        headers=HEADERS,
    )
    assert last.json()["route"]["status"] == "completed"
    assert api_client.get("/api/route/active", headers=HEADERS).status_code == 404

    summary = api_client.get("/api/summary", headers=HEADERS).json()
    assert summary["total_visits"] == 2
    assert summary["total_miles"] == pytest.approx(69.1)
    assert summary["check_ins"][1]["company_name"] == "Acme Supply"

    check_in_id = last.json()["check_in"]["id"]
    edited = api_client.patch(f"/api/checkins/{check_in_id}", json={"note": "Renewal signed"}, headers=HEADERS)
    assert edited.json()["note"] == "Renewal signed"


def test_add_stop_endpoint(api_client: TestClient, directions) -> None:
    route_id = _build(api_client, ["A", "B"])["route_id"]

    response = api_client.post(
        f"/api/route/{route_id}/stops",
        json={"company_id": "C", "position": {"lat": 0.0, "lng": 2.5}},
        headers=HEADERS,
    )

    assert response.status_code == 200
    payload = response.json()
    assert [stop["company_id"] for stop in payload["route"]["stops"]] == ["C", "B", "A"]
    assert payload["rebuild_failed"] is False

    duplicate = api_client.post(f"/api/route/{route_id}/stops", json={"company_id": "C"}, headers=HEADERS)
    assert duplicate.status_code == 400


def test_routes_are_private_to_their_user(api_client: TestClient) -> None:
    route_id = _build(api_client, ["A", "B"])["route_id"]
    other = {"X-User-Id": "rep-2"}

    assert api_client.get(f"/api/route/{route_id}", headers=other).status_code == 404
    assert api_client.delete(f"/api/route/{route_id}", headers=other).status_code == 404
    assert api_client.delete(f"/api/route/{route_id}", headers=HEADERS).status_code == 200
    assert api_client.get(f"/api/route/{route_id}", headers=HEADERS).status_code == 404


def test_history_and_status_update(api_client: TestClient) -> None:
    first = _build(api_client, ["A", "B"])["route_id"]
    second = _build(api_client, ["C", "D"])["route_id"]

    ended = api_client.patch(f"/api/route/{first}", json={"status": "completed"}, headers=HEADERS)
    assert ended.json()["status"] == "completed"

    completed = api_client.get("/api/routes/history", params={"status": "completed"}, headers=HEADERS).json()
    assert [route["id"] for route in completed] == [first]
    everything = api_client.get("/api/routes/history", headers=HEADERS).json()
    assert {route["id"] for route in everything} == {first, second}

    back = api_client.patch(f"/api/route/{first}", json={"status": "planning"}, headers=HEADERS)
    assert back.status_code == 400


def test_summary_rejects_bad_date(api_client: TestClient) -> None:
    assert api_client.get("/api/summary", params={"date": "yesterday"}, headers=HEADERS).status_code == 400
