import httpx
import pytest

from fieldroute.errors import ProviderUnavailable
from fieldroute.models.domain import Coordinate
from fieldroute.services.routing.directions_client import DirectionsClient, decode_polyline

OK_PAYLOAD = {
    "code": "Ok",
    "routes": [
        {
            "distance": 3000.0,
            "duration": 240.0,
            "geometry": {"type": "LineString", "coordinates": [[13.38, 52.51], [13.39, 52.50], [13.40, 52.49]]},
            "legs": [{"distance": 1000.0, "duration": 60.0}, {"distance": 2000.0, "duration": 180.0}],
        }
    ],
}

WAYPOINTS = [Coordinate(52.51, 13.38), Coordinate(52.50, 13.39), Coordinate(52.49, 13.40)]


def _client(handler, **kwargs) -> DirectionsClient:
    return DirectionsClient(
        base_url="https://directions.test/directions/v5/mapbox",
        access_token="token-123",
        backoff_seconds=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_route_parses_geojson_response() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=OK_PAYLOAD)

    result = _client(handler, geometries="geojson").route(WAYPOINTS)

    assert result.distance_m == 3000.0
    assert result.duration_s == 240.0
    assert [leg.distance_m for leg in result.legs] == [1000.0, 2000.0]
    assert result.geometry[0] == Coordinate(52.51, 13.38)

    request = requests[0]
    assert request.url.path.endswith("/driving/13.38,52.51;13.39,52.5;13.4,52.49")
    assert request.url.params["overview"] == "full"
    assert request.url.params["steps"] == "false"
    assert request.url.params["access_token"] == "token-123"


def test_route_decodes_polyline_geometry() -> None:
    payload = {
        "code": "Ok",
        "routes": [{"distance": 1.0, "duration": 1.0, "geometry": "_p~iF~ps|U_ulLnnqC_mqNvxq`@", "legs": []}],
    }

    result = _client(lambda request: httpx.Response(200, json=payload)).route(WAYPOINTS[:2])

    assert result.geometry[0].lat == pytest.approx(38.5)
    assert result.geometry[0].lng == pytest.approx(-120.2)
    assert len(result.geometry) == 3


def test_client_error_is_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(422, json={"message": "Invalid coordinates"})

    with pytest.raises(ProviderUnavailable):
        _client(handler, max_retries=3).route(WAYPOINTS)
    assert len(calls) == 1


def test_server_error_is_retried_then_succeeds() -> None:
    responses = [httpx.Response(503), httpx.Response(200, json=OK_PAYLOAD)]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    result = _client(handler, max_retries=2).route(WAYPOINTS)

    assert result.distance_m == 3000.0
    assert responses == []


def test_transport_error_exhausts_retries() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderUnavailable):
        _client(handler, max_retries=2).route(WAYPOINTS)
    assert len(calls) == 3


@pytest.mark.parametrize(
    "payload",
    [
        {"code": "NoRoute", "message": "No route found", "routes": []},
        {"code": "Ok", "routes": []},
    ],
)
def test_unusable_payload_raises_provider_unavailable(payload) -> None:
    with pytest.raises(ProviderUnavailable):
        _client(lambda request: httpx.Response(200, json=payload)).route(WAYPOINTS)


def test_decode_polyline_reference_example() -> None:
    points = decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")

    assert [(round(p.lat, 3), round(p.lng, 3)) for p in points] == [
        (38.5, -120.2),
        (40.7, -120.95),
        (43.252, -126.453),
    ]
