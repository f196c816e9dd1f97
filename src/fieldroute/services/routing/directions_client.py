"""HTTP client for the driving-directions service (Mapbox or OSRM-compatible)."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...errors import ProviderUnavailable
from ...models.domain import Coordinate
from .models import DirectionsResult, Leg

logger = logging.getLogger(__name__)


class DirectionsClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        access_token: str | None = None,
        geometries: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.directions_base_url or "").rstrip("/")
        if not self.base_url:
            raise ProviderUnavailable("Directions base URL is not configured.")
        self.profile = profile or settings.directions_profile
        self.access_token = access_token if access_token is not None else settings.directions_access_token
        self.geometries = geometries or settings.directions_geometries
        self.timeout = timeout if timeout is not None else settings.directions_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.directions_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.directions_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    def route(self, coordinates: Sequence[Coordinate]) -> DirectionsResult:
        """Request a driving route through ``coordinates`` in the given order.

        Raises:
            ProviderUnavailable: on any transport, HTTP or payload error once
                retries are exhausted.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for a directions request.")

        # Directions services expect "lng,lat;lng,lat;..."
        coordinate_str = ";".join(f"{point.lng},{point.lat}" for point in coordinates)
        params = {
            "overview": "full",
            "geometries": self.geometries,
            "steps": "false",
        }
        if self.access_token:
            params["access_token"] = self.access_token
        url = f"{self.base_url}/{self.profile}/{coordinate_str}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    return self._parse(response.json())
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    # Client errors (bad coordinates, bad token) will not improve on retry
                    if status_code < 500 and status_code != 429:
                        raise ProviderUnavailable(
                            f"Directions request rejected with HTTP {status_code}: {e.response.text[:200]}"
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailable(f"Directions service returned HTTP {status_code}") from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Directions request timed out after {self.max_retries} retries: {e}")
                        raise ProviderUnavailable("Directions request timed out") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Directions timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.TransportError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailable(
                            f"Failed to connect to directions service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Directions network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except (ValueError, TypeError, KeyError, AttributeError) as e:
                    # Malformed JSON or an unexpected payload shape
                    raise ProviderUnavailable(f"Invalid directions response: {e}") from e
        finally:
            client.close()

    def _parse(self, data: dict) -> DirectionsResult:
        code = data.get("code")
        if code != "Ok":
            raise ValueError(data.get("message") or f"directions code {code!r}")
        routes = data.get("routes") or []
        if not routes:
            raise ValueError("no routes found")
        route = routes[0]

        geometry_payload = route.get("geometry")
        if isinstance(geometry_payload, str):
            geometry = decode_polyline(geometry_payload)
        elif isinstance(geometry_payload, dict):
            geometry = [Coordinate(float(lat), float(lng)) for lng, lat in geometry_payload.get("coordinates", [])]
        else:
            geometry = []

        legs = [
            Leg(distance_m=float(leg.get("distance", 0.0)), duration_s=float(leg.get("duration", 0.0)))
            for leg in route.get("legs", [])
        ]
        return DirectionsResult(
            geometry=geometry,
            legs=legs,
            distance_m=float(route.get("distance", 0.0)),
            duration_s=float(route.get("duration", 0.0)),
        )


def decode_polyline(polyline: str, precision: int = 5) -> list[Coordinate]:
    """Decode a Google encoded polyline string into coordinates.

    OSRM and Mapbox return this format when ``geometries=polyline``.
    """
    coordinates: list[Coordinate] = []
    index = 0
    lat = 0
    lng = 0
    factor = 10 ** precision

    while index < len(polyline):
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                b = ord(polyline[index]) - 63
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if (result & 1) else (result >> 1))
        lat += deltas[0]
        lng += deltas[1]
        coordinates.append(Coordinate(lat / factor, lng / factor))

    return coordinates


def get_directions_client() -> DirectionsClient | None:
    """Return a configured client, or ``None`` when directions are disabled."""
    try:
        return DirectionsClient()
    except ProviderUnavailable as exc:
        logger.warning(f"Directions client unavailable: {exc}")
        return None


def check_health(base_url: str | None = None) -> bool:
    """Check the directions service by routing between two fixed points."""
    try:
        client = DirectionsClient(base_url=base_url, max_retries=0)
        client.route([Coordinate(52.517037, 13.388860), Coordinate(52.496891, 13.385983)])
        return True
    except ProviderUnavailable:
        return False
