"""Detect arrival near route stops from a stream of positions."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence

from ..config import settings
from ..errors import InvalidRequest
from ..models.domain import Coordinate
from .geospatial import distance_meters

logger = logging.getLogger(__name__)


class ProximityStop(Protocol):
    company_id: str
    lat: float
    lng: float
    completed: bool


@dataclass(slots=True)
class _TrackedStop:
    company_id: str
    lat: float
    lng: float
    completed: bool

    @classmethod
    def copy_of(cls, stop: ProximityStop) -> _TrackedStop:
        return cls(stop.company_id, stop.lat, stop.lng, bool(stop.completed))


@dataclass(frozen=True, slots=True)
class NearbyStop:
    index: int
    company_id: str
    distance_m: float
    is_next_planned_stop: bool

    @property
    def out_of_sequence(self) -> bool:
        return not self.is_next_planned_stop


class ProximityState(str, Enum):
    IDLE = "idle"
    ALERTING = "alerting"
    CHECKING_IN = "checking_in"


def find_nearby_stop(
    position: Coordinate,
    stops: Sequence[ProximityStop],
    current_stop_index: int,
    threshold_m: Optional[float] = None,
) -> Optional[NearbyStop]:
    """Closest uncompleted stop within ``threshold_m`` of ``position``.

    Any uncompleted stop qualifies, not only the current one; the result says
    whether it is the next planned stop. Equal distances resolve to the stop
    earlier in the itinerary.
    """
    threshold = settings.proximity_threshold_meters if threshold_m is None else threshold_m
    best: Optional[NearbyStop] = None
    for index, stop in enumerate(stops):
        if stop.completed:
            continue
        distance = distance_meters(position, stop)
        if distance > threshold:
            continue
        if best is None or distance < best.distance_m:
            best = NearbyStop(
                index=index,
                company_id=stop.company_id,
                distance_m=distance,
                is_next_planned_stop=index == current_stop_index,
            )
    return best


class ProximityDetector:
    """Per-route state machine fed by position updates.

    ``idle -> alerting`` when an uncompleted stop comes within range and back
    to ``idle`` once nothing is in range or the alert is dismissed. While a
    check-in form is open (``checking_in``) the alerted stop is pinned and new
    alerts are suppressed. Every transition holds one lock, so a position tick
    cannot interleave with a check-in completion.
    """

    def __init__(
        self,
        stops: Sequence[ProximityStop],
        current_stop_index: int = 0,
        threshold_m: Optional[float] = None,
    ) -> None:
        self._stops = [_TrackedStop.copy_of(stop) for stop in stops]
        self._current_stop_index = current_stop_index
        self._threshold_m = settings.proximity_threshold_meters if threshold_m is None else threshold_m
        self._lock = threading.Lock()
        self._state = ProximityState.IDLE
        self._alert: Optional[NearbyStop] = None
        self._position: Optional[Coordinate] = None

    @property
    def state(self) -> ProximityState:
        return self._state

    @property
    def alert(self) -> Optional[NearbyStop]:
        return self._alert

    @property
    def position(self) -> Optional[Coordinate]:
        return self._position

    def _evaluate(self) -> Optional[NearbyStop]:
        if self._state == ProximityState.CHECKING_IN or self._position is None:
            return self._alert
        nearby = find_nearby_stop(self._position, self._stops, self._current_stop_index, self._threshold_m)
        if nearby is None:
            self._state = ProximityState.IDLE
        else:
            if self._alert is None or self._alert.company_id != nearby.company_id:
                logger.debug(
                    f"Near stop {nearby.index} ({nearby.company_id}) at {nearby.distance_m:.0f} m, "
                    f"next planned: {nearby.is_next_planned_stop}"
                )
            self._state = ProximityState.ALERTING
        self._alert = nearby
        return nearby

    def update_position(self, position: Coordinate) -> Optional[NearbyStop]:
        with self._lock:
            self._position = position
            return self._evaluate()

    def simulate_at(self, stop_index: int) -> Optional[NearbyStop]:
        """Force the position onto a stop, as test mode does instead of GPS."""
        with self._lock:
            if not 0 <= stop_index < len(self._stops):
                raise InvalidRequest(f"Stop index {stop_index} is out of range.")
            stop = self._stops[stop_index]
            self._position = Coordinate(stop.lat, stop.lng)
            return self._evaluate()

    def dismiss(self) -> None:
        with self._lock:
            if self._state == ProximityState.ALERTING:
                self._state = ProximityState.IDLE
                self._alert = None

    def begin_check_in(self) -> NearbyStop:
        with self._lock:
            if self._state != ProximityState.ALERTING or self._alert is None:
                raise InvalidRequest("No nearby stop to check in at.")
            self._state = ProximityState.CHECKING_IN
            return self._alert

    def complete_check_in(self) -> NearbyStop:
        """Mark the pinned stop completed locally and return to ``idle``.

        The caller's stop objects are never modified; the detector tracks
        completion on its own copies and moves the current stop to the first
        uncompleted one.
        """
        with self._lock:
            if self._state != ProximityState.CHECKING_IN or self._alert is None:
                raise InvalidRequest("No check-in in progress.")
            checked_in = self._alert
            # Match by company: the itinerary may have been replaced since the alert
            for stop in self._stops:
                if stop.company_id == checked_in.company_id and not stop.completed:
                    stop.completed = True
                    break
            self._current_stop_index = self._first_open_index()
            self._state = ProximityState.IDLE
            self._alert = None
            return checked_in

    def _first_open_index(self) -> int:
        for index, stop in enumerate(self._stops):
            if not stop.completed:
                return index
        return max(len(self._stops) - 1, 0)

    def cancel_check_in(self) -> None:
        with self._lock:
            if self._state == ProximityState.CHECKING_IN:
                self._state = ProximityState.IDLE
                self._alert = None

    def replace_stops(self, stops: Sequence[ProximityStop], current_stop_index: int) -> None:
        """Swap in a reconciled itinerary; an open check-in keeps its pin."""
        with self._lock:
            self._stops = [_TrackedStop.copy_of(stop) for stop in stops]
            self._current_stop_index = current_stop_index
            if self._state != ProximityState.CHECKING_IN:
                self._alert = None
                self._evaluate()
