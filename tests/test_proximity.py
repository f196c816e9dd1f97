from dataclasses import dataclass

import pytest

from fieldroute.errors import InvalidRequest
from fieldroute.models.domain import Coordinate
from fieldroute.services.geospatial import PROXIMITY_THRESHOLD_METERS
from fieldroute.services.proximity import ProximityDetector, ProximityState, find_nearby_stop

# ~111.2 m per 0.001 degree of latitude
HERE = Coordinate(0.0, 0.0)


@dataclass
class StopStub:
    company_id: str
    lat: float
    lng: float
    completed: bool = False


def _stops() -> list[StopStub]:
    return [
        StopStub("A", -0.0045, 0.0),  # ~500 m, the current stop
        StopStub("B", 0.0015, 0.0),  # ~167 m
        StopStub("C", 0.05, 0.0),  # far away
    ]


def test_threshold_is_800_feet() -> None:
    assert PROXIMITY_THRESHOLD_METERS == pytest.approx(243.84, abs=0.01)


def test_out_of_sequence_stop_is_flagged() -> None:
    nearby = find_nearby_stop(HERE, _stops(), current_stop_index=0)

    assert nearby.company_id == "B"
    assert nearby.index == 1
    assert nearby.distance_m < 200
    assert not nearby.is_next_planned_stop
    assert nearby.out_of_sequence


def test_next_planned_stop_is_flagged() -> None:
    nearby = find_nearby_stop(HERE, _stops(), current_stop_index=1)

    assert nearby.is_next_planned_stop


def test_completed_stops_are_ignored() -> None:
    stops = _stops()
    stops[1].completed = True

    assert find_nearby_stop(HERE, stops, current_stop_index=0) is None


def test_closest_stop_wins_and_ties_keep_itinerary_order() -> None:
    stops = [StopStub("far", 0.0015, 0.0), StopStub("near", 0.001, 0.0), StopStub("twin", -0.001, 0.0)]

    assert find_nearby_stop(HERE, stops, 0).company_id == "near"


def test_detector_alerts_and_clears_on_every_tick() -> None:
    detector = ProximityDetector(_stops(), current_stop_index=0)
    assert detector.state == ProximityState.IDLE

    assert detector.update_position(HERE).company_id == "B"
    assert detector.state == ProximityState.ALERTING

    assert detector.update_position(Coordinate(-0.02, 0.0)) is None
    assert detector.state == ProximityState.IDLE
    assert detector.alert is None


def test_dismiss_returns_to_idle_until_next_tick() -> None:
    detector = ProximityDetector(_stops())
    detector.update_position(HERE)

    detector.dismiss()

    assert detector.state == ProximityState.IDLE
    assert detector.update_position(HERE).company_id == "B"


def test_check_in_pins_alerted_stop_and_suppresses_new_alerts() -> None:
    detector = ProximityDetector(_stops())
    detector.update_position(HERE)

    pinned = detector.begin_check_in()
    assert detector.state == ProximityState.CHECKING_IN

    # Walking next to stop A must not replace the open check-in
    assert detector.update_position(Coordinate(-0.0045, 0.0)).company_id == pinned.company_id
    assert detector.state == ProximityState.CHECKING_IN

    done = detector.complete_check_in()
    assert done.company_id == "B"
    assert detector.state == ProximityState.IDLE

    # B is completed now, so standing at the same spot yields nothing
    assert detector.update_position(HERE) is None


def test_cancel_check_in_returns_to_idle() -> None:
    detector = ProximityDetector(_stops())
    detector.update_position(HERE)
    detector.begin_check_in()

    detector.cancel_check_in()

    assert detector.state == ProximityState.IDLE
    assert detector.update_position(HERE).company_id == "B"


def test_begin_check_in_requires_an_alert() -> None:
    detector = ProximityDetector(_stops())

    with pytest.raises(InvalidRequest):
        detector.begin_check_in()
    with pytest.raises(InvalidRequest):
        detector.complete_check_in()


def test_simulate_at_forces_position_onto_stop() -> None:
    detector = ProximityDetector(_stops(), current_stop_index=0)

    nearby = detector.simulate_at(2)

    assert nearby.company_id == "C"
    assert nearby.distance_m == pytest.approx(0.0)
    assert detector.position == Coordinate(0.05, 0.0)
    with pytest.raises(InvalidRequest):
        detector.simulate_at(7)


def test_replace_stops_reevaluates_current_position() -> None:
    detector = ProximityDetector(_stops(), current_stop_index=0)
    detector.update_position(HERE)

    detector.replace_stops([StopStub("B", 0.0015, 0.0)], current_stop_index=0)

    assert detector.alert.is_next_planned_stop
    assert detector.alert.index == 0


def test_check_in_advances_current_stop_without_touching_caller_stops() -> None:
    stops = [StopStub("A", 0.0, 0.0), StopStub("B", 0.01, 0.0)]  # B ~1.1 km north
    detector = ProximityDetector(stops, current_stop_index=0)

    assert detector.update_position(HERE).is_next_planned_stop
    detector.begin_check_in()
    assert detector.complete_check_in().company_id == "A"

    assert not stops[0].completed
    arrived = detector.update_position(Coordinate(0.01, 0.0))
    assert arrived.company_id == "B"
    assert arrived.is_next_planned_stop
