from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

import pytest

from pybustrack._constants import EARTH_RADIUS_M
from pybustrack.config import BusTrackConfig
from pybustrack.exceptions import BusTrackTransportError
from pybustrack.geo import bearing_degrees
from pybustrack.models.position import PositionSample
from pybustrack.models.route import ProgressionCursor, Route, RouteView, Stop
from pybustrack.storage import InMemoryStorage
from pybustrack.viewer import RouteProgressionTracker, advance_progression

_T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def _view(*coords: tuple[float, float]) -> RouteView:
    stops = tuple(
        Stop(stop_id=f"S{index}", name=f"Stop {index}", latitude=lat, longitude=lng)
        for index, (lat, lng) in enumerate(coords)
    )
    route = Route(route_id="R1", name="Loop", stop_sequence=tuple(stop.stop_id for stop in stops))
    return RouteView(route=route, stops=stops)


def _sample(lat: float, lng: float = 77.0, *, offset: int = 0, heading: float | None = None) -> PositionSample:
    return PositionSample(
        vehicle_id="BUS-1",
        latitude=lat,
        longitude=lng,
        heading=heading,
        captured_at=_T0 + timedelta(seconds=offset),
    )


_LOOP = _view((12.0, 77.0), (12.01, 77.0), (12.02, 77.0))


# ------------------------------------------------------------------
# advance_progression
# ------------------------------------------------------------------


def test_sample_within_threshold_advances() -> None:
    cursor = ProgressionCursor.start(_LOOP)
    step = advance_progression(cursor, _sample(12.0003, heading=270.0), 50.0)

    assert step.advanced is True
    assert step.cursor.current_stop_index == 1
    assert step.heading == pytest.approx(bearing_degrees(12.0003, 77.0, 12.01, 77.0))
    assert step.heading == pytest.approx(0.0, abs=1e-6)


def test_sample_outside_threshold_keeps_device_heading() -> None:
    cursor = ProgressionCursor.start(_LOOP)
    step = advance_progression(cursor, _sample(12.0006, heading=270.0), 50.0)

    assert step.advanced is False
    assert step.cursor is cursor
    assert step.heading == 270.0


def test_threshold_boundary() -> None:
    cursor = ProgressionCursor.start(_LOOP)
    just_outside = 12.0 + math.degrees(51 / EARTH_RADIUS_M)
    just_inside = 12.0 + math.degrees(49 / EARTH_RADIUS_M)

    assert advance_progression(cursor, _sample(just_outside), 50.0).advanced is False
    assert advance_progression(cursor, _sample(just_inside), 50.0).advanced is True


def test_last_stop_wraps_to_first() -> None:
    cursor = ProgressionCursor(route_view=_LOOP, current_stop_index=2)
    step = advance_progression(cursor, _sample(12.02), 50.0)

    assert step.cursor.current_stop_index == 0
    assert step.heading == pytest.approx(180.0)


def test_route_without_stops() -> None:
    cursor = ProgressionCursor.start(_view())
    step = advance_progression(cursor, _sample(12.0, heading=33.0), 50.0)

    assert step.advanced is False
    assert step.cursor.current_stop_index is None
    assert step.heading == 33.0


# ------------------------------------------------------------------
# RouteProgressionTracker
# ------------------------------------------------------------------


class _FailingHeadingStorage(InMemoryStorage):
    async def correct_heading(self, vehicle_id: str, timestamp: str, heading: float) -> None:
        raise BusTrackTransportError("storage unreachable")


@pytest.mark.asyncio
async def test_load_route_starts_at_first_active_stop() -> None:
    storage = InMemoryStorage()
    storage.add_route(
        Route(route_id="R1", stop_sequence=("S2", "S1", "S3")),
        [
            Stop(stop_id="S1", latitude=12.01, longitude=77.0),
            Stop(stop_id="S2", latitude=12.0, longitude=77.0, active=False),
            Stop(stop_id="S3", latitude=12.02, longitude=77.0),
        ],
    )
    tracker = RouteProgressionTracker(storage)

    view = await tracker.load_route("R1")

    assert [stop.stop_id for stop in view.stops] == ["S1", "S3"]
    assert tracker.current_stop_index == 0
    assert tracker.next_stop is not None and tracker.next_stop.stop_id == "S1"


@pytest.mark.asyncio
async def test_observe_writes_corrected_heading_back() -> None:
    storage = InMemoryStorage()
    sample = _sample(12.0, heading=270.0)
    await storage.append_position(sample)
    tracker = RouteProgressionTracker(storage)
    tracker.reset(_LOOP)

    tracked = await tracker.observe(sample)

    assert tracked.advanced is True
    assert tracked.current_stop_index == 1
    assert tracked.next_stop is not None and tracked.next_stop.stop_id == "S1"
    assert tracked.sample.heading == pytest.approx(0.0, abs=1e-6)
    assert storage.positions[0].heading == pytest.approx(0.0, abs=1e-6)


@pytest.mark.asyncio
async def test_write_back_failure_is_not_fatal() -> None:
    tracker = RouteProgressionTracker(_FailingHeadingStorage())
    tracker.reset(_LOOP)

    tracked = await tracker.observe(_sample(12.0))

    assert tracked.advanced is True
    assert tracker.current_stop_index == 1


@pytest.mark.asyncio
async def test_observe_without_route() -> None:
    tracker = RouteProgressionTracker(InMemoryStorage())
    tracked = await tracker.observe(_sample(12.0, heading=10.0))

    assert tracked.next_stop is None
    assert tracked.current_stop_index is None
    assert tracked.sample.heading == 10.0


# Two stops 22 m apart; one sample between them is within range of both.
_CLOSE = _view((12.0, 77.0), (12.0002, 77.0), (12.01, 77.0))


@pytest.mark.asyncio
async def test_repeated_sample_advances_once() -> None:
    tracker = RouteProgressionTracker(InMemoryStorage())
    tracker.reset(_CLOSE)
    sample = _sample(12.0001)

    first = await tracker.observe(sample)
    second = await tracker.observe(sample)

    assert first.current_stop_index == 1
    assert second.current_stop_index == 1
    assert second.advanced is False
    assert second.sample.heading == first.sample.heading


@pytest.mark.asyncio
async def test_repeated_sample_advances_again_without_dedupe() -> None:
    tracker = RouteProgressionTracker(InMemoryStorage(), config=BusTrackConfig(dedupe_by_timestamp=False))
    tracker.reset(_CLOSE)
    sample = _sample(12.0001)

    await tracker.observe(sample)
    second = await tracker.observe(sample)

    assert second.advanced is True
    assert second.current_stop_index == 2


@pytest.mark.asyncio
async def test_new_sample_is_evaluated() -> None:
    tracker = RouteProgressionTracker(InMemoryStorage())
    tracker.reset(_CLOSE)

    await tracker.observe(_sample(12.0001, offset=0))
    tracked = await tracker.observe(_sample(12.0001, offset=10))

    assert tracked.advanced is True
    assert tracked.current_stop_index == 2


def test_reset_and_clear() -> None:
    tracker = RouteProgressionTracker(InMemoryStorage())
    tracker.reset(_LOOP)
    assert tracker.current_stop_index == 0
    tracker.clear()
    assert tracker.cursor is None
    assert tracker.route_view is None
    assert tracker.next_stop is None
