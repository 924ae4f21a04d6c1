from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from pybustrack.config import BusTrackConfig
from pybustrack.exceptions import (
    PositionError,
    PositionPermissionError,
    PositionTimeoutError,
    PositionUnavailableError,
)
from pybustrack.models.operator import OperatorSession
from pybustrack.models.position import DeviceFix, PositionSample
from pybustrack.models.route import Route, Stop
from pybustrack.models.vehicle import Vehicle
from pybustrack.storage import InMemoryStorage
from pybustrack.viewer import ViewerTracker, describe_position_error

_T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)
_CONFIG = BusTrackConfig(fleet_interval=3600, position_interval=3600)


class _FakePositions:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[float] = []

    async def current_position(self, *, high_accuracy: bool, maximum_age: float) -> DeviceFix:
        self.calls.append(maximum_age)
        if self.error is not None:
            raise self.error
        return DeviceFix(latitude=12.5, longitude=77.5)


async def _storage() -> InMemoryStorage:
    storage = InMemoryStorage()
    storage.add_operator(OperatorSession(operator_id="D1", operator_name="Asha"))
    storage.add_operator(OperatorSession(operator_id="D2", operator_name="Ravi"))
    storage.add_vehicle(Vehicle(vehicle_id="BUS-1", name="Bus 1", route_id="R1", active=True))
    storage.add_vehicle(Vehicle(vehicle_id="BUS-2", name="Bus 2", route_id="R404", active=True))
    storage.add_route(
        Route(route_id="R1", name="Loop", origin="A", destination="B", stop_sequence=("S0", "S1", "S2")),
        [
            Stop(stop_id="S0", name="Depot", latitude=12.0, longitude=77.0),
            Stop(stop_id="S1", name="Market", latitude=12.01, longitude=77.0),
            Stop(stop_id="S2", name="Campus", latitude=12.02, longitude=77.0),
        ],
    )
    await storage.validate_and_claim_vehicle("D1", "BUS-1")
    await storage.validate_and_claim_vehicle("D2", "BUS-2")
    return storage


def _sample(vehicle_id: str, lat: float, offset: int = 0) -> PositionSample:
    return PositionSample(
        vehicle_id=vehicle_id,
        latitude=lat,
        longitude=77.0,
        heading=90.0,
        captured_at=_T0 + timedelta(seconds=offset),
    )


async def _settle(tracker: ViewerTracker) -> None:
    await asyncio.sleep(0)
    await tracker.drain()


@pytest.mark.asyncio
async def test_start_locates_user_and_loads_fleet() -> None:
    storage = await _storage()
    positions = _FakePositions()
    tracker = ViewerTracker(storage, positions, config=_CONFIG)

    await tracker.start()
    await _settle(tracker)

    assert tracker.user_position is not None
    assert tracker.display_position == (12.5, 77.5)
    assert positions.calls == [0.0]
    assert tracker.loading is False
    assert tracker.error is None
    assert {entry.vehicle_id for entry in tracker.active_vehicles} == {"BUS-1", "BUS-2"}
    await tracker.stop()


@pytest.mark.asyncio
async def test_select_vehicle_tracks_progression() -> None:
    storage = await _storage()
    await storage.append_position(_sample("BUS-1", 12.0001))
    tracker = ViewerTracker(storage, _FakePositions(), config=_CONFIG)
    await tracker.fleet.refresh()

    await tracker.select_vehicle("BUS-1")
    assert tracker.route_view is not None
    assert [stop.stop_id for stop in tracker.route_view.stops] == ["S0", "S1", "S2"]
    assert tracker.next_stop is not None and tracker.next_stop.stop_id == "S0"

    await _settle(tracker)

    tracked = tracker.vehicle_position
    assert tracked is not None
    assert tracked.advanced is True
    assert tracked.next_stop is not None and tracked.next_stop.stop_id == "S1"
    assert tracker.next_stop is not None and tracker.next_stop.stop_id == "S1"
    assert tracked.sample.heading == pytest.approx(0.0, abs=1e-6)
    assert tracker.selected_entry is not None and tracker.selected_entry.route_name == "Loop"
    summary = tracker.route_summary
    assert summary is not None
    assert (summary.name, summary.origin, summary.destination, summary.stop_count) == ("Loop", "A", "B", 3)
    assert tracker.display_position == (12.0001, 77.0)
    await tracker.stop()


@pytest.mark.asyncio
async def test_reselecting_resets_cursor() -> None:
    storage = await _storage()
    await storage.append_position(_sample("BUS-1", 12.0))
    tracker = ViewerTracker(storage, _FakePositions(), config=_CONFIG)
    await tracker.fleet.refresh()

    await tracker.select_vehicle("BUS-1")
    await _settle(tracker)
    assert tracker.progression.current_stop_index == 1

    await tracker.select_vehicle("BUS-1")
    assert tracker.progression.current_stop_index == 0
    assert tracker.vehicle_position is None
    await tracker.stop()
    await tracker.drain()


@pytest.mark.asyncio
async def test_missing_route_still_shows_position() -> None:
    storage = await _storage()
    await storage.append_position(_sample("BUS-2", 12.3))
    tracker = ViewerTracker(storage, _FakePositions(), config=_CONFIG)
    await tracker.fleet.refresh()

    await tracker.select_vehicle("BUS-2")
    await _settle(tracker)

    assert tracker.route_summary is None
    assert tracker.route_view is None
    assert tracker.next_stop is None
    assert tracker.vehicle_position is not None
    assert tracker.vehicle_position.sample.latitude == 12.3
    assert tracker.vehicle_position.sample.heading == 90.0
    await tracker.stop()


@pytest.mark.asyncio
async def test_vehicle_without_positions() -> None:
    storage = await _storage()
    tracker = ViewerTracker(storage, _FakePositions(), config=_CONFIG)

    await tracker.select_vehicle("BUS-1")
    await _settle(tracker)

    assert tracker.selected_vehicle == "BUS-1"
    assert tracker.vehicle_position is None
    await tracker.stop()


@pytest.mark.asyncio
async def test_clear_selection_clears_all_fields() -> None:
    storage = await _storage()
    await storage.append_position(_sample("BUS-1", 12.5))
    tracker = ViewerTracker(storage, _FakePositions(), config=_CONFIG)
    await tracker.fleet.refresh()
    await tracker.select_vehicle("BUS-1")
    await _settle(tracker)
    assert tracker.vehicle_position is not None

    tracker.clear_selection()
    await _settle(tracker)

    assert tracker.selected_vehicle is None
    assert tracker.selected_entry is None
    assert tracker.vehicle_position is None
    assert tracker.route_view is None
    assert tracker.next_stop is None
    assert tracker.progression.cursor is None


@pytest.mark.asyncio
async def test_location_permission_denied() -> None:
    storage = await _storage()
    positions = _FakePositions(error=PositionPermissionError("denied"))
    tracker = ViewerTracker(storage, positions, config=_CONFIG)

    await tracker.start()
    await _settle(tracker)

    assert tracker.error == "Location access denied by user."
    assert tracker.permission_denied is True
    assert tracker.loading is False
    assert tracker.user_position is None
    assert tracker.display_position is None
    assert len(positions.calls) == 1
    assert len(tracker.active_vehicles) == 2

    positions.error = None
    assert await tracker.locate_user() is not None
    assert tracker.error is None
    assert tracker.permission_denied is False
    await tracker.stop()


@pytest.mark.parametrize(
    ("error", "message"),
    [
        (PositionPermissionError("x"), "Location access denied by user."),
        (PositionUnavailableError("x"), "Location information is unavailable."),
        (PositionTimeoutError("x"), "Location request timed out."),
        (PositionError("x"), "An unknown error occurred."),
    ],
)
def test_describe_position_error(error: PositionError, message: str) -> None:
    assert describe_position_error(error) == message


class _TimestampedPositions:
    """Device that stamps each reading a little before the viewer reads the clock."""

    def __init__(self, lag: timedelta) -> None:
        self._lag = lag
        self.calls: list[float] = []

    async def current_position(self, *, high_accuracy: bool, maximum_age: float) -> DeviceFix:
        self.calls.append(maximum_age)
        return DeviceFix(latitude=12.5, longitude=77.5, timestamp=_T0 - self._lag)


@pytest.mark.asyncio
async def test_locate_user_accepts_fresh_timestamped_fix() -> None:
    storage = await _storage()
    positions = _TimestampedPositions(timedelta(milliseconds=200))
    tracker = ViewerTracker(storage, positions, config=_CONFIG, clock=lambda: _T0)

    fix = await tracker.locate_user()

    assert fix is not None
    assert tracker.error is None
    assert tracker.user_position == fix
    assert positions.calls == [0.0]


@pytest.mark.asyncio
async def test_locate_user_rejects_stale_timestamped_fix() -> None:
    storage = await _storage()
    positions = _TimestampedPositions(timedelta(minutes=5))
    tracker = ViewerTracker(storage, positions, config=_CONFIG, clock=lambda: _T0)

    assert await tracker.locate_user() is None

    assert tracker.error == "Location information is unavailable."
    assert tracker.permission_denied is False
    assert positions.calls == [0.0, 0.0]
