#!/usr/bin/env python3
"""Drive a simulated bus around a route and watch it from a viewer.

Runs a reporter and a viewer against in-memory storage in one process.
The simulated GPS walks the bus along straight lines between the route's
stops, so the viewer's next-stop cursor can be watched advancing.

Usage
-----
::

    python scripts/simulate_route.py --ticks 40 --interval 0.2
    python scripts/simulate_route.py --step-m 25 -v
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pybustrack import (  # noqa: E402
    BusTrackConfig,
    DeviceFix,
    DutyStateMachine,
    InMemoryStorage,
    OperatorSession,
    Route,
    Stop,
    Vehicle,
    ViewerTracker,
    bearing_degrees,
    distance_meters,
)
from pybustrack.session_cache import MemorySessionCache  # noqa: E402

_STOPS = [
    Stop(stop_id="S1", name="Central Station", latitude=12.9716, longitude=77.5946),
    Stop(stop_id="S2", name="Market Square", latitude=12.9750, longitude=77.5990),
    Stop(stop_id="S3", name="University Gate", latitude=12.9790, longitude=77.5960),
]


class _RouteWalker:
    """Position provider that moves a fixed distance toward the next stop per request."""

    def __init__(self, stops: list[Stop], step_m: float) -> None:
        self._stops = stops
        self._step_m = step_m
        self._lat = stops[0].latitude
        self._lng = stops[0].longitude
        self._target = 1

    async def current_position(self, *, high_accuracy: bool, maximum_age: float) -> DeviceFix:
        target = self._stops[self._target]
        remaining = distance_meters(self._lat, self._lng, target.latitude, target.longitude)
        heading = bearing_degrees(self._lat, self._lng, target.latitude, target.longitude)
        if remaining <= self._step_m:
            self._lat, self._lng = target.latitude, target.longitude
            self._target = (self._target + 1) % len(self._stops)
        else:
            fraction = self._step_m / remaining
            self._lat += (target.latitude - self._lat) * fraction
            self._lng += (target.longitude - self._lng) * fraction
        return DeviceFix(latitude=self._lat, longitude=self._lng, heading=heading, timestamp=datetime.now(UTC))


class _Scanner:
    def __init__(self, payload: str) -> None:
        self._payload = payload

    async def capture(self) -> str | None:
        return self._payload


def _build_storage() -> InMemoryStorage:
    storage = InMemoryStorage()
    storage.add_route(
        Route(
            route_id="R1",
            name="Loop 1",
            origin="Central Station",
            destination="University Gate",
            stop_sequence=tuple(stop.stop_id for stop in _STOPS),
            distance_km=1.8,
            estimated_minutes=12,
        ),
        _STOPS,
    )
    storage.add_vehicle(Vehicle(vehicle_id="BUS-1", name="Bus 1", route_id="R1", active=True))
    storage.add_operator(OperatorSession(operator_id="D1", operator_name="Asha"))
    return storage


async def _run(args: argparse.Namespace) -> int:
    config = BusTrackConfig(report_interval=args.interval, position_interval=args.interval, fleet_interval=args.interval)
    storage = _build_storage()
    walker = _RouteWalker(_STOPS, args.step_m)

    duty = DutyStateMachine(
        storage.operators["D1"],
        storage,
        walker,
        MemorySessionCache(),
        capture=_Scanner('{"bus_id": "BUS-1"}'),
        config=config,
    )
    await duty.start_shift()
    print(f"Driver on duty with {duty.assignment.name if duty.assignment else duty.session.assigned_vehicle}")

    viewer = ViewerTracker(storage, walker, config=config)
    await viewer.fleet.refresh()
    await viewer.select_vehicle("BUS-1")

    last_index: int | None = None
    for _ in range(args.ticks):
        await asyncio.sleep(args.interval)
        tracked = viewer.vehicle_position
        if tracked is None:
            continue
        if tracked.current_stop_index != last_index:
            last_index = tracked.current_stop_index
            stop = tracked.next_stop
            print(
                f"lat={tracked.sample.latitude:.5f} lng={tracked.sample.longitude:.5f} "
                f"heading={tracked.sample.heading or 0:.0f} next={stop.name if stop else '-'}"
            )

    viewer.clear_selection()
    await viewer.stop()
    await duty.logout()
    await duty.reporter.drain()
    print(f"Stored {len(storage.positions)} samples")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--ticks", type=int, default=40, help="Viewer refreshes to watch")
    parser.add_argument("--interval", type=float, default=0.2, help="Seconds between ticks")
    parser.add_argument("--step-m", type=float, default=60.0, help="Metres travelled per position fix")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
