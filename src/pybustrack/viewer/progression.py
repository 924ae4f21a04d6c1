"""Route progression: which stop a vehicle is heading to next.

The cursor starts at the first stop of the route.  When a position
sample is within ``advance_threshold_m`` of the current target stop, the
cursor moves to the following stop (wrapping to the first after the
last) and the displayed heading becomes the bearing from the sample to
that new target.  The corrected heading is written back to the stored
sample so other viewers see it too.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from pybustrack.config import BusTrackConfig
from pybustrack.exceptions import BusTrackError
from pybustrack.geo import bearing_degrees, distance_meters
from pybustrack.models.position import PositionSample
from pybustrack.models.route import ProgressionCursor, RouteView, Stop
from pybustrack.storage.base import Storage

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressionStep:
    cursor: ProgressionCursor
    heading: float | None
    advanced: bool


@dataclass(frozen=True, slots=True)
class TrackedPosition:
    """A vehicle position prepared for display."""

    sample: PositionSample
    next_stop: Stop | None
    current_stop_index: int | None
    advanced: bool


def advance_progression(cursor: ProgressionCursor, sample: PositionSample, threshold_m: float) -> ProgressionStep:
    """Apply the stop-advancement rule to one sample."""
    target = cursor.next_stop
    if target is None:
        return ProgressionStep(cursor=cursor, heading=sample.heading, advanced=False)

    distance = distance_meters(sample.latitude, sample.longitude, target.latitude, target.longitude)
    if distance > threshold_m:
        return ProgressionStep(cursor=cursor, heading=sample.heading, advanced=False)

    moved = cursor.advanced()
    new_target = moved.next_stop
    assert new_target is not None  # noqa: S101
    heading = bearing_degrees(sample.latitude, sample.longitude, new_target.latitude, new_target.longitude)
    _logger.debug(
        "Bus %s reached stop %s (%.1fm); next stop %s heading=%.1f",
        sample.vehicle_id,
        target.stop_id,
        distance,
        new_target.stop_id,
        heading,
    )
    return ProgressionStep(cursor=moved, heading=heading, advanced=True)


class RouteProgressionTracker:
    """Owns the progression cursor for the selected vehicle."""

    def __init__(self, storage: Storage, *, config: BusTrackConfig | None = None) -> None:
        self._config = config or BusTrackConfig()
        self._storage = storage
        self._cursor: ProgressionCursor | None = None
        self._last_key: tuple[str, datetime] | None = None
        self._last_heading: float | None = None

    @property
    def cursor(self) -> ProgressionCursor | None:
        return self._cursor

    @property
    def route_view(self) -> RouteView | None:
        return self._cursor.route_view if self._cursor is not None else None

    @property
    def current_stop_index(self) -> int | None:
        return self._cursor.current_stop_index if self._cursor is not None else None

    @property
    def next_stop(self) -> Stop | None:
        return self._cursor.next_stop if self._cursor is not None else None

    async def fetch_route_view(self, route_id: str) -> RouteView:
        """Fetch a route and resolve it to its active stops in route order."""
        route = await self._storage.fetch_route(route_id)
        stops = await self._storage.fetch_active_stops(route.stop_sequence) if route.stop_sequence else []
        view = RouteView.resolve(route, stops)
        _logger.debug("Route %s resolved to %d active stops", route_id, len(view.stops))
        return view

    async def load_route(self, route_id: str) -> RouteView:
        view = await self.fetch_route_view(route_id)
        self.reset(view)
        return view

    def reset(self, route_view: RouteView | None) -> None:
        """Point the cursor at the first stop of *route_view* (or drop it)."""
        self._cursor = ProgressionCursor.start(route_view) if route_view is not None else None
        self._last_key = None
        self._last_heading = None

    def clear(self) -> None:
        self.reset(None)

    async def observe(self, sample: PositionSample) -> TrackedPosition:
        """Run the advancement rule for a freshly fetched sample."""
        cursor = self._cursor
        if cursor is None or cursor.current_stop_index is None:
            return TrackedPosition(sample=sample, next_stop=None, current_stop_index=None, advanced=False)

        key = (sample.vehicle_id, sample.captured_at)
        if self._config.dedupe_by_timestamp and key == self._last_key:
            heading = self._last_heading if self._last_heading is not None else sample.heading
            return TrackedPosition(
                sample=sample.with_heading(heading),
                next_stop=cursor.next_stop,
                current_stop_index=cursor.current_stop_index,
                advanced=False,
            )

        step = advance_progression(cursor, sample, self._config.advance_threshold_m)
        self._cursor = step.cursor
        self._last_key = key
        self._last_heading = step.heading if step.advanced else None

        display = sample
        if step.advanced and step.heading is not None:
            display = sample.with_heading(step.heading)
            await self._write_back_heading(sample, step.heading)

        return TrackedPosition(
            sample=display,
            next_stop=step.cursor.next_stop,
            current_stop_index=step.cursor.current_stop_index,
            advanced=step.advanced,
        )

    async def _write_back_heading(self, sample: PositionSample, heading: float) -> None:
        try:
            await self._storage.correct_heading(sample.vehicle_id, sample.storage_timestamp, heading)
        except BusTrackError:
            _logger.warning("Failed to store corrected heading for bus %s", sample.vehicle_id, exc_info=True)
