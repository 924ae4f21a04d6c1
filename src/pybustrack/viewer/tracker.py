"""Viewer orchestration.

Ties together the viewer's own position fix, the fleet snapshot poller,
vehicle selection and the periodic position + progression refresh for
the selected vehicle.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pybustrack.config import BusTrackConfig
from pybustrack.device import PositionProvider, acquire_position
from pybustrack.exceptions import (
    BusTrackError,
    PositionError,
    PositionPermissionError,
    PositionTimeoutError,
    PositionUnavailableError,
)
from pybustrack.models.fleet import FleetEntry
from pybustrack.models.position import DeviceFix
from pybustrack.models.route import RouteSummary, RouteView, Stop
from pybustrack.scheduler import PeriodicTask
from pybustrack.storage.base import Storage
from pybustrack.viewer.fleet import FleetPoller
from pybustrack.viewer.progression import RouteProgressionTracker, TrackedPosition

_logger = logging.getLogger(__name__)

_POSITION_ERROR_MESSAGES: tuple[tuple[type[PositionError], str], ...] = (
    (PositionPermissionError, "Location access denied by user."),
    (PositionUnavailableError, "Location information is unavailable."),
    (PositionTimeoutError, "Location request timed out."),
)
_UNKNOWN_POSITION_ERROR = "An unknown error occurred."


def _utcnow() -> datetime:
    return datetime.now(UTC)


def describe_position_error(exc: PositionError) -> str:
    for error_type, message in _POSITION_ERROR_MESSAGES:
        if isinstance(exc, error_type):
            return message
    return _UNKNOWN_POSITION_ERROR


class ViewerTracker:
    """State owner for one rider's tracking view.

    Usage::

        tracker = ViewerTracker(storage, positions)
        await tracker.start()
        await tracker.select_vehicle("BUS-12")
        ...
        tracker.next_stop, tracker.vehicle_position
        await tracker.stop()
    """

    def __init__(
        self,
        storage: Storage,
        positions: PositionProvider,
        *,
        config: BusTrackConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or BusTrackConfig()
        self._storage = storage
        self._positions = positions
        self._clock = clock
        self._fleet = FleetPoller(storage, config=self._config)
        self._progression = RouteProgressionTracker(storage, config=self._config)
        self._position_task = PeriodicTask("vehicle-position", self._config.position_interval, self.refresh_position)
        self._selected: str | None = None
        self._selection_generation = 0
        self._vehicle_position: TrackedPosition | None = None
        self._user_position: DeviceFix | None = None
        self._loading = False
        self._error: str | None = None
        self._permission_denied = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def fleet(self) -> FleetPoller:
        return self._fleet

    @property
    def active_vehicles(self) -> tuple[FleetEntry, ...]:
        return self._fleet.entries

    @property
    def progression(self) -> RouteProgressionTracker:
        return self._progression

    @property
    def selected_vehicle(self) -> str | None:
        return self._selected

    @property
    def selected_entry(self) -> FleetEntry | None:
        return self._fleet.find(self._selected) if self._selected is not None else None

    @property
    def vehicle_position(self) -> TrackedPosition | None:
        return self._vehicle_position

    @property
    def route_view(self) -> RouteView | None:
        return self._progression.route_view

    @property
    def route_summary(self) -> RouteSummary | None:
        view = self._progression.route_view
        return view.summary() if view is not None else None

    @property
    def next_stop(self) -> Stop | None:
        return self._progression.next_stop

    @property
    def user_position(self) -> DeviceFix | None:
        return self._user_position

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        """User-facing message for the last failed position request."""
        return self._error

    @property
    def permission_denied(self) -> bool:
        return self._permission_denied

    @property
    def display_position(self) -> tuple[float, float] | None:
        """Where to centre the map: the tracked vehicle, else the viewer."""
        if self._vehicle_position is not None:
            sample = self._vehicle_position.sample
            return sample.latitude, sample.longitude
        if self._user_position is not None:
            return self._user_position.latitude, self._user_position.longitude
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.locate_user()
        self._fleet.start()

    async def stop(self) -> None:
        self._fleet.stop()
        self._position_task.stop()

    async def drain(self) -> None:
        await self._fleet.drain()
        await self._position_task.drain()

    async def locate_user(self) -> DeviceFix | None:
        """Take one fresh fix for the viewer's own marker.

        Not retried on a timer; a failure leaves :attr:`error` set until
        the user asks again.
        """
        self._loading = True
        self._error = None
        self._permission_denied = False
        profile = dataclasses.replace(self._config.geolocation, high_accuracy=True, maximum_age=0.0)
        try:
            fix = await acquire_position(self._positions, profile, clock=self._clock)
        except PositionError as exc:
            self._error = describe_position_error(exc)
            self._permission_denied = isinstance(exc, PositionPermissionError)
            _logger.info("Viewer position unavailable: %s", exc)
            return None
        finally:
            self._loading = False
        self._user_position = fix
        return fix

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def select_vehicle(self, vehicle_id: str) -> None:
        """Track *vehicle_id*: reset progression, load its route, start polling its position."""
        self.clear_selection()
        self._selected = vehicle_id
        generation = self._selection_generation

        entry = self._fleet.find(vehicle_id)
        if entry is not None and entry.route_id:
            try:
                view = await self._progression.fetch_route_view(entry.route_id)
            except BusTrackError:
                _logger.warning("Could not load route %s for bus %s", entry.route_id, vehicle_id, exc_info=True)
                view = None
            if generation != self._selection_generation:
                return
            self._progression.reset(view)

        self._position_task.start()

    def clear_selection(self) -> None:
        """Forget the selected vehicle, its route, cursor and last position together."""
        self._position_task.stop()
        self._selection_generation += 1
        self._selected = None
        self._vehicle_position = None
        self._progression.clear()

    async def refresh_position(self, generation: int) -> TrackedPosition | None:
        """One position poll for the selected vehicle."""
        vehicle_id = self._selected
        if vehicle_id is None:
            return None

        try:
            sample = await self._storage.fetch_latest_position(vehicle_id)
        except BusTrackError:
            _logger.warning("Position fetch failed for bus %s", vehicle_id, exc_info=True)
            if self._position_task.is_current(generation):
                self._vehicle_position = None
            return None

        if not self._position_task.is_current(generation):
            return None
        if sample is None:
            self._vehicle_position = None
            return None

        tracked = await self._progression.observe(sample)
        if self._position_task.is_current(generation):
            self._vehicle_position = tracked
        return tracked
