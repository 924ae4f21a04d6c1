"""Fleet snapshot poller.

Refreshes the list of on-duty vehicles immediately on start and then
every ``fleet_interval`` seconds.  Each successful refresh replaces the
previous list wholesale; a failed refresh keeps it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pybustrack.config import BusTrackConfig
from pybustrack.exceptions import BusTrackError
from pybustrack.models.fleet import FleetEntry
from pybustrack.scheduler import PeriodicTask
from pybustrack.storage.base import Storage

_logger = logging.getLogger(__name__)


class FleetPoller:
    def __init__(
        self,
        storage: Storage,
        *,
        config: BusTrackConfig | None = None,
        on_update: Callable[[tuple[FleetEntry, ...]], None] | None = None,
    ) -> None:
        self._config = config or BusTrackConfig()
        self._storage = storage
        self._on_update = on_update
        self._entries: tuple[FleetEntry, ...] = ()
        self._task = PeriodicTask("fleet-snapshot", self._config.fleet_interval, self._tick)

    @property
    def entries(self) -> tuple[FleetEntry, ...]:
        return self._entries

    @property
    def is_running(self) -> bool:
        return self._task.is_running

    def find(self, vehicle_id: str) -> FleetEntry | None:
        for entry in self._entries:
            if entry.vehicle_id == vehicle_id:
                return entry
        return None

    def start(self) -> None:
        self._task.start()

    def stop(self) -> None:
        self._task.stop()

    async def drain(self) -> None:
        await self._task.drain()

    async def refresh(self) -> tuple[FleetEntry, ...]:
        """Fetch and install a new snapshot outside the timer."""
        entries = await self._storage.fetch_on_duty_fleet()
        self._install(entries)
        return self._entries

    async def _tick(self, generation: int) -> None:
        try:
            entries = await self._storage.fetch_on_duty_fleet()
        except BusTrackError:
            _logger.warning("Fleet refresh failed; keeping %d entries", len(self._entries), exc_info=True)
            return
        if not self._task.is_current(generation):
            return
        self._install(entries)

    def _install(self, entries: list[FleetEntry]) -> None:
        self._entries = tuple(entries)
        _logger.debug("Fleet snapshot: %d active buses", len(self._entries))
        if self._on_update is not None:
            try:
                self._on_update(self._entries)
            except Exception:
                _logger.debug("on_update callback failed", exc_info=True)
