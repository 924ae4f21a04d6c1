"""Location reporting loop.

While an operator is on duty, samples the device position every
``report_interval`` seconds (first sample immediately) and appends it to
storage.  Failures skip the tick; only a denied permission stops the
loop until :meth:`LocationReporter.retry` is called.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pybustrack.config import BusTrackConfig
from pybustrack.device import PositionProvider, WakeLock, acquire_position
from pybustrack.exceptions import BusTrackError, DutyStateError, PositionError, PositionPermissionError
from pybustrack.models.position import PositionSample
from pybustrack.scheduler import PeriodicTask
from pybustrack.storage.base import Storage

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LocationReporter:
    """Periodic position sampler scoped to one vehicle at a time."""

    def __init__(
        self,
        storage: Storage,
        positions: PositionProvider,
        *,
        config: BusTrackConfig | None = None,
        wake_lock: WakeLock | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_sample: Callable[[PositionSample], None] | None = None,
    ) -> None:
        self._config = config or BusTrackConfig()
        self._storage = storage
        self._positions = positions
        self._wake_lock = wake_lock
        self._wake_lock_held = False
        self._clock = clock
        self._on_sample = on_sample
        self._vehicle_id: str | None = None
        self._last_sample: PositionSample | None = None
        self._permission_error: PositionPermissionError | None = None
        self._task = PeriodicTask("location-report", self._config.report_interval, self.report_once)

    @property
    def vehicle_id(self) -> str | None:
        return self._vehicle_id

    @property
    def is_running(self) -> bool:
        return self._task.is_running

    @property
    def last_sample(self) -> PositionSample | None:
        """The most recent sample written during this shift."""
        return self._last_sample

    @property
    def permission_error(self) -> PositionPermissionError | None:
        """Set when position access was denied; cleared by :meth:`retry`."""
        return self._permission_error

    @property
    def generation(self) -> int:
        return self._task.generation

    async def start(self, vehicle_id: str) -> None:
        if self._vehicle_id is not None:
            if vehicle_id == self._vehicle_id:
                return
            raise DutyStateError(f"Already reporting for bus {self._vehicle_id}")
        _logger.debug("Starting location reporting for bus %s", vehicle_id)
        self._vehicle_id = vehicle_id
        self._permission_error = None
        await self._acquire_wake_lock()
        self._task.start()

    async def stop(self) -> None:
        """Stop ticking and release the wake-lock.  Ticks in flight are discarded."""
        self._task.stop()
        await self._release_wake_lock()
        if self._vehicle_id is not None:
            _logger.debug("Stopped location reporting for bus %s", self._vehicle_id)
        self._vehicle_id = None
        self._last_sample = None
        self._permission_error = None

    async def retry(self) -> None:
        """Resume ticking after the user re-granted position access."""
        if self._vehicle_id is None:
            raise DutyStateError("Not reporting for any bus")
        self._permission_error = None
        self._task.start()

    async def drain(self) -> None:
        await self._task.drain()

    async def report_once(self, generation: int) -> PositionSample | None:
        """One reporting tick.  Returns the written sample, or ``None`` if skipped."""
        vehicle_id = self._vehicle_id
        if vehicle_id is None:
            return None

        try:
            fix = await acquire_position(self._positions, self._config.geolocation, clock=self._clock)
        except PositionPermissionError as exc:
            if self._task.is_current(generation):
                _logger.warning("Position access denied; reporting paused for bus %s", vehicle_id)
                self._permission_error = exc
                self._task.stop()
            return None
        except PositionError as exc:
            _logger.warning("Skipping position report for bus %s: %s", vehicle_id, exc)
            return None

        if not self._task.is_current(generation):
            _logger.debug("Discarding position from stopped generation=%d", generation)
            return None

        sample = PositionSample(
            vehicle_id=vehicle_id,
            latitude=fix.latitude,
            longitude=fix.longitude,
            heading=fix.heading,
            captured_at=self._clock(),
        )
        try:
            await self._storage.append_position(sample)
        except BusTrackError:
            _logger.warning("Failed to write position for bus %s", vehicle_id, exc_info=True)
            return None

        _logger.debug(
            "Reported bus=%s lat=%.6f lng=%.6f heading=%s",
            vehicle_id,
            sample.latitude,
            sample.longitude,
            sample.heading,
        )
        if self._task.is_current(generation):
            self._last_sample = sample
            if self._on_sample is not None:
                try:
                    self._on_sample(sample)
                except Exception:
                    _logger.debug("on_sample callback failed", exc_info=True)
        return sample

    async def _acquire_wake_lock(self) -> None:
        if self._wake_lock is None or self._wake_lock_held:
            return
        try:
            await self._wake_lock.acquire()
            self._wake_lock_held = True
            _logger.debug("Wake lock acquired")
        except Exception:
            _logger.debug("Wake lock unavailable", exc_info=True)

    async def _release_wake_lock(self) -> None:
        if self._wake_lock is None or not self._wake_lock_held:
            return
        self._wake_lock_held = False
        try:
            await self._wake_lock.release()
            _logger.debug("Wake lock released")
        except Exception:
            _logger.debug("Wake lock release failed", exc_info=True)
