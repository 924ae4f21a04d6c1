"""Operator duty state machine.

``OFF -> SCANNING -> ON -> OFF``.  Starting a shift captures a vehicle
identifier, claims the vehicle atomically through storage and starts the
location reporting loop.  Ending a shift stops the loop, releases the
wake-lock and clears the assignment in storage and in the local cache.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pybustrack.config import BusTrackConfig
from pybustrack.device import IdentifierCapture, PositionProvider, WakeLock
from pybustrack.exceptions import BusTrackError, DutyStateError
from pybustrack.identifier import parse_vehicle_identifier
from pybustrack.models.operator import DutyState, OperatorSession
from pybustrack.models.position import PositionSample
from pybustrack.models.vehicle import Vehicle, VehicleSummary
from pybustrack.reporter.loop import LocationReporter
from pybustrack.session_cache import CachedSession, SessionCache
from pybustrack.storage.base import Storage

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DutyStateMachine:
    """Owns one operator's session, duty state and reporting loop.

    Usage::

        machine = DutyStateMachine(operator, storage, positions, cache, capture=scanner)
        await machine.resume()          # pick up a shift after a reload
        await machine.start_shift()     # scan a bus and go on duty
        ...
        await machine.end_shift()
    """

    def __init__(
        self,
        operator: OperatorSession,
        storage: Storage,
        positions: PositionProvider,
        cache: SessionCache,
        *,
        capture: IdentifierCapture | None = None,
        wake_lock: WakeLock | None = None,
        config: BusTrackConfig | None = None,
        token: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_state_change: Callable[[DutyState], None] | None = None,
    ) -> None:
        self._session = operator
        self._storage = storage
        self._cache = cache
        self._capture = capture
        self._token = token
        self._on_state_change = on_state_change
        self._state = DutyState.OFF
        self._assignment: VehicleSummary | None = None
        self._last_error: BusTrackError | None = None
        self._reporter = LocationReporter(
            storage,
            positions,
            config=config,
            wake_lock=wake_lock,
            clock=clock,
            on_sample=self._remember_position,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> DutyState:
        return self._state

    @property
    def session(self) -> OperatorSession:
        return self._session

    @property
    def reporter(self) -> LocationReporter:
        return self._reporter

    @property
    def assignment(self) -> VehicleSummary | None:
        """Display fields for the current bus, when they could be fetched."""
        return self._assignment

    @property
    def last_error(self) -> BusTrackError | None:
        """Why the last shift start failed, for reporting to the user."""
        return self._last_error

    @property
    def last_position(self) -> PositionSample | None:
        return self._reporter.last_sample

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def begin_scan(self) -> None:
        """``OFF -> SCANNING``."""
        self._require(DutyState.OFF, "start a shift")
        self._last_error = None
        self._set_state(DutyState.SCANNING)

    async def cancel_scan(self) -> None:
        """``SCANNING -> OFF`` without touching storage."""
        self._require(DutyState.SCANNING, "cancel a scan")
        self._set_state(DutyState.OFF)

    async def submit_identifier(self, payload: str | None) -> Vehicle:
        """``SCANNING -> ON`` on a valid claim, ``SCANNING -> OFF`` otherwise.

        Raises
        ------
        InvalidVehicleIdentifierError
            The payload held no identifier.
        VehicleClaimError
            The vehicle is unknown, inactive or held by another operator.
        BusTrackError
            Storage could not be reached.
        """
        self._require(DutyState.SCANNING, "submit a vehicle identifier")
        try:
            vehicle_id = parse_vehicle_identifier(payload)
            vehicle = await self._storage.validate_and_claim_vehicle(self._session.operator_id, vehicle_id)
        except BusTrackError as exc:
            _logger.info("Shift start rejected for operator %s: %s", self._session.operator_id, exc)
            self._last_error = exc
            self._set_state(DutyState.OFF)
            raise

        self._session = self._session.assign(vehicle.vehicle_id)
        self._save_cache(last_position=None)
        await self._reporter.start(vehicle.vehicle_id)
        self._set_state(DutyState.ON)
        _logger.info("Operator %s on duty with bus %s", self._session.operator_id, vehicle.vehicle_id)
        await self._load_assignment(vehicle.vehicle_id)
        return vehicle

    async def start_shift(self) -> Vehicle | None:
        """Run a full scan through the identifier capture collaborator.

        Returns ``None`` when the operator cancelled the capture.
        """
        if self._capture is None:
            raise DutyStateError("No identifier capture configured")
        await self.begin_scan()
        try:
            payload = await self._capture.capture()
        except Exception:
            await self.cancel_scan()
            raise
        if payload is None:
            await self.cancel_scan()
            return None
        return await self.submit_identifier(payload)

    async def end_shift(self) -> None:
        """``ON -> OFF``.

        If storage cannot be updated the shift stays on, reporting is
        resumed and the error is raised so the user can retry.
        """
        self._require(DutyState.ON, "end a shift")
        vehicle_id = self._session.assigned_vehicle
        await self._reporter.stop()
        try:
            await self._storage.set_operator_duty(self._session.operator_id, False, None)
        except BusTrackError:
            _logger.warning("Failed to end shift for operator %s", self._session.operator_id, exc_info=True)
            if vehicle_id is not None:
                await self._reporter.start(vehicle_id)
            raise

        self._write_cache(self._snapshot(last_position=None).cleared())
        self._session = self._session.release()
        self._assignment = None
        self._set_state(DutyState.OFF)
        _logger.info("Operator %s off duty (bus %s)", self._session.operator_id, vehicle_id)

    async def logout(self) -> None:
        """End any shift in progress, then forget the cached session."""
        if self._state == DutyState.ON:
            await self.end_shift()
        elif self._state == DutyState.SCANNING:
            await self.cancel_scan()
        self._cache.clear()

    async def resume(self) -> bool:
        """Re-enter ``ON`` from the local cache after a reload.

        Returns ``True`` when a cached on-duty session was resumed.  The
        vehicle is not re-claimed; storage already records the assignment.
        """
        self._require(DutyState.OFF, "resume a shift")
        cached = self._cache.load()
        if cached is None or cached.operator.operator_id != self._session.operator_id:
            return False
        operator = cached.operator
        if not operator.on_duty or operator.assigned_vehicle is None:
            return False
        self._session = operator
        self._token = cached.token or self._token
        await self._reporter.start(operator.assigned_vehicle)
        self._set_state(DutyState.ON)
        _logger.info("Resumed shift for operator %s with bus %s", operator.operator_id, operator.assigned_vehicle)
        await self._load_assignment(operator.assigned_vehicle)
        return True

    async def retry_reporting(self) -> None:
        """Restart reporting after a position permission error."""
        self._require(DutyState.ON, "retry reporting")
        await self._reporter.retry()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, state: DutyState, action: str) -> None:
        if self._state != state:
            raise DutyStateError(f"Cannot {action} while duty state is {self._state.value}")

    def _set_state(self, state: DutyState) -> None:
        self._state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception:
                _logger.debug("on_state_change callback failed", exc_info=True)

    def _snapshot(self, *, last_position: PositionSample | None) -> CachedSession:
        return CachedSession(operator=self._session, token=self._token, last_position=last_position)

    def _save_cache(self, *, last_position: PositionSample | None) -> None:
        self._write_cache(self._snapshot(last_position=last_position))

    def _write_cache(self, session: CachedSession) -> None:
        # Storage holds the duty state; the local cache only speeds up resume.
        try:
            self._cache.save(session)
        except OSError:
            _logger.warning("Could not write session cache for operator %s", session.operator.operator_id, exc_info=True)

    def _remember_position(self, sample: PositionSample) -> None:
        if self._state == DutyState.ON:
            self._save_cache(last_position=sample)

    async def _load_assignment(self, vehicle_id: str) -> None:
        try:
            self._assignment = await self._storage.fetch_vehicle_summary(vehicle_id)
        except BusTrackError:
            _logger.warning("Could not load details for bus %s", vehicle_id, exc_info=True)
            self._assignment = None
