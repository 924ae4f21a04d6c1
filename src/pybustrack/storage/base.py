"""Storage collaborator interface.

The tracking core only talks to persistence through these operations.
:class:`pybustrack.client.BusTrackClient` implements them over REST and
:class:`pybustrack.storage.memory.InMemoryStorage` in process.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from pybustrack.models.fleet import FleetEntry
from pybustrack.models.position import PositionSample
from pybustrack.models.route import Route, Stop
from pybustrack.models.vehicle import Vehicle, VehicleSummary


class Storage(Protocol):
    async def validate_and_claim_vehicle(self, operator_id: str, vehicle_id: str) -> Vehicle:
        """Atomically mark *operator_id* on duty with *vehicle_id*.

        Succeeds only if the vehicle exists, is active and no other
        operator is on duty with it.  Raises
        :class:`~pybustrack.exceptions.VehicleNotFoundError`,
        :class:`~pybustrack.exceptions.VehicleInactiveError` or
        :class:`~pybustrack.exceptions.VehicleClaimedError` otherwise,
        without mutating anything.
        """
        ...

    async def set_operator_duty(self, operator_id: str, on_duty: bool, vehicle_id: str | None) -> None: ...

    async def fetch_on_duty_fleet(self) -> list[FleetEntry]: ...

    async def fetch_latest_position(self, vehicle_id: str) -> PositionSample | None: ...

    async def append_position(self, sample: PositionSample) -> None: ...

    async def correct_heading(self, vehicle_id: str, timestamp: str, heading: float) -> None: ...

    async def fetch_route(self, route_id: str) -> Route: ...

    async def fetch_active_stops(self, stop_ids: Sequence[str]) -> list[Stop]:
        """Active stops among *stop_ids*, in no guaranteed order."""
        ...

    async def fetch_vehicle_summary(self, vehicle_id: str) -> VehicleSummary: ...
