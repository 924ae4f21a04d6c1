"""High-level async client for the bus tracking storage API."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import aiohttp

from pybustrack._api import duty as _duty_api
from pybustrack._api import fleet as _fleet_api
from pybustrack._api import positions as _positions_api
from pybustrack._api import routes as _routes_api
from pybustrack._transport import RestTransport, Transport
from pybustrack.config import BusTrackConfig
from pybustrack.exceptions import BusTrackError
from pybustrack.models.fleet import FleetEntry
from pybustrack.models.position import PositionSample
from pybustrack.models.route import Route, Stop
from pybustrack.models.vehicle import Vehicle, VehicleSummary


class BusTrackClient:
    """Async REST implementation of the storage operations.

    Usage::

        async with BusTrackClient(config) as client:
            fleet = await client.fetch_on_duty_fleet()
    """

    def __init__(
        self,
        config: BusTrackConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BusTrackClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = RestTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise BusTrackError("Client not initialized. Use 'async with BusTrackClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Duty
    # ------------------------------------------------------------------

    async def validate_and_claim_vehicle(self, operator_id: str, vehicle_id: str) -> Vehicle:
        return await _duty_api.claim_vehicle(self._require_transport(), operator_id, vehicle_id)

    async def set_operator_duty(self, operator_id: str, on_duty: bool, vehicle_id: str | None) -> None:
        await _duty_api.set_operator_duty(self._require_transport(), operator_id, on_duty, vehicle_id)

    # ------------------------------------------------------------------
    # Fleet / vehicles
    # ------------------------------------------------------------------

    async def fetch_on_duty_fleet(self) -> list[FleetEntry]:
        return await _fleet_api.fetch_on_duty_fleet(self._require_transport())

    async def fetch_vehicle_summary(self, vehicle_id: str) -> VehicleSummary:
        return await _routes_api.fetch_vehicle_summary(self._require_transport(), vehicle_id)

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    async def fetch_latest_position(self, vehicle_id: str) -> PositionSample | None:
        return await _positions_api.fetch_latest_position(self._require_transport(), vehicle_id)

    async def append_position(self, sample: PositionSample) -> None:
        await _positions_api.append_position(self._require_transport(), sample)

    async def correct_heading(self, vehicle_id: str, timestamp: str, heading: float) -> None:
        await _positions_api.correct_heading(self._require_transport(), vehicle_id, timestamp, heading)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    async def fetch_route(self, route_id: str) -> Route:
        return await _routes_api.fetch_route(self._require_transport(), route_id)

    async def fetch_active_stops(self, stop_ids: Sequence[str]) -> list[Stop]:
        return await _routes_api.fetch_active_stops(self._require_transport(), stop_ids)
