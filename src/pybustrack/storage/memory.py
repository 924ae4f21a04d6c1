"""In-process storage backend.

Keeps drivers, buses, routes, stops and positions in dictionaries and
implements the :class:`~pybustrack.storage.base.Storage` operations with
the same semantics as the REST backend, including the atomic claim.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from pybustrack.exceptions import (
    BusTrackApiError,
    RouteNotFoundError,
    VehicleClaimedError,
    VehicleInactiveError,
    VehicleNotFoundError,
)
from pybustrack.models.fleet import FleetEntry
from pybustrack.models.operator import OperatorSession
from pybustrack.models.position import PositionSample
from pybustrack.models.route import Route, Stop
from pybustrack.models.vehicle import Vehicle, VehicleSummary

_logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Deterministic in-memory implementation of the storage operations."""

    def __init__(self) -> None:
        self.operators: dict[str, OperatorSession] = {}
        self.vehicles: dict[str, Vehicle] = {}
        self.routes: dict[str, Route] = {}
        self.stops: dict[str, Stop] = {}
        self.positions: list[PositionSample] = []
        self._claim_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_operator(self, operator: OperatorSession) -> None:
        self.operators[operator.operator_id] = operator

    def add_vehicle(self, vehicle: Vehicle) -> None:
        self.vehicles[vehicle.vehicle_id] = vehicle

    def add_route(self, route: Route, stops: Sequence[Stop] = ()) -> None:
        self.routes[route.route_id] = route
        for stop in stops:
            self.stops[stop.stop_id] = stop

    # ------------------------------------------------------------------
    # Duty
    # ------------------------------------------------------------------

    def _operator(self, operator_id: str) -> OperatorSession:
        operator = self.operators.get(operator_id)
        if operator is None:
            raise BusTrackApiError(f"Unknown operator {operator_id}", code="operator_not_found")
        return operator

    async def validate_and_claim_vehicle(self, operator_id: str, vehicle_id: str) -> Vehicle:
        async with self._claim_lock:
            operator = self._operator(operator_id)
            vehicle = self.vehicles.get(vehicle_id)
            if vehicle is None:
                raise VehicleNotFoundError(f"Bus {vehicle_id} not found", vehicle_id=vehicle_id)
            if not vehicle.active:
                raise VehicleInactiveError(f"Bus {vehicle_id} is inactive", vehicle_id=vehicle_id)
            for other in self.operators.values():
                if other.operator_id != operator_id and other.on_duty and other.assigned_vehicle == vehicle_id:
                    raise VehicleClaimedError(
                        f"Bus {vehicle_id} is already being driven by {other.operator_name or other.operator_id}",
                        vehicle_id=vehicle_id,
                        holder=other.operator_name or other.operator_id,
                    )
            self.operators[operator_id] = operator.assign(vehicle_id)
            _logger.debug("Operator %s claimed bus %s", operator_id, vehicle_id)
            return vehicle

    async def set_operator_duty(self, operator_id: str, on_duty: bool, vehicle_id: str | None) -> None:
        operator = self._operator(operator_id)
        if on_duty:
            if vehicle_id is None:
                raise ValueError("on_duty requires a vehicle_id")
            self.operators[operator_id] = operator.assign(vehicle_id)
        else:
            self.operators[operator_id] = operator.release()

    # ------------------------------------------------------------------
    # Fleet / vehicles
    # ------------------------------------------------------------------

    def _driver_row(self, operator: OperatorSession) -> dict[str, Any]:
        row: dict[str, Any] = {"bus_id": operator.assigned_vehicle, "driver_name": operator.operator_name}
        vehicle = self.vehicles.get(operator.assigned_vehicle or "")
        if vehicle is None:
            return row
        bus: dict[str, Any] = {
            "bus_id": vehicle.vehicle_id,
            "bus_name": vehicle.name,
            "route_id": vehicle.route_id,
            "last_updated": vehicle.last_updated,
            "bus_routes": None,
        }
        route = self.routes.get(vehicle.route_id or "")
        if route is not None:
            bus["bus_routes"] = {
                "route_id": route.route_id,
                "route_name": route.name,
                "source": route.origin,
                "destination": route.destination,
            }
        row["buses"] = bus
        return row

    async def fetch_on_duty_fleet(self) -> list[FleetEntry]:
        entries: list[FleetEntry] = []
        for operator in self.operators.values():
            if not operator.on_duty or operator.assigned_vehicle is None:
                continue
            entry = FleetEntry.from_driver_row(self._driver_row(operator))
            if entry is not None:
                entries.append(entry)
        return entries

    async def fetch_vehicle_summary(self, vehicle_id: str) -> VehicleSummary:
        vehicle = self.vehicles.get(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(f"Bus {vehicle_id} not found", vehicle_id=vehicle_id)
        data: dict[str, Any] = {"bus_id": vehicle.vehicle_id, "bus_name": vehicle.name, "route_id": vehicle.route_id}
        route = self.routes.get(vehicle.route_id or "")
        if route is not None:
            data.update(route_name=route.name, source=route.origin, destination=route.destination)
        return VehicleSummary.model_validate(data)

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    async def fetch_latest_position(self, vehicle_id: str) -> PositionSample | None:
        samples = [sample for sample in self.positions if sample.vehicle_id == vehicle_id]
        if not samples:
            return None
        return max(samples, key=lambda sample: sample.captured_at)

    async def append_position(self, sample: PositionSample) -> None:
        self.positions.append(sample)

    async def correct_heading(self, vehicle_id: str, timestamp: str, heading: float) -> None:
        for index, sample in enumerate(self.positions):
            if sample.vehicle_id == vehicle_id and sample.storage_timestamp == timestamp:
                self.positions[index] = sample.with_heading(heading)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    async def fetch_route(self, route_id: str) -> Route:
        route = self.routes.get(route_id)
        if route is None:
            raise RouteNotFoundError(f"Route {route_id} not found", code="route_not_found")
        return route

    async def fetch_active_stops(self, stop_ids: Sequence[str]) -> list[Stop]:
        wanted = set(stop_ids)
        # Reverse insertion order so callers cannot rely on it.
        return [stop for stop in reversed(list(self.stops.values())) if stop.stop_id in wanted and stop.active]
