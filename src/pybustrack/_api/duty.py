"""Duty endpoints: atomic vehicle claim and operator duty updates.

Endpoints:
  - POST /rpc/claim_bus (conditional claim, see ``sql/claim_bus.sql``)
  - PATCH /drivers
"""

from __future__ import annotations

import logging
from typing import Any

from pybustrack._api._common import PREFER_MINIMAL, eq
from pybustrack._constants import (
    CLAIM_CLAIMED,
    CLAIM_INACTIVE,
    CLAIM_NOT_FOUND,
    CLAIM_OK,
    RPC_CLAIM_BUS,
    TABLE_DRIVERS,
)
from pybustrack._transport import Transport
from pybustrack.exceptions import (
    BusTrackApiError,
    VehicleClaimedError,
    VehicleInactiveError,
    VehicleNotFoundError,
)
from pybustrack.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


def _parse_claim_response(vehicle_id: str, payload: Any) -> Vehicle:
    # Scalar-returning RPCs may come back wrapped in a one-element list.
    if isinstance(payload, list) and len(payload) == 1:
        payload = payload[0]
    if not isinstance(payload, dict):
        raise BusTrackApiError(f"{RPC_CLAIM_BUS} returned an unexpected payload", endpoint=RPC_CLAIM_BUS)

    status = str(payload.get("status") or "")
    if status == CLAIM_OK:
        bus = payload.get("bus")
        return Vehicle.model_validate(bus if isinstance(bus, dict) else {"bus_id": vehicle_id, "is_active": True})
    if status == CLAIM_NOT_FOUND:
        raise VehicleNotFoundError(
            f"Bus {vehicle_id} not found",
            vehicle_id=vehicle_id,
            code=status,
            endpoint=RPC_CLAIM_BUS,
        )
    if status == CLAIM_INACTIVE:
        raise VehicleInactiveError(
            f"Bus {vehicle_id} is inactive",
            vehicle_id=vehicle_id,
            code=status,
            endpoint=RPC_CLAIM_BUS,
        )
    if status == CLAIM_CLAIMED:
        holder = payload.get("holder")
        raise VehicleClaimedError(
            f"Bus {vehicle_id} is already being driven by {holder or 'another driver'}",
            vehicle_id=vehicle_id,
            holder=str(holder) if holder else None,
            code=status,
            endpoint=RPC_CLAIM_BUS,
        )
    raise BusTrackApiError(f"{RPC_CLAIM_BUS} returned unknown status {status!r}", code=status, endpoint=RPC_CLAIM_BUS)


async def claim_vehicle(transport: Transport, operator_id: str, vehicle_id: str) -> Vehicle:
    """Claim *vehicle_id* for *operator_id* in one conditional server-side update."""
    payload = await transport.request(
        "POST",
        RPC_CLAIM_BUS,
        body={"p_driver_id": operator_id, "p_bus_id": vehicle_id},
    )
    vehicle = _parse_claim_response(vehicle_id, payload)
    _logger.debug("Claimed bus %s for driver %s", vehicle.vehicle_id, operator_id)
    return vehicle


async def set_operator_duty(transport: Transport, operator_id: str, on_duty: bool, vehicle_id: str | None) -> None:
    if on_duty and vehicle_id is None:
        raise ValueError("on_duty requires a vehicle_id")
    if not on_duty:
        vehicle_id = None
    await transport.request(
        "PATCH",
        TABLE_DRIVERS,
        params={"driver_id": eq(operator_id)},
        body={"is_on_duty": on_duty, "bus_id": vehicle_id},
        prefer=PREFER_MINIMAL,
    )
