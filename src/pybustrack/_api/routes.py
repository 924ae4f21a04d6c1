"""Route, stop and bus detail endpoints."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pybustrack._api._common import eq, expect_rows, in_list
from pybustrack._constants import TABLE_BUSES, TABLE_ROUTES, TABLE_STOPS
from pybustrack._transport import Transport
from pybustrack.exceptions import RouteNotFoundError, VehicleNotFoundError
from pybustrack.models.route import Route, Stop
from pybustrack.models.vehicle import VehicleSummary


async def fetch_route(transport: Transport, route_id: str) -> Route:
    payload = await transport.request(
        "GET",
        TABLE_ROUTES,
        params={"select": "*", "route_id": eq(route_id), "limit": "1"},
    )
    rows = expect_rows(TABLE_ROUTES, payload)
    if not rows:
        raise RouteNotFoundError(f"Route {route_id} not found", code="route_not_found", endpoint=TABLE_ROUTES)
    return Route.model_validate(rows[0])


async def fetch_active_stops(transport: Transport, stop_ids: Sequence[str]) -> list[Stop]:
    if not stop_ids:
        return []
    payload = await transport.request(
        "GET",
        TABLE_STOPS,
        params={"select": "*", "stop_id": in_list(stop_ids), "is_active": "eq.true"},
    )
    return [Stop.model_validate(row) for row in expect_rows(TABLE_STOPS, payload)]


async def fetch_vehicle_summary(transport: Transport, vehicle_id: str) -> VehicleSummary:
    payload = await transport.request(
        "GET",
        TABLE_BUSES,
        params={
            "select": "bus_id,bus_name,route_id,bus_routes(route_name,source,destination)",
            "bus_id": eq(vehicle_id),
            "limit": "1",
        },
    )
    rows = expect_rows(TABLE_BUSES, payload)
    if not rows:
        raise VehicleNotFoundError(f"Bus {vehicle_id} not found", vehicle_id=vehicle_id, endpoint=TABLE_BUSES)
    row = rows[0]
    route = row.get("bus_routes")
    data: dict[str, Any] = {
        "bus_id": row.get("bus_id") or vehicle_id,
        "bus_name": row.get("bus_name"),
        "route_id": row.get("route_id"),
        "raw": row,
    }
    if isinstance(route, dict):
        data.update(route_name=route.get("route_name"), source=route.get("source"), destination=route.get("destination"))
    return VehicleSummary.model_validate(data)
