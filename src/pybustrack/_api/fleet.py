"""Fleet snapshot endpoint: on-duty drivers joined with their buses and routes."""

from __future__ import annotations

import logging

from pybustrack._api._common import expect_rows
from pybustrack._constants import TABLE_DRIVERS
from pybustrack._transport import Transport
from pybustrack.models.fleet import FleetEntry

_logger = logging.getLogger(__name__)

_FLEET_SELECT = (
    "bus_id,driver_name,"
    "buses!inner(bus_id,bus_name,last_updated,route_id,"
    "bus_routes(route_id,route_name,source,destination))"
)


async def fetch_on_duty_fleet(transport: Transport) -> list[FleetEntry]:
    payload = await transport.request(
        "GET",
        TABLE_DRIVERS,
        params={
            "select": _FLEET_SELECT,
            "is_on_duty": "eq.true",
            "bus_id": "not.is.null",
        },
    )
    rows = expect_rows(TABLE_DRIVERS, payload)
    entries: list[FleetEntry] = []
    for row in rows:
        entry = FleetEntry.from_driver_row(row)
        if entry is None:
            _logger.debug("Skipping on-duty driver row without bus data: bus_id=%s", row.get("bus_id"))
            continue
        entries.append(entry)
    return entries
