"""Position endpoints on the ``bus_locations`` table."""

from __future__ import annotations

from pybustrack._api._common import PREFER_MINIMAL, eq, expect_rows
from pybustrack._constants import TABLE_LOCATIONS
from pybustrack._transport import Transport
from pybustrack.models.position import PositionSample


async def fetch_latest_position(transport: Transport, vehicle_id: str) -> PositionSample | None:
    payload = await transport.request(
        "GET",
        TABLE_LOCATIONS,
        params={
            "select": "bus_id,latitude,longitude,timestamp,heading",
            "bus_id": eq(vehicle_id),
            "order": "timestamp.desc",
            "limit": "1",
        },
    )
    rows = expect_rows(TABLE_LOCATIONS, payload)
    if not rows:
        return None
    row = dict(rows[0])
    row.setdefault("bus_id", vehicle_id)
    return PositionSample.model_validate(row)


async def append_position(transport: Transport, sample: PositionSample) -> None:
    await transport.request("POST", TABLE_LOCATIONS, body=[sample.to_row()], prefer=PREFER_MINIMAL)


async def correct_heading(transport: Transport, vehicle_id: str, timestamp: str, heading: float) -> None:
    """Overwrite the heading of the sample stored at exactly *timestamp*."""
    await transport.request(
        "PATCH",
        TABLE_LOCATIONS,
        params={"bus_id": eq(vehicle_id), "timestamp": eq(timestamp)},
        body={"heading": heading},
        prefer=PREFER_MINIMAL,
    )
