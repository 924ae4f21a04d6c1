"""Fleet snapshot model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field

from pybustrack._constants import UNKNOWN_PLACE, UNKNOWN_ROUTE
from pybustrack.models._base import BusTrackBaseModel, OptionalTimestamp


class FleetEntry(BusTrackBaseModel):
    """An on-duty vehicle joined with its descriptive and route fields.

    Derived on every fleet poll and never persisted.  Route fields that
    are missing from the join are filled with placeholders.
    """

    vehicle_id: str = Field(validation_alias=AliasChoices("bus_id", "vehicle_id"))
    vehicle_name: str = Field(default="", validation_alias=AliasChoices("bus_name", "vehicle_name"))
    operator_name: str = Field(default="", validation_alias=AliasChoices("driver_name", "operator_name"))
    route_id: str | None = None
    route_name: str = UNKNOWN_ROUTE
    source: str = UNKNOWN_PLACE
    destination: str = UNKNOWN_PLACE
    last_updated: OptionalTimestamp = None

    @classmethod
    def from_driver_row(cls, row: dict[str, Any]) -> FleetEntry | None:
        """Build an entry from a ``drivers`` row with embedded ``buses`` / ``bus_routes``.

        Returns ``None`` when the vehicle join is missing; such rows are
        omitted from the snapshot rather than half-filled.
        """
        bus = row.get("buses")
        vehicle_id = row.get("bus_id")
        if not isinstance(bus, dict) or not vehicle_id:
            return None
        route = bus.get("bus_routes")
        if not isinstance(route, dict):
            route = {}
        return cls.model_validate(
            {
                "bus_id": vehicle_id,
                "bus_name": bus.get("bus_name"),
                "driver_name": row.get("driver_name"),
                "route_id": bus.get("route_id"),
                "route_name": route.get("route_name"),
                "source": route.get("source"),
                "destination": route.get("destination"),
                "last_updated": bus.get("last_updated"),
                "raw": row,
            }
        )
