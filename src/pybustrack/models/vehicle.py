"""Vehicle models."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from pybustrack._constants import UNKNOWN_PLACE, UNKNOWN_ROUTE
from pybustrack.models._base import BusTrackBaseModel, OptionalTimestamp


class Vehicle(BusTrackBaseModel):
    """A bus as stored in the ``buses`` table."""

    vehicle_id: str = Field(validation_alias=AliasChoices("bus_id", "vehicle_id"))
    name: str = Field(default="", validation_alias=AliasChoices("bus_name", "name"))
    route_id: str | None = Field(default=None, validation_alias=AliasChoices("route_id"))
    average_speed: float | None = Field(default=None, validation_alias=AliasChoices("avg_speed", "average_speed"))
    """Average speed in km/h."""
    active: bool = Field(default=False, validation_alias=AliasChoices("is_active", "active"))
    last_updated: OptionalTimestamp = Field(default=None, validation_alias=AliasChoices("last_updated"))


class VehicleSummary(BusTrackBaseModel):
    """A vehicle joined with its route's display fields.

    Missing route fields fall back to ``"Unknown Route"`` / ``"Unknown"``
    so a summary is never partially populated.
    """

    vehicle_id: str = Field(validation_alias=AliasChoices("bus_id", "vehicle_id"))
    name: str = Field(default="", validation_alias=AliasChoices("bus_name", "name"))
    route_id: str | None = Field(default=None, validation_alias=AliasChoices("route_id"))
    route_name: str = Field(default=UNKNOWN_ROUTE, validation_alias=AliasChoices("route_name"))
    source: str = Field(default=UNKNOWN_PLACE, validation_alias=AliasChoices("source"))
    destination: str = Field(default=UNKNOWN_PLACE, validation_alias=AliasChoices("destination"))
