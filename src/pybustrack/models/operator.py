"""Operator (driver) session model and duty states."""

from __future__ import annotations

from enum import StrEnum

from pydantic import AliasChoices, Field, model_validator

from pybustrack.models._base import BusTrackBaseModel


class DutyState(StrEnum):
    OFF = "off"
    SCANNING = "scanning"
    ON = "on"


class OperatorSession(BusTrackBaseModel):
    """An operator's duty assignment.

    ``assigned_vehicle`` is set exactly when ``on_duty`` is true.  Use
    :meth:`assign` and :meth:`release` to change both together.
    """

    operator_id: str = Field(validation_alias=AliasChoices("driver_id", "operator_id"))
    operator_name: str = Field(default="", validation_alias=AliasChoices("driver_name", "operator_name"))
    assigned_vehicle: str | None = Field(default=None, validation_alias=AliasChoices("bus_id", "assigned_vehicle"))
    on_duty: bool = Field(default=False, validation_alias=AliasChoices("is_on_duty", "on_duty"))

    @model_validator(mode="after")
    def _check_assignment(self) -> OperatorSession:
        if self.on_duty and self.assigned_vehicle is None:
            raise ValueError("an on-duty operator must have an assigned vehicle")
        if not self.on_duty and self.assigned_vehicle is not None:
            raise ValueError("an off-duty operator cannot hold a vehicle")
        return self

    def assign(self, vehicle_id: str) -> OperatorSession:
        return self.model_copy(update={"on_duty": True, "assigned_vehicle": vehicle_id})

    def release(self) -> OperatorSession:
        return self.model_copy(update={"on_duty": False, "assigned_vehicle": None})
