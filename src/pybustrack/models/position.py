"""Position models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pybustrack._normalize import safe_float
from pybustrack.geo import normalize_heading
from pybustrack.models._base import BusTrackBaseModel, OptionalTimestamp, Timestamp


def _coerce_heading(value: Any) -> float | None:
    heading = safe_float(value)
    if heading is None:
        return None
    return normalize_heading(heading)


class PositionSample(BusTrackBaseModel):
    """A reported vehicle position, as stored in ``bus_locations``.

    Samples are immutable; a new reading is a new row.  ``heading`` is
    wrapped into ``[0, 360)`` or ``None`` when the device gave none.
    """

    vehicle_id: str = Field(validation_alias=AliasChoices("bus_id", "vehicle_id"))
    latitude: float
    longitude: float
    heading: float | None = None
    captured_at: Timestamp = Field(validation_alias=AliasChoices("timestamp", "captured_at"))

    @field_validator("heading", mode="before")
    @classmethod
    def _normalize_heading(cls, value: Any) -> float | None:
        return _coerce_heading(value)

    @property
    def storage_timestamp(self) -> str:
        """Timestamp exactly as stored, used to match the row on update."""
        stored = self.raw.get("timestamp")
        if isinstance(stored, str) and stored:
            return stored
        return self.captured_at.isoformat()

    def to_row(self) -> dict[str, Any]:
        return {
            "bus_id": self.vehicle_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "heading": self.heading,
            "timestamp": self.storage_timestamp,
        }

    def with_heading(self, heading: float | None) -> PositionSample:
        return self.model_copy(update={"heading": _coerce_heading(heading)})


class DeviceFix(BusTrackBaseModel):
    """A single reading from the device's position sensor.

    Parameters
    ----------
    latitude, longitude : float
        Position in degrees.
    accuracy : float or None
        Horizontal accuracy radius in metres.
    heading : float or None
        Direction of travel in degrees, when the sensor reports one.
    timestamp : datetime or None
        When the fix was taken; used to enforce the staleness ceiling.
        ``None`` means "just now".
    """

    latitude: float
    longitude: float
    accuracy: float | None = None
    heading: float | None = None
    timestamp: OptionalTimestamp = None

    @field_validator("accuracy", "heading", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    def age_seconds(self, now: datetime) -> float:
        if self.timestamp is None:
            return 0.0
        return (now - self.timestamp).total_seconds()
