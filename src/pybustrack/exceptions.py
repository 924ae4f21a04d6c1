"""Custom exception hierarchy for pybustrack."""

from __future__ import annotations


class BusTrackError(Exception):
    """Base exception for all pybustrack errors."""


class BusTrackConfigError(BusTrackError):
    """Invalid or missing configuration."""


class BusTrackTransportError(BusTrackError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class BusTrackApiError(BusTrackError):
    """Storage returned an application-level error."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class InvalidVehicleIdentifierError(BusTrackError):
    """A scanned or typed payload did not contain a usable vehicle identifier."""


class VehicleClaimError(BusTrackApiError):
    """A vehicle could not be claimed for duty."""

    def __init__(self, message: str, *, vehicle_id: str, code: str = "", endpoint: str = "") -> None:
        self.vehicle_id = vehicle_id
        super().__init__(message, code=code, endpoint=endpoint)


class VehicleNotFoundError(VehicleClaimError):
    """No vehicle exists with the given identifier."""


class VehicleInactiveError(VehicleClaimError):
    """The vehicle exists but is not marked active."""


class VehicleClaimedError(VehicleClaimError):
    """Another operator is already on duty with the vehicle."""

    def __init__(
        self,
        message: str,
        *,
        vehicle_id: str,
        holder: str | None = None,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.holder = holder
        super().__init__(message, vehicle_id=vehicle_id, code=code, endpoint=endpoint)


class RouteNotFoundError(BusTrackApiError):
    """No route exists with the given identifier."""


class DutyStateError(BusTrackError):
    """A duty transition was requested from a state that does not allow it."""


class PositionError(BusTrackError):
    """Device position could not be acquired."""


class PositionPermissionError(PositionError):
    """The user denied access to the device position.

    Not retried on a timer; the caller must ask the user and retry explicitly.
    """


class PositionUnavailableError(PositionError):
    """The device could not produce a (fresh enough) position fix."""


class PositionTimeoutError(PositionError):
    """The position request did not complete within its timeout."""
