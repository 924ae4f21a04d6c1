"""pybustrack - Async live bus position reporting and route progression tracking."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pybustrack")
except PackageNotFoundError:
    __version__ = "0+local"
from pybustrack.client import BusTrackClient
from pybustrack.config import BusTrackConfig, GeolocationProfile
from pybustrack.exceptions import (
    BusTrackApiError,
    BusTrackConfigError,
    BusTrackError,
    BusTrackTransportError,
    DutyStateError,
    InvalidVehicleIdentifierError,
    PositionError,
    PositionPermissionError,
    PositionTimeoutError,
    PositionUnavailableError,
    RouteNotFoundError,
    VehicleClaimedError,
    VehicleClaimError,
    VehicleInactiveError,
    VehicleNotFoundError,
)
from pybustrack.geo import bearing_degrees, distance_meters
from pybustrack.models import (
    DeviceFix,
    DutyState,
    FleetEntry,
    OperatorSession,
    PositionSample,
    ProgressionCursor,
    Route,
    RouteSummary,
    RouteView,
    Stop,
    Vehicle,
    VehicleSummary,
)
from pybustrack.reporter import DutyStateMachine, LocationReporter
from pybustrack.storage import InMemoryStorage, Storage
from pybustrack.viewer import FleetPoller, RouteProgressionTracker, ViewerTracker

__all__ = [
    "__version__",
    "BusTrackApiError",
    "BusTrackClient",
    "BusTrackConfig",
    "BusTrackConfigError",
    "BusTrackError",
    "BusTrackTransportError",
    "DeviceFix",
    "DutyState",
    "DutyStateError",
    "DutyStateMachine",
    "FleetEntry",
    "FleetPoller",
    "GeolocationProfile",
    "InMemoryStorage",
    "InvalidVehicleIdentifierError",
    "LocationReporter",
    "OperatorSession",
    "PositionError",
    "PositionPermissionError",
    "PositionSample",
    "PositionTimeoutError",
    "PositionUnavailableError",
    "ProgressionCursor",
    "Route",
    "RouteNotFoundError",
    "RouteProgressionTracker",
    "RouteSummary",
    "RouteView",
    "Stop",
    "Storage",
    "Vehicle",
    "VehicleClaimError",
    "VehicleClaimedError",
    "VehicleInactiveError",
    "VehicleNotFoundError",
    "VehicleSummary",
    "ViewerTracker",
    "bearing_degrees",
    "distance_meters",
]
