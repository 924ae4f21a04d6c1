"""Data models for buses, routes, stops, positions and duty sessions."""

from pybustrack.models._base import BusTrackBaseModel, OptionalTimestamp, Timestamp
from pybustrack.models.fleet import FleetEntry
from pybustrack.models.operator import DutyState, OperatorSession
from pybustrack.models.position import DeviceFix, PositionSample
from pybustrack.models.route import ProgressionCursor, Route, RouteSummary, RouteView, Stop
from pybustrack.models.vehicle import Vehicle, VehicleSummary

__all__ = [
    "BusTrackBaseModel",
    "DeviceFix",
    "DutyState",
    "FleetEntry",
    "OperatorSession",
    "OptionalTimestamp",
    "PositionSample",
    "ProgressionCursor",
    "Route",
    "RouteSummary",
    "RouteView",
    "Stop",
    "Timestamp",
    "Vehicle",
    "VehicleSummary",
]
