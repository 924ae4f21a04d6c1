"""Rider-side fleet polling and live vehicle tracking."""

from pybustrack.viewer.fleet import FleetPoller
from pybustrack.viewer.progression import (
    ProgressionStep,
    RouteProgressionTracker,
    TrackedPosition,
    advance_progression,
)
from pybustrack.viewer.tracker import ViewerTracker, describe_position_error

__all__ = [
    "FleetPoller",
    "ProgressionStep",
    "RouteProgressionTracker",
    "TrackedPosition",
    "ViewerTracker",
    "advance_progression",
    "describe_position_error",
]
