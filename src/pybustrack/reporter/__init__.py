"""Operator-side duty tracking and position reporting."""

from pybustrack.reporter.duty import DutyStateMachine
from pybustrack.reporter.loop import LocationReporter

__all__ = ["DutyStateMachine", "LocationReporter"]
