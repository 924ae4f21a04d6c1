"""Great-circle geometry on a spherical Earth.

Inputs and outputs are in degrees; computation is in radians using the
mean Earth radius.
"""

from __future__ import annotations

import math

from pybustrack._constants import EARTH_RADIUS_M


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in metres between two points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def bearing_degrees(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Initial compass bearing from point 1 to point 2, in ``[0, 360)``."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lng2 - lng1)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return normalize_heading(math.degrees(math.atan2(y, x)))


def normalize_heading(value: float) -> float:
    """Wrap a heading into ``[0, 360)``."""
    heading = value % 360.0
    # -1e-17 % 360.0 rounds to 360.0
    if heading >= 360.0:
        heading = 0.0
    return heading
