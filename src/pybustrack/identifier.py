"""Parsing of scanned or typed vehicle identifiers."""

from __future__ import annotations

import json

from pybustrack.exceptions import InvalidVehicleIdentifierError


def parse_vehicle_identifier(payload: str | None) -> str:
    """Extract a vehicle identifier from a capture payload.

    QR codes may carry a JSON object with ``bus_id`` (or ``busId``);
    anything else is taken as the identifier itself, trimmed.
    """
    if payload is None:
        raise InvalidVehicleIdentifierError("No identifier captured")

    text = payload.strip()
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        decoded = None

    if isinstance(decoded, dict):
        value = decoded.get("bus_id") or decoded.get("busId")
        vehicle_id = str(value).strip() if value is not None else ""
    elif isinstance(decoded, str):
        vehicle_id = decoded.strip()
    else:
        vehicle_id = text

    if not vehicle_id:
        raise InvalidVehicleIdentifierError("Invalid QR code. Bus ID not found.")
    return vehicle_id
