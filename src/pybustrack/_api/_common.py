"""Shared helpers for storage endpoint modules.

It is internal to pybustrack and may change at any time.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pybustrack.exceptions import BusTrackApiError

PREFER_MINIMAL = "return=minimal"


def eq(value: object) -> str:
    return f"eq.{value}"


def in_list(values: Iterable[object]) -> str:
    """PostgREST ``in`` filter with every value quoted."""
    quoted = ",".join('"{}"'.format(str(value).replace('"', '\\"')) for value in values)
    return f"in.({quoted})"


def expect_rows(endpoint: str, payload: Any) -> list[dict[str, Any]]:
    """Validate that a read returned a JSON array of objects."""
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise BusTrackApiError(f"{endpoint} returned {type(payload).__name__}, expected a list", endpoint=endpoint)
    return [row for row in payload if isinstance(row, dict)]
