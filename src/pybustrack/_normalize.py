"""Coercion of loosely typed storage and device values."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

# Epoch values above this are milliseconds (year 5138 in seconds).
_EPOCH_MS_CUTOFF = 1e11


def safe_float(value: Any) -> float | None:
    """Float or ``None`` for blanks, garbage and NaN.  Devices report NaN for "no heading"."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def parse_timestamp(value: Any) -> datetime | None:
    """Aware UTC datetime from a datetime, epoch seconds/milliseconds or ISO-8601 text.

    Naive inputs are taken to be UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000.0 if value > _EPOCH_MS_CUTOFF else float(value)
        return datetime.fromtimestamp(seconds, tz=UTC)
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = datetime.fromisoformat(text.removesuffix("Z") + "+00:00" if text.endswith("Z") else text)
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
