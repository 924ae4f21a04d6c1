"""Device collaborators: position sensor, screen wake-lock and identifier capture.

The host application supplies concrete implementations; the tracking
core only relies on these protocols.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from pybustrack.config import GeolocationProfile
from pybustrack.exceptions import PositionTimeoutError, PositionUnavailableError
from pybustrack.models.position import DeviceFix

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PositionProvider(Protocol):
    async def current_position(self, *, high_accuracy: bool, maximum_age: float) -> DeviceFix:
        """Return one position fix.

        May return a cached fix up to *maximum_age* seconds old.  Raises
        :class:`~pybustrack.exceptions.PositionPermissionError` or
        :class:`~pybustrack.exceptions.PositionUnavailableError`.
        """
        ...


class WakeLock(Protocol):
    async def acquire(self) -> None: ...

    async def release(self) -> None: ...


class IdentifierCapture(Protocol):
    async def capture(self) -> str | None:
        """Return the raw scanned/typed payload, or ``None`` if cancelled."""
        ...


async def acquire_position(
    provider: PositionProvider,
    profile: GeolocationProfile,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> DeviceFix:
    """Single-shot position request honoring the profile's timeout and staleness ceiling.

    A fix older than ``profile.max_fix_age`` is rejected and one fresh fix
    is requested in its place.

    Raises
    ------
    PositionTimeoutError
        If a request exceeds ``profile.timeout`` seconds.
    PositionUnavailableError
        If the device keeps returning stale fixes.
    PositionPermissionError
        Propagated from the provider.
    """
    fix = await _request(provider, profile, profile.maximum_age)
    age = fix.age_seconds(clock())
    if age <= profile.max_fix_age:
        return fix

    _logger.debug("Rejecting stale fix age=%.1fs ceiling=%.1fs", age, profile.max_fix_age)
    fix = await _request(provider, profile, 0.0)
    age = fix.age_seconds(clock())
    if age > profile.max_fix_age:
        raise PositionUnavailableError(f"Device returned a stale position ({age:.0f}s old)")
    return fix


async def _request(provider: PositionProvider, profile: GeolocationProfile, maximum_age: float) -> DeviceFix:
    try:
        async with asyncio.timeout(profile.timeout):
            return await provider.current_position(high_accuracy=profile.high_accuracy, maximum_age=maximum_age)
    except TimeoutError as exc:
        raise PositionTimeoutError(f"Position request timed out after {profile.timeout:.0f}s") from exc
