"""Client configuration for pybustrack."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pybustrack._constants import (
    ADVANCE_THRESHOLD_M,
    FLEET_INTERVAL_S,
    GEOLOCATION_MAX_AGE_S,
    GEOLOCATION_TIMEOUT_S,
    POSITION_INTERVAL_S,
    REPORT_INTERVAL_S,
)
from pybustrack.exceptions import BusTrackConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise BusTrackConfigError(f"{key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class GeolocationProfile:
    """Options passed to every single-shot device position request.

    ``maximum_age`` is the hint handed to the device: how old a cached
    fix it may return (``0`` asks for a fresh reading).  ``max_fix_age``
    is the staleness ceiling checked on the fix that comes back; an older
    fix is rejected and a fresh one requested.
    """

    high_accuracy: bool = True
    timeout: float = GEOLOCATION_TIMEOUT_S
    maximum_age: float = GEOLOCATION_MAX_AGE_S
    max_fix_age: float = GEOLOCATION_MAX_AGE_S


@dataclasses.dataclass(frozen=True)
class BusTrackConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Storage REST endpoint (PostgREST style, e.g.
        ``https://project.example.co/rest/v1``).
    api_key : str or None
        API key sent as ``apikey`` and bearer token.
    report_interval : float
        Seconds between position reports while on duty.
    fleet_interval : float
        Seconds between fleet snapshot refreshes on the viewer.
    position_interval : float
        Seconds between position refreshes for the selected vehicle.
    advance_threshold_m : float
        Distance in metres at which the next-stop cursor advances.
    dedupe_by_timestamp : bool
        Skip stop advancement for a sample whose timestamp was already
        evaluated.  Set to ``False`` to re-evaluate every poll.
    request_timeout : float
        Total HTTP request timeout in seconds.
    geolocation : GeolocationProfile
        Device position request options for the reporter.
    """

    base_url: str = "http://localhost:3000"
    api_key: str | None = None
    report_interval: float = REPORT_INTERVAL_S
    fleet_interval: float = FLEET_INTERVAL_S
    position_interval: float = POSITION_INTERVAL_S
    advance_threshold_m: float = ADVANCE_THRESHOLD_M
    dedupe_by_timestamp: bool = True
    request_timeout: float = 10.0
    geolocation: GeolocationProfile = dataclasses.field(default_factory=GeolocationProfile)

    def __post_init__(self) -> None:
        for name in ("report_interval", "fleet_interval", "position_interval"):
            if getattr(self, name) <= 0:
                raise BusTrackConfigError(f"{name} must be positive")
        if self.advance_threshold_m < 0:
            raise BusTrackConfigError("advance_threshold_m must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> BusTrackConfig:
        """Create configuration from ``BUSTRACK_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        geo_kwargs: dict[str, Any] = {}
        if "BUSTRACK_HIGH_ACCURACY" in env:
            geo_kwargs["high_accuracy"] = _env_bool(env.get("BUSTRACK_HIGH_ACCURACY"), True)
        geo_timeout = _env_float(env, "BUSTRACK_GEOLOCATION_TIMEOUT")
        if geo_timeout is not None:
            geo_kwargs["timeout"] = geo_timeout
        geo_max_age = _env_float(env, "BUSTRACK_GEOLOCATION_MAX_AGE")
        if geo_max_age is not None:
            geo_kwargs["maximum_age"] = geo_max_age
        geo_max_fix_age = _env_float(env, "BUSTRACK_GEOLOCATION_MAX_FIX_AGE")
        if geo_max_fix_age is not None:
            geo_kwargs["max_fix_age"] = geo_max_fix_age

        geo_overrides = overrides.pop("geolocation", None)
        if isinstance(geo_overrides, dict):
            geo_kwargs.update(geo_overrides)
        elif isinstance(geo_overrides, GeolocationProfile):
            geo_kwargs = dataclasses.asdict(geo_overrides)

        config_kwargs: dict[str, Any] = {"geolocation": GeolocationProfile(**geo_kwargs)}

        for env_key, field_name in (("BUSTRACK_BASE_URL", "base_url"), ("BUSTRACK_API_KEY", "api_key")):
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "BUSTRACK_REPORT_INTERVAL": "report_interval",
            "BUSTRACK_FLEET_INTERVAL": "fleet_interval",
            "BUSTRACK_POSITION_INTERVAL": "position_interval",
            "BUSTRACK_ADVANCE_THRESHOLD_M": "advance_threshold_m",
            "BUSTRACK_REQUEST_TIMEOUT": "request_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_float(env, env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        if "dedupe_by_timestamp" not in overrides:
            config_kwargs["dedupe_by_timestamp"] = _env_bool(env.get("BUSTRACK_DEDUPE_BY_TIMESTAMP"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
