"""Scrubbing of credentials from request logs.

Storage requests carry the API key twice (``apikey`` header and bearer
token) and driver rows may include a password column.  DEBUG logging
passes headers and bodies through :func:`redact_for_log` first.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_REDACTED = "<redacted>"
_MAX_DEPTH = 16

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "apikey",
        "api_key",
        "authorization",
        "cookie",
        "password",
        "driver_password",
        "token",
        "access_token",
        "refresh_token",
    }
)


def _is_secret(key: object) -> bool:
    return str(key).lower().replace("-", "_") in _SECRET_KEYS


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Copy *value* with secret fields masked and long strings shortened.

    Mappings are walked by key; lists and tuples element-wise.  Anything
    that is not plain JSON data is logged by ``repr``.
    """
    if _depth >= _MAX_DEPTH:
        return "<nested too deep>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else value[:max_string] + "…<truncated>"
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED if _is_secret(key) else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return repr(value)
