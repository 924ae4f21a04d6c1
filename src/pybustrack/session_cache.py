"""Device-local cache of the operator's session.

Lets a reloaded reporter resume an in-progress shift.  Live tracking
fields (vehicle, last position) are cleared when a shift ends; the
operator identity is kept until logout.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from pybustrack.models.operator import OperatorSession
from pybustrack.models.position import PositionSample

_logger = logging.getLogger(__name__)

_DUMP_EXCLUDE = {"operator": {"raw"}, "last_position": {"raw"}}


class CachedSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    operator: OperatorSession
    token: str | None = None
    last_position: PositionSample | None = None

    def cleared(self) -> CachedSession:
        """Copy with the live tracking fields dropped and identity retained."""
        return CachedSession(operator=self.operator.release(), token=self.token)


class SessionCache(Protocol):
    def load(self) -> CachedSession | None: ...

    def save(self, session: CachedSession) -> None: ...

    def clear(self) -> None: ...


class MemorySessionCache:
    def __init__(self, session: CachedSession | None = None) -> None:
        self._session = session

    def load(self) -> CachedSession | None:
        return self._session

    def save(self, session: CachedSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionCache:
    """JSON file cache, written atomically via a temporary sibling file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CachedSession | None:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError):
            _logger.warning("Ignoring unreadable session cache at %s", self._path, exc_info=True)
            return None
        try:
            return CachedSession.model_validate_json(text)
        except ValidationError:
            _logger.warning("Ignoring unreadable session cache at %s", self._path, exc_info=True)
            return None

    def save(self, session: CachedSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(session.model_dump_json(exclude=_DUMP_EXCLUDE), encoding="utf-8")
        tmp.replace(self._path)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
