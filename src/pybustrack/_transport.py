"""HTTP transport for a PostgREST-style storage API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pybustrack._constants import USER_AGENT
from pybustrack._redact import redact_for_log
from pybustrack.config import BusTrackConfig
from pybustrack.exceptions import BusTrackApiError, BusTrackTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Any = None,
        prefer: str | None = None,
    ) -> Any: ...


class RestTransport:
    """JSON-over-HTTP transport with API-key headers."""

    def __init__(self, config: BusTrackConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self, prefer: str | None) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.api_key:
            headers["apikey"] = self._config.api_key
            headers["authorization"] = f"Bearer {self._config.api_key}"
        if prefer:
            headers["prefer"] = prefer
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty)."""
        url = f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"
        headers = self._headers(prefer)
        _logger.debug(
            "%s %s params=%s body=%s headers=%s",
            method,
            url,
            dict(params or {}),
            redact_for_log(body),
            redact_for_log(headers),
        )

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                data=json.dumps(body) if body is not None else None,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise BusTrackTransportError(f"Request to {path} failed: {exc}", endpoint=path) from exc
        except TimeoutError as exc:
            raise BusTrackTransportError(f"Request to {path} timed out", endpoint=path) from exc

        if status >= 400:
            self._raise_for_status(path, status, text)

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise BusTrackTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                status_code=status,
                endpoint=path,
            ) from exc

    @staticmethod
    def _raise_for_status(path: str, status: int, text: str) -> None:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and "code" in payload and status < 500:
            raise BusTrackApiError(
                f"{path} failed: code={payload.get('code')} message={payload.get('message', '')}",
                code=str(payload.get("code") or ""),
                endpoint=path,
            )
        raise BusTrackTransportError(
            f"HTTP {status} from {path}: {text[:200]}",
            status_code=status,
            endpoint=path,
        )
