"""JSON-over-HTTP transport for the task service."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from tasksync._constants import USER_AGENT
from tasksync._redact import redact_for_log
from tasksync.config import SyncConfig
from tasksync.exceptions import TaskSyncTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`JsonTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any: ...


class JsonTransport:
    """HTTP transport that sends and receives JSON, with optional bearer auth."""

    def __init__(self, config: SyncConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises :class:`TaskSyncTransportError` on network failures, non-2xx
        statuses and undecodable bodies. Application-level errors carried in
        a 2xx body are left to the endpoint modules.
        """
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        data = json.dumps(body, separators=(",", ":"), default=str) if body is not None else None

        _logger.debug("%s %s", method, url)
        if self._config.api_trace_enabled and body is not None:
            _logger.debug("%s %s body=%s", method, endpoint, redact_for_log(dict(body)))

        try:
            async with self._http.request(method, url, params=params, data=data, headers=self._headers()) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise TaskSyncTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except TaskSyncTransportError:
            raise
        except TimeoutError as exc:
            raise TaskSyncTransportError(
                f"Request to {endpoint} timed out",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise TaskSyncTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return None

        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TaskSyncTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("%s %s response=%s", method, endpoint, redact_for_log(result))
        return result
