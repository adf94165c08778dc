"""JSON-over-HTTP transport for outbound platform calls."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyimbridge._constants import USER_AGENT
from pyimbridge._redact import redact_for_log
from pyimbridge.exceptions import UpstreamAPIError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the API clients.

    Tests pass simple fakes; production code uses :class:`JsonTransport`.
    """

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]: ...


class JsonTransport:
    """Send a request, receive a JSON object; no retries.

    Parameters
    ----------
    http_session : aiohttp.ClientSession
        Caller-owned session.
    timeout : float
        Total per-request timeout in seconds.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 30.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        merged_headers: dict[str, str] = {
            "content-type": "application/json; charset=utf-8",
            "user-agent": USER_AGENT,
        }
        if headers:
            merged_headers.update(headers)
        body = None if json_body is None else json.dumps(json_body, ensure_ascii=False)

        _logger.debug("%s %s params=%s", method, url, redact_for_log(dict(params or {})))

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                data=body,
                headers=merged_headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    raise UpstreamAPIError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except UpstreamAPIError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise UpstreamAPIError(f"Request to {url} failed: {exc}", endpoint=url) from exc

        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise UpstreamAPIError(f"Invalid JSON from {url}: {text[:200]}", endpoint=url) from exc
        if not isinstance(result, dict):
            raise UpstreamAPIError(f"Expected a JSON object from {url}", endpoint=url)
        return result
