"""WeCom server API: access token and customer-service messages.

Endpoints:
  - /gettoken
  - /kf/send_msg
  - /kf/sync_msg
"""

from __future__ import annotations

import logging
from typing import Any

from pyimbridge._api._common import CachedToken, raise_for_code
from pyimbridge._constants import WECOM_API_BASE
from pyimbridge._transport import Transport
from pyimbridge.config import WeComCredentials
from pyimbridge.exceptions import ImBridgeConfigError, UpstreamAPIError

_logger = logging.getLogger(__name__)


def _check(response: dict[str, Any], endpoint: str) -> dict[str, Any]:
    raise_for_code(response, code_key="errcode", message_key="errmsg", endpoint=endpoint)
    return response


class WeComApi:
    """Thin WeCom API client; the access token is cached until shortly before expiry."""

    def __init__(self, credentials: WeComCredentials, transport: Transport, *, base_url: str = WECOM_API_BASE) -> None:
        self._credentials = credentials
        self._transport = transport
        self._base_url = base_url
        self._token = CachedToken()

    async def get_access_token(self) -> str:
        if self._token.valid():
            return self._token.value
        if not self._credentials.corp_secret:
            raise ImBridgeConfigError("WeCom corp secret is not configured")

        endpoint = "/gettoken"
        response = _check(
            await self._transport.request_json(
                "GET",
                f"{self._base_url}{endpoint}",
                params={"corpid": self._credentials.corp_id, "corpsecret": self._credentials.corp_secret},
            ),
            endpoint,
        )
        token = response.get("access_token")
        if not isinstance(token, str) or not token:
            raise UpstreamAPIError("gettoken response has no access_token", endpoint=endpoint)
        _logger.debug("Fetched WeCom access token, expires_in=%s", response.get("expires_in"))
        return self._token.store(token, response.get("expires_in"))

    async def send_kf_text(self, open_kfid: str, touser: str, content: str) -> str:
        """Send a customer-service text message; returns the ``msgid``."""
        endpoint = "/kf/send_msg"
        token = await self.get_access_token()
        response = _check(
            await self._transport.request_json(
                "POST",
                f"{self._base_url}{endpoint}",
                params={"access_token": token},
                json_body={
                    "touser": touser,
                    "open_kfid": open_kfid,
                    "msgtype": "text",
                    "text": {"content": content},
                },
            ),
            endpoint,
        )
        return str(response.get("msgid", ""))

    async def sync_kf_messages(
        self,
        callback_token: str,
        open_kfid: str,
        *,
        cursor: str | None = None,
        limit: int = 1000,
    ) -> dict[str, Any]:
        """Pull customer-service messages announced by a ``kf_msg_or_event`` event."""
        endpoint = "/kf/sync_msg"
        token = await self.get_access_token()
        body: dict[str, Any] = {
            "token": callback_token,
            "limit": limit,
            "voice_format": 0,
            "open_kfid": open_kfid,
        }
        if cursor:
            body["cursor"] = cursor
        return _check(
            await self._transport.request_json(
                "POST",
                f"{self._base_url}{endpoint}",
                params={"access_token": token},
                json_body=body,
            ),
            endpoint,
        )
