"""Feishu open-platform API: tenant token, messages and documents.

Endpoints:
  - /auth/v3/tenant_access_token/internal
  - /im/v1/messages
  - /im/v1/messages/{message_id}/reply
  - /docx/v1/documents
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pyimbridge._api._common import CachedToken, raise_for_code
from pyimbridge._constants import FEISHU_API_BASE
from pyimbridge._transport import Transport
from pyimbridge.config import FeishuCredentials
from pyimbridge.exceptions import UpstreamAPIError

_logger = logging.getLogger(__name__)


def _data(response: dict[str, Any], endpoint: str) -> dict[str, Any]:
    raise_for_code(response, code_key="code", message_key="msg", endpoint=endpoint)
    data = response.get("data")
    return data if isinstance(data, dict) else {}


class FeishuApi:
    """Thin Feishu API client."""

    def __init__(self, credentials: FeishuCredentials, transport: Transport, *, base_url: str = FEISHU_API_BASE) -> None:
        self._credentials = credentials
        self._transport = transport
        self._base_url = base_url
        self._token = CachedToken()

    async def get_tenant_access_token(self) -> str:
        if self._token.valid():
            return self._token.value
        endpoint = "/auth/v3/tenant_access_token/internal"
        response = await self._transport.request_json(
            "POST",
            f"{self._base_url}{endpoint}",
            json_body={"app_id": self._credentials.app_id, "app_secret": self._credentials.app_secret},
        )
        raise_for_code(response, code_key="code", message_key="msg", endpoint=endpoint)
        token = response.get("tenant_access_token")
        if not isinstance(token, str) or not token:
            raise UpstreamAPIError("Response has no tenant_access_token", endpoint=endpoint)
        _logger.debug("Fetched Feishu tenant token, expire=%s", response.get("expire"))
        return self._token.store(token, response.get("expire"))

    async def _auth_headers(self) -> dict[str, str]:
        return {"authorization": f"Bearer {await self.get_tenant_access_token()}"}

    async def send_message(
        self,
        receive_id: str,
        msg_type: str,
        content: dict[str, Any],
        *,
        receive_id_type: str = "open_id",
    ) -> dict[str, Any]:
        endpoint = "/im/v1/messages"
        response = await self._transport.request_json(
            "POST",
            f"{self._base_url}{endpoint}",
            params={"receive_id_type": receive_id_type},
            json_body={
                "receive_id": receive_id,
                "msg_type": msg_type,
                "content": json.dumps(content, ensure_ascii=False),
            },
            headers=await self._auth_headers(),
        )
        return _data(response, endpoint)

    async def reply_message(self, message_id: str, msg_type: str, content: dict[str, Any]) -> dict[str, Any]:
        endpoint = f"/im/v1/messages/{message_id}/reply"
        response = await self._transport.request_json(
            "POST",
            f"{self._base_url}{endpoint}",
            json_body={"msg_type": msg_type, "content": json.dumps(content, ensure_ascii=False)},
            headers=await self._auth_headers(),
        )
        return _data(response, endpoint)

    async def create_document(self, user_access_token: str, title: str, *, folder_token: str = "") -> str:
        """Create an empty docx document as the user; returns its id."""
        endpoint = "/docx/v1/documents"
        response = await self._transport.request_json(
            "POST",
            f"{self._base_url}{endpoint}",
            json_body={"title": title, "folder_token": folder_token},
            headers={"authorization": f"Bearer {user_access_token}"},
        )
        document = _data(response, endpoint).get("document")
        if not isinstance(document, dict) or not document.get("document_id"):
            raise UpstreamAPIError("Document creation response has no document_id", endpoint=endpoint)
        return str(document["document_id"])
