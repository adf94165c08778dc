from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import aiohttp
import pytest

from pyimbridge._api import CompletionClient, FeishuApi, WeComApi
from pyimbridge._transport import JsonTransport
from pyimbridge.config import CompletionSettings, FeishuCredentials, WeComCredentials
from pyimbridge.exceptions import ImBridgeConfigError, UpstreamAPIError

SEED = "0123456789abcdefghijklmnopqrstuv" + "wxyzABCDEFA"
WECOM = WeComCredentials(token="t", encoding_aes_key=SEED, corp_id="wwCORP123", corp_secret="corp-secret")
FEISHU = FeishuCredentials(app_id="cli_a", app_secret="app-secret", encrypt_key="feishu-encrypt-key")


class _FakeTransport:
    def __init__(self, *responses: dict[str, Any]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        self.calls.append({"method": method, "url": url, "params": params, "json": json_body, "headers": headers})
        return self._responses.pop(0)


@pytest.mark.asyncio
async def test_wecom_access_token_is_cached() -> None:
    transport = _FakeTransport({"errcode": 0, "access_token": "AT", "expires_in": 7200})
    api = WeComApi(WECOM, transport, base_url="https://wecom.test")

    assert await api.get_access_token() == "AT"
    assert await api.get_access_token() == "AT"

    [call] = transport.calls
    assert call["method"] == "GET"
    assert call["url"] == "https://wecom.test/gettoken"
    assert call["params"] == {"corpid": "wwCORP123", "corpsecret": "corp-secret"}


@pytest.mark.asyncio
async def test_wecom_short_lived_token_is_refetched() -> None:
    transport = _FakeTransport(
        {"errcode": 0, "access_token": "AT1", "expires_in": 60},
        {"errcode": 0, "access_token": "AT2", "expires_in": 7200},
    )
    api = WeComApi(WECOM, transport)

    assert await api.get_access_token() == "AT1"
    assert await api.get_access_token() == "AT2"


@pytest.mark.asyncio
async def test_wecom_access_token_requires_corp_secret() -> None:
    api = WeComApi(WeComCredentials(token="t", encoding_aes_key=SEED, corp_id="c"), _FakeTransport())
    with pytest.raises(ImBridgeConfigError):
        await api.get_access_token()


@pytest.mark.asyncio
async def test_wecom_error_code_raises() -> None:
    api = WeComApi(WECOM, _FakeTransport({"errcode": 40013, "errmsg": "invalid corpid"}))
    with pytest.raises(UpstreamAPIError) as info:
        await api.get_access_token()
    assert info.value.code == "40013"
    assert info.value.endpoint == "/gettoken"


@pytest.mark.asyncio
async def test_wecom_send_kf_text() -> None:
    transport = _FakeTransport(
        {"errcode": 0, "access_token": "AT", "expires_in": 7200},
        {"errcode": 0, "errmsg": "ok", "msgid": "MSG1"},
    )
    api = WeComApi(WECOM, transport)

    assert await api.send_kf_text("wkKF", "user-1", "hi") == "MSG1"
    send = transport.calls[1]
    assert send["url"].endswith("/kf/send_msg")
    assert send["params"] == {"access_token": "AT"}
    assert send["json"]["text"] == {"content": "hi"}
    assert send["json"]["open_kfid"] == "wkKF"


@pytest.mark.asyncio
async def test_wecom_sync_kf_messages_passes_cursor() -> None:
    transport = _FakeTransport(
        {"errcode": 0, "access_token": "AT", "expires_in": 7200},
        {"errcode": 0, "next_cursor": "c2", "msg_list": []},
    )
    api = WeComApi(WECOM, transport)

    result = await api.sync_kf_messages("sync-token", "wkKF", cursor="c1")

    assert result["next_cursor"] == "c2"
    body = transport.calls[1]["json"]
    assert body["token"] == "sync-token"
    assert body["cursor"] == "c1"


@pytest.mark.asyncio
async def test_feishu_send_message_uses_tenant_token() -> None:
    transport = _FakeTransport(
        {"code": 0, "tenant_access_token": "TT", "expire": 7200},
        {"code": 0, "data": {"message_id": "om_2"}},
    )
    api = FeishuApi(FEISHU, transport, base_url="https://feishu.test")

    data = await api.send_message("ou_1", "text", {"text": "你好"})

    assert data == {"message_id": "om_2"}
    token_call, send_call = transport.calls
    assert token_call["url"] == "https://feishu.test/auth/v3/tenant_access_token/internal"
    assert token_call["json"] == {"app_id": "cli_a", "app_secret": "app-secret"}
    assert send_call["headers"] == {"authorization": "Bearer TT"}
    assert send_call["params"] == {"receive_id_type": "open_id"}
    assert json.loads(send_call["json"]["content"]) == {"text": "你好"}


@pytest.mark.asyncio
async def test_feishu_reply_message_and_error_code() -> None:
    transport = _FakeTransport(
        {"code": 0, "tenant_access_token": "TT", "expire": 7200},
        {"code": 230002, "msg": "bot not in chat"},
    )
    api = FeishuApi(FEISHU, transport)

    with pytest.raises(UpstreamAPIError) as info:
        await api.reply_message("om_1", "text", {"text": "hi"})
    assert info.value.code == "230002"
    assert info.value.endpoint == "/im/v1/messages/om_1/reply"


@pytest.mark.asyncio
async def test_feishu_create_document() -> None:
    transport = _FakeTransport({"code": 0, "data": {"document": {"document_id": "doc-1"}}})
    api = FeishuApi(FEISHU, transport)

    assert await api.create_document("user-token", "Notes") == "doc-1"
    assert transport.calls[0]["headers"] == {"authorization": "Bearer user-token"}


@pytest.mark.asyncio
async def test_feishu_create_document_without_id() -> None:
    api = FeishuApi(FEISHU, _FakeTransport({"code": 0, "data": {}}))
    with pytest.raises(UpstreamAPIError):
        await api.create_document("user-token", "Notes")


@pytest.mark.asyncio
async def test_completion_summarize() -> None:
    transport = _FakeTransport({"choices": [{"message": {"content": "  short summary \n"}}]})
    client = CompletionClient(CompletionSettings(api_key="k", api_url="https://llm.test/v1"), transport)

    assert await client.summarize("long text") == "short summary"
    [call] = transport.calls
    assert call["url"] == "https://llm.test/v1"
    assert call["headers"] == {"authorization": "Bearer k"}
    assert call["json"]["messages"][1] == {"role": "user", "content": "long text"}


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [{}, {"choices": []}, {"choices": [{"message": {}}]}])
async def test_completion_summarize_bad_response(response: dict[str, Any]) -> None:
    client = CompletionClient(CompletionSettings(api_key="k"), _FakeTransport(response))
    with pytest.raises(UpstreamAPIError):
        await client.summarize("text")


class _FakeResponse:
    def __init__(self, status: int, text: str) -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        return None


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.requests: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> _FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return self._response


@pytest.mark.asyncio
async def test_json_transport_success() -> None:
    session = _FakeSession(_FakeResponse(200, '{"ok": true}'))
    transport = JsonTransport(session)  # type: ignore[arg-type]

    result = await transport.request_json("POST", "https://api.test/x", json_body={"a": "中"}, headers={"x-h": "1"})

    assert result == {"ok": True}
    [request] = session.requests
    assert json.loads(request["data"]) == {"a": "中"}
    assert request["headers"]["x-h"] == "1"
    assert request["headers"]["user-agent"] == "pyimbridge"


@pytest.mark.asyncio
async def test_json_transport_http_error() -> None:
    transport = JsonTransport(_FakeSession(_FakeResponse(502, "bad gateway")))  # type: ignore[arg-type]
    with pytest.raises(UpstreamAPIError) as info:
        await transport.request_json("GET", "https://api.test/x")
    assert info.value.status_code == 502
    assert info.value.endpoint == "https://api.test/x"


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["not json", "[1, 2]"])
async def test_json_transport_bad_json(text: str) -> None:
    transport = JsonTransport(_FakeSession(_FakeResponse(200, text)))  # type: ignore[arg-type]
    with pytest.raises(UpstreamAPIError):
        await transport.request_json("GET", "https://api.test/x")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), TimeoutError()])
async def test_json_transport_network_errors(error: Exception) -> None:
    transport = JsonTransport(_FakeSession(error=error))  # type: ignore[arg-type]
    with pytest.raises(UpstreamAPIError) as info:
        await transport.request_json("GET", "https://api.test/x")
    assert info.value.__cause__ is error
