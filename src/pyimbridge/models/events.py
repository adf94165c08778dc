"""Decrypted Feishu event-subscription payloads."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from pyimbridge._constants import FEISHU_MESSAGE_RECEIVE


class _FeishuEventBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    event_id: str | None = None
    event_type: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)
    """Full decrypted payload."""


class MessageReceiveEvent(_FeishuEventBase):
    """``im.message.receive_v1``: a user sent the bot a message."""

    kind: Literal["message"] = "message"
    message_id: str = ""
    chat_id: str = ""
    message_type: str = ""
    sender_open_id: str = ""
    text: str = ""


class UnhandledEvent(_FeishuEventBase):
    """Any event type the bridge has no handler for."""

    kind: Literal["unhandled"] = "unhandled"


FeishuEvent = Annotated[MessageReceiveEvent | UnhandledEvent, Field(discriminator="kind")]

_ADAPTER: TypeAdapter[MessageReceiveEvent | UnhandledEvent] = TypeAdapter(FeishuEvent)


def _message_text(message: dict[str, Any]) -> str:
    content = message.get("content")
    if not isinstance(content, str) or message.get("message_type") != "text":
        return ""
    try:
        decoded = json.loads(content)
    except json.JSONDecodeError:
        return content
    if isinstance(decoded, dict):
        return str(decoded.get("text", ""))
    return ""


def parse_feishu_event(payload: dict[str, Any]) -> MessageReceiveEvent | UnhandledEvent:
    """Parse a decrypted 2.0-schema event payload into its tagged variant."""
    header = payload.get("header")
    header = header if isinstance(header, dict) else {}
    event_type = str(header.get("event_type") or payload.get("type") or "")
    data: dict[str, Any] = {
        "event_id": header.get("event_id") or payload.get("uuid"),
        "event_type": event_type,
        "raw": payload,
        "kind": "unhandled",
    }

    event = payload.get("event")
    if event_type == FEISHU_MESSAGE_RECEIVE and isinstance(event, dict):
        message = event.get("message")
        message = message if isinstance(message, dict) else {}
        sender = event.get("sender")
        sender_id = sender.get("sender_id") if isinstance(sender, dict) else None
        data.update(
            kind="message",
            message_id=str(message.get("message_id", "")),
            chat_id=str(message.get("chat_id", "")),
            message_type=str(message.get("message_type", "")),
            sender_open_id=str(sender_id.get("open_id", "")) if isinstance(sender_id, dict) else "",
            text=_message_text(message),
        )
    return _ADAPTER.validate_python(data)
