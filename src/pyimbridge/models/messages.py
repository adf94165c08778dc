"""Decrypted WeCom callback messages.

A decrypted WeCom payload is itself a small XML document. It is parsed
into one member of the closed :data:`WeComMessage` union, discriminated
on ``kind``. Message types the bridge does not act on land in
:class:`UnhandledMessage` instead of falling through silently.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from defusedxml import DefusedXmlException, ElementTree
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from pyimbridge.exceptions import MalformedEnvelopeError


class _WeComMessageBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    to_user: str = ""
    from_user: str = ""
    create_time: int | None = None
    msg_id: str | None = None
    raw: dict[str, str] = Field(default_factory=dict)
    """All top-level XML elements as text."""


class TextMessage(_WeComMessageBase):
    """User text message."""

    kind: Literal["text"] = "text"
    content: str = ""


class EventMessage(_WeComMessageBase):
    """Platform event such as ``kf_msg_or_event``."""

    kind: Literal["event"] = "event"
    event: str = ""
    token: str | None = None
    open_kf_id: str | None = None


class UnhandledMessage(_WeComMessageBase):
    """Any message type the bridge has no handler for."""

    kind: Literal["unhandled"] = "unhandled"
    msg_type: str = ""


WeComMessage = Annotated[TextMessage | EventMessage | UnhandledMessage, Field(discriminator="kind")]

_ADAPTER: TypeAdapter[TextMessage | EventMessage | UnhandledMessage] = TypeAdapter(WeComMessage)

_FIELD_MAP = {
    "ToUserName": "to_user",
    "FromUserName": "from_user",
    "CreateTime": "create_time",
    "MsgId": "msg_id",
    "Content": "content",
    "Event": "event",
    "Token": "token",
    "OpenKfId": "open_kf_id",
    "MsgType": "msg_type",
}


def _xml_fields(xml_text: str) -> dict[str, str]:
    try:
        root = ElementTree.fromstring(xml_text)
    except (ElementTree.ParseError, DefusedXmlException) as exc:
        raise MalformedEnvelopeError(f"Decrypted message is not XML: {exc}", field="xml") from exc
    return {child.tag: (child.text or "").strip() for child in root}


def parse_wecom_message(xml_text: str) -> TextMessage | EventMessage | UnhandledMessage:
    """Parse decrypted message XML into its tagged variant.

    Raises
    ------
    MalformedEnvelopeError
        If *xml_text* is not well-formed XML.
    """
    raw = _xml_fields(xml_text)
    data: dict[str, Any] = {"raw": raw}
    for tag, name in _FIELD_MAP.items():
        if raw.get(tag):
            data[name] = raw[tag]
    if not str(data.get("create_time", "0")).isdigit():
        del data["create_time"]

    msg_type = raw.get("MsgType", "")
    if msg_type == "text":
        data["kind"] = "text"
    elif msg_type == "event":
        data["kind"] = "event"
    else:
        data["kind"] = "unhandled"
    return _ADAPTER.validate_python(data)
