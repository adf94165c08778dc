"""Data models for envelopes, decrypted messages and user records."""

from pyimbridge.models.envelope import Envelope
from pyimbridge.models.events import FeishuEvent, MessageReceiveEvent, UnhandledEvent, parse_feishu_event
from pyimbridge.models.messages import (
    EventMessage,
    TextMessage,
    UnhandledMessage,
    WeComMessage,
    parse_wecom_message,
)
from pyimbridge.models.user import UserRecord, UserState

__all__ = [
    "Envelope",
    "EventMessage",
    "FeishuEvent",
    "MessageReceiveEvent",
    "TextMessage",
    "UnhandledEvent",
    "UnhandledMessage",
    "UserRecord",
    "UserState",
    "WeComMessage",
    "parse_feishu_event",
    "parse_wecom_message",
]
