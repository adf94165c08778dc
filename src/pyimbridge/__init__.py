"""pyimbridge - Secure webhook codec and callback pipelines for WeCom and Feishu."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyimbridge")
except PackageNotFoundError:
    __version__ = "0+local"
from pyimbridge._api import CompletionClient, FeishuApi, WeComApi
from pyimbridge._crypto import Frame, KeyIvCodec, PartyMismatchPolicy, PrefixedIvCodec
from pyimbridge._transport import JsonTransport
from pyimbridge.callbacks import FeishuCallback, WeComCallback, http_status_for
from pyimbridge.config import BridgeConfig, CompletionSettings, FeishuCredentials, WeComCredentials
from pyimbridge.envelope import JsonEnvelopeAdapter, XmlEnvelopeAdapter
from pyimbridge.exceptions import (
    DecryptionError,
    EncryptionError,
    ImBridgeConfigError,
    ImBridgeCryptoError,
    ImBridgeError,
    MalformedEnvelopeError,
    PartyMismatchError,
    SignatureMismatchError,
    UpstreamAPIError,
)
from pyimbridge.models import (
    Envelope,
    EventMessage,
    MessageReceiveEvent,
    TextMessage,
    UnhandledEvent,
    UnhandledMessage,
    UserRecord,
    UserState,
)
from pyimbridge.store import CallbackLog, UserStore

__all__ = [
    "__version__",
    "BridgeConfig",
    "CallbackLog",
    "CompletionClient",
    "CompletionSettings",
    "DecryptionError",
    "EncryptionError",
    "Envelope",
    "EventMessage",
    "FeishuApi",
    "FeishuCallback",
    "FeishuCredentials",
    "Frame",
    "ImBridgeConfigError",
    "ImBridgeCryptoError",
    "ImBridgeError",
    "JsonEnvelopeAdapter",
    "JsonTransport",
    "KeyIvCodec",
    "MalformedEnvelopeError",
    "MessageReceiveEvent",
    "PartyMismatchError",
    "PartyMismatchPolicy",
    "PrefixedIvCodec",
    "SignatureMismatchError",
    "TextMessage",
    "UnhandledEvent",
    "UnhandledMessage",
    "UpstreamAPIError",
    "UserRecord",
    "UserState",
    "UserStore",
    "WeComApi",
    "WeComCallback",
    "WeComCredentials",
    "XmlEnvelopeAdapter",
    "http_status_for",
]
