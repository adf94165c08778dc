"""Helpers for safe debug logging.

Callback query strings, envelopes and platform API responses carry
shared tokens, access tokens and ciphertext. :func:`redact_for_log`
masks them before they reach DEBUG logs or the callback log.

A key is sensitive when it is one of a few fixed names or ends in a
credential suffix (``tenant_access_token``, ``corp_secret``,
``encoding_aes_key`` ...). Strings that embed a WeCom XML envelope have
their ``<Encrypt>`` contents masked too.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

REDACTED = "<redacted>"

_SENSITIVE_NAMES: frozenset[str] = frozenset(
    {
        "token",
        "authorization",
        "cookie",
        "corpsecret",
        "encrypt",
        "echostr",
        "ciphertext",
    }
)
_SENSITIVE_SUFFIXES: tuple[str, ...] = ("_token", "_secret", "_key", "signature")

_XML_ENCRYPT = re.compile(r"(<Encrypt>)(.*?)(</Encrypt>)", re.DOTALL)


def is_sensitive_key(key: str) -> bool:
    """Whether values stored under *key* must never be logged."""
    name = key.lower()
    return name in _SENSITIVE_NAMES or name.endswith(_SENSITIVE_SUFFIXES)


def _redact_text(value: str, max_string: int) -> str:
    if "<Encrypt>" in value:
        value = _XML_ENCRYPT.sub(rf"\1{REDACTED}\3", value)
    if len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Mappings are walked recursively; pydantic models are dumped first.
    Bytes are reduced to their length.
    """
    if _depth > 20:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _redact_text(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, Mapping):
        return {
            str(k): REDACTED
            if is_sensitive_key(str(k))
            else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
    return repr(value)
