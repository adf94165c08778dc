"""Pieces shared by the WeCom and Feishu callback pipelines."""

from __future__ import annotations

from pyimbridge.exceptions import (
    DecryptionError,
    EncryptionError,
    ImBridgeConfigError,
    MalformedEnvelopeError,
    PartyMismatchError,
    SignatureMismatchError,
    UpstreamAPIError,
)

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (MalformedEnvelopeError, 400),
    (SignatureMismatchError, 403),
    (PartyMismatchError, 403),
    (DecryptionError, 400),
    (EncryptionError, 500),
    (ImBridgeConfigError, 500),
    (UpstreamAPIError, 502),
)


def http_status_for(exc: BaseException) -> int:
    """HTTP status a web layer should answer with for *exc*.

    Response bodies should stay minimal; never echo ciphertext, keys or
    partial plaintext back to the caller.
    """
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500
