"""Callback signatures.

* WeCom: SHA-1 over the lexicographically sorted concatenation of
  ``token, timestamp, nonce, ciphertext``.
* Feishu: SHA-256 over ``timestamp + nonce + secret + ciphertext`` in
  that fixed order.

Both produce lowercase hex. Verification compares with
:func:`hmac.compare_digest` and never raises.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import Callable

from pyimbridge.exceptions import ImBridgeCryptoError

_logger = logging.getLogger(__name__)

SignFunction = Callable[[str, str, str, str], str]


def sha1_sorted_signature(secret: str, timestamp: str, nonce: str, ciphertext: str) -> str:
    """Sign the sorted concatenation of the four fields with SHA-1.

    Raises
    ------
    ImBridgeCryptoError
        If *secret* is empty; a reply signed without the shared token
        would be rejected by the platform.
    """
    if not secret:
        raise ImBridgeCryptoError("Signing secret is empty")
    joined = "".join(sorted([secret, timestamp, nonce, ciphertext]))
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()


def sha256_ordered_signature(secret: str, timestamp: str, nonce: str, ciphertext: str) -> str:
    """Sign ``timestamp + nonce + secret + ciphertext`` with SHA-256."""
    if not secret:
        raise ImBridgeCryptoError("Signing secret is empty")
    joined = timestamp + nonce + secret + ciphertext
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def _verify(
    sign: SignFunction,
    secret: str,
    timestamp: str,
    nonce: str,
    ciphertext: str,
    candidate: str,
) -> bool:
    try:
        expected = sign(secret, timestamp, nonce, ciphertext)
        ok = hmac.compare_digest(expected.encode("ascii"), candidate.encode("utf-8"))
    except Exception as exc:
        _logger.debug("Signature computation failed: %s", type(exc).__name__)
        return False
    _logger.debug(
        "Signature check: timestamp=%s nonce=%s ciphertext_len=%d match=%s",
        timestamp,
        nonce,
        len(ciphertext),
        ok,
    )
    return ok


def verify_sha1_sorted(secret: str, timestamp: str, nonce: str, ciphertext: str, candidate: str) -> bool:
    """Check a WeCom ``msg_signature``."""
    return _verify(sha1_sorted_signature, secret, timestamp, nonce, ciphertext, candidate)


def verify_sha256_ordered(secret: str, timestamp: str, nonce: str, ciphertext: str, candidate: str) -> bool:
    """Check a Feishu ``signature``."""
    return _verify(sha256_ordered_signature, secret, timestamp, nonce, ciphertext, candidate)
