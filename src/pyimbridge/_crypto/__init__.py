"""Cryptographic primitives for the callback protocols."""

from __future__ import annotations

from typing import Protocol

from pyimbridge._crypto._pkcs7 import add_pkcs7, strip_pkcs7
from pyimbridge._crypto.aes import (
    KeyIvCodec,
    PrefixedIvCodec,
    decode_key_seed,
    derive_feishu_key,
)
from pyimbridge._crypto.frame import Frame, PartyMismatchPolicy, build_frame, check_party, parse_frame
from pyimbridge._crypto.signing import (
    sha1_sorted_signature,
    sha256_ordered_signature,
    verify_sha1_sorted,
    verify_sha256_ordered,
)


class SymmetricCodec(Protocol):
    """Protocol for a key-bound payload codec."""

    block_size: int

    def encrypt(self, plaintext: bytes) -> str: ...

    def decrypt(self, ciphertext_b64: str) -> bytes: ...


__all__ = [
    "Frame",
    "KeyIvCodec",
    "PartyMismatchPolicy",
    "PrefixedIvCodec",
    "SymmetricCodec",
    "add_pkcs7",
    "build_frame",
    "check_party",
    "decode_key_seed",
    "derive_feishu_key",
    "parse_frame",
    "sha1_sorted_signature",
    "sha256_ordered_signature",
    "strip_pkcs7",
    "verify_sha1_sorted",
    "verify_sha256_ordered",
]
