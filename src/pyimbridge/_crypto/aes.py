"""AES-256-CBC codecs for the two callback protocols.

Both protocols disable the cipher's own padding and apply PKCS#7 at
the byte level (see :mod:`pyimbridge._crypto._pkcs7`). They differ in
where the IV comes from:

* WeCom: the IV is the first 16 bytes of the key and is never
  transmitted (:class:`KeyIvCodec`, 32-byte pad block).
* Feishu: a random IV is prepended to the ciphertext
  (:class:`PrefixedIvCodec`, 16-byte pad block).

Both choices are fixed by the remote platforms and must not change
for wire compatibility.
"""

from __future__ import annotations

import base64
import binascii
import secrets

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from pyimbridge._crypto._pkcs7 import AES_BLOCK_SIZE, WECOM_BLOCK_SIZE, add_pkcs7, strip_pkcs7
from pyimbridge.exceptions import DecryptionError, EncryptionError, ImBridgeConfigError

KEY_SIZE = 32
IV_SIZE = 16

#: Shortest ciphertext either protocol can produce (two AES blocks).
MIN_CIPHERTEXT_SIZE = 32


def decode_key_seed(seed: str) -> bytes:
    """Decode a 43-character WeCom ``EncodingAESKey`` into the AES key.

    The seed is base64 with its single trailing ``=`` stripped.

    Raises
    ------
    ImBridgeConfigError
        If the seed is not base64 or does not decode to 32 bytes.
    """
    text = seed.strip()
    try:
        key = base64.b64decode(text + "=", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImBridgeConfigError("EncodingAESKey is not valid base64") from exc
    if len(key) != KEY_SIZE:
        raise ImBridgeConfigError(f"EncodingAESKey must decode to {KEY_SIZE} bytes (got {len(key)})")
    return key


def derive_feishu_key(encrypt_key: str) -> bytes:
    """Extend a Feishu encrypt key to 32 characters with its own prefix.

    Raises
    ------
    ImBridgeConfigError
        If the resulting key is not exactly 32 bytes.
    """
    if not encrypt_key:
        raise ImBridgeConfigError("Feishu encrypt key is empty")
    extended = encrypt_key + encrypt_key[: max(0, KEY_SIZE - len(encrypt_key))]
    key = extended.encode("utf-8")
    if len(key) != KEY_SIZE:
        raise ImBridgeConfigError(f"Feishu encrypt key must expand to {KEY_SIZE} bytes (got {len(key)})")
    return key


def _check_key(key: bytes) -> bytes:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        size = len(key) if isinstance(key, (bytes, bytearray)) else type(key).__name__
        raise ImBridgeConfigError(f"AES-256 key must be {KEY_SIZE} bytes (got {size})")
    return bytes(key)


def _b64decode_ciphertext(ciphertext_b64: str) -> bytes:
    if not isinstance(ciphertext_b64, str) or not ciphertext_b64.strip():
        raise DecryptionError("Ciphertext is empty")
    try:
        data = base64.b64decode(ciphertext_b64.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"Invalid base64 ciphertext: {exc}") from exc
    if len(data) < MIN_CIPHERTEXT_SIZE:
        raise DecryptionError(f"Ciphertext too short: {len(data)} bytes (need at least {MIN_CIPHERTEXT_SIZE})")
    return data


def cbc_encrypt_raw(key: bytes, iv: bytes, data: bytes) -> bytes:
    """AES-CBC encrypt *data* with no padding; length must be block aligned."""
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def cbc_decrypt_raw(key: bytes, iv: bytes, data: bytes) -> bytes:
    """AES-CBC decrypt *data* with no padding removal."""
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    return decryptor.update(data) + decryptor.finalize()


def decrypt_key_iv(key: bytes, ciphertext_b64: str) -> bytes:
    """Decrypt a WeCom ciphertext, returning the unpadded frame bytes.

    Parameters
    ----------
    key : bytes
        32-byte AES key; its first 16 bytes are the IV.
    ciphertext_b64 : str
        Base64 ciphertext from the ``Encrypt`` element or ``echostr``.

    Returns
    -------
    bytes
        Plaintext frame. Padding anomalies are logged and the buffer is
        returned unstripped.

    Raises
    ------
    DecryptionError
        On bad base64, a short buffer, or any cipher failure.
    """
    key = _check_key(key)
    data = _b64decode_ciphertext(ciphertext_b64)
    try:
        plain = cbc_decrypt_raw(key, key[:IV_SIZE], data)
    except Exception as exc:
        raise DecryptionError(f"AES decryption failed: {exc}") from exc
    if not plain:
        raise DecryptionError("Decrypted payload is empty")
    return strip_pkcs7(plain, WECOM_BLOCK_SIZE)


def encrypt_key_iv(key: bytes, frame: bytes) -> str:
    """Pad *frame* to 32-byte blocks and encrypt it with the key-derived IV.

    Raises
    ------
    EncryptionError
        If padding or encryption fails.
    """
    key = _check_key(key)
    try:
        padded = add_pkcs7(bytes(frame), WECOM_BLOCK_SIZE)
        ct = cbc_encrypt_raw(key, key[:IV_SIZE], padded)
    except Exception as exc:
        raise EncryptionError(f"AES encryption failed: {exc}") from exc
    return base64.b64encode(ct).decode("ascii")


def decrypt_prefixed_iv(key: bytes, ciphertext_b64: str) -> bytes:
    """Decrypt a Feishu ciphertext laid out as ``IV || AES-CBC(body)``.

    Raises
    ------
    DecryptionError
        On bad base64, a short buffer, or any cipher failure.
    """
    key = _check_key(key)
    data = _b64decode_ciphertext(ciphertext_b64)
    iv, body = data[:IV_SIZE], data[IV_SIZE:]
    try:
        plain = cbc_decrypt_raw(key, iv, body)
    except Exception as exc:
        raise DecryptionError(f"AES decryption failed: {exc}") from exc
    return strip_pkcs7(plain, AES_BLOCK_SIZE)


def encrypt_prefixed_iv(key: bytes, plaintext: bytes, iv: bytes | None = None) -> str:
    """Encrypt *plaintext* under a fresh random IV and prepend the IV.

    Raises
    ------
    EncryptionError
        If padding or encryption fails.
    """
    key = _check_key(key)
    if iv is None:
        iv = secrets.token_bytes(IV_SIZE)
    try:
        padded = add_pkcs7(bytes(plaintext), AES_BLOCK_SIZE)
        ct = cbc_encrypt_raw(key, iv, padded)
    except Exception as exc:
        raise EncryptionError(f"AES encryption failed: {exc}") from exc
    return base64.b64encode(iv + ct).decode("ascii")


class KeyIvCodec:
    """WeCom symmetric codec bound to one 32-byte key."""

    block_size = WECOM_BLOCK_SIZE

    def __init__(self, key: bytes) -> None:
        self._key = _check_key(key)

    def encrypt(self, frame: bytes) -> str:
        return encrypt_key_iv(self._key, frame)

    def decrypt(self, ciphertext_b64: str) -> bytes:
        return decrypt_key_iv(self._key, ciphertext_b64)


class PrefixedIvCodec:
    """Feishu symmetric codec bound to one 32-byte key."""

    block_size = AES_BLOCK_SIZE

    def __init__(self, key: bytes) -> None:
        self._key = _check_key(key)

    def encrypt(self, plaintext: bytes) -> str:
        return encrypt_prefixed_iv(self._key, plaintext)

    def decrypt(self, ciphertext_b64: str) -> bytes:
        return decrypt_prefixed_iv(self._key, ciphertext_b64)
