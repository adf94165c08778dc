"""Custom exception hierarchy for pyimbridge."""

from __future__ import annotations


class ImBridgeError(Exception):
    """Base exception for all pyimbridge errors."""


class ImBridgeConfigError(ImBridgeError):
    """Invalid or missing configuration."""


class SignatureMismatchError(ImBridgeError):
    """Computed callback signature does not match the supplied one."""


class MalformedEnvelopeError(ImBridgeError):
    """A required envelope field or query parameter is missing or unparsable."""

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class ImBridgeCryptoError(ImBridgeError):
    """Encryption, decryption or signing failure."""


class DecryptionError(ImBridgeCryptoError):
    """Ciphertext could not be decoded or decrypted."""


class EncryptionError(ImBridgeCryptoError):
    """Plaintext could not be framed or encrypted."""


class PartyMismatchError(ImBridgeCryptoError):
    """Frame carries a party identifier other than the configured one.

    Only raised for integrations configured with the strict mismatch
    policy; the default policy logs the mismatch and continues.
    """

    def __init__(self, message: str, *, expected: str = "", received: str = "") -> None:
        self.expected = expected
        self.received = received
        super().__init__(message)


class UpstreamAPIError(ImBridgeError):
    """Outbound platform API call failed (network, non-2xx, non-zero code)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)
