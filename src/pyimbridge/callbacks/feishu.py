"""Feishu event-subscription callback pipeline."""

from __future__ import annotations

import json
import logging
import secrets
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pyimbridge._cache import LruCache
from pyimbridge._constants import FEISHU_URL_VERIFICATION
from pyimbridge._crypto.aes import PrefixedIvCodec
from pyimbridge._crypto.signing import sha256_ordered_signature, verify_sha256_ordered
from pyimbridge.config import BridgeConfig, FeishuCredentials
from pyimbridge.envelope import JsonEnvelopeAdapter
from pyimbridge.exceptions import (
    DecryptionError,
    ImBridgeConfigError,
    MalformedEnvelopeError,
    SignatureMismatchError,
)
from pyimbridge.models.events import MessageReceiveEvent, UnhandledEvent, parse_feishu_event
from pyimbridge.store import CallbackLog

_logger = logging.getLogger(__name__)

FeishuHandler = Callable[[MessageReceiveEvent | UnhandledEvent], Awaitable[dict[str, Any] | None]]
"""Receives a decrypted event; returns a JSON reply to encrypt or ``None``."""

ACK: dict[str, Any] = {"msg": "success"}


class FeishuCallback:
    """Verify, decrypt and answer Feishu event callbacks.

    The signing secret is the app's encrypt key.
    """

    def __init__(
        self,
        credentials: FeishuCredentials,
        *,
        callback_log: CallbackLog | None = None,
        processed_capacity: int = 2048,
    ) -> None:
        self._credentials = credentials
        self._codec = PrefixedIvCodec(credentials.key)
        self._adapter = JsonEnvelopeAdapter()
        self._callback_log = callback_log
        self._processed: LruCache[str, float] = LruCache(processed_capacity)

    @classmethod
    def from_config(cls, config: BridgeConfig, *, callback_log: CallbackLog | None = None) -> FeishuCallback:
        """Build the Feishu pipeline from a loaded :class:`BridgeConfig`."""
        if config.feishu is None:
            raise ImBridgeConfigError("Feishu integration is not configured")
        return cls(
            config.feishu,
            callback_log=callback_log if callback_log is not None else CallbackLog.from_config(config),
            processed_capacity=config.processed_message_capacity,
        )

    @property
    def callback_log(self) -> CallbackLog | None:
        return self._callback_log

    def _check_verification_token(self, payload: Mapping[str, Any]) -> None:
        expected = self._credentials.verification_token
        if not expected:
            return
        header = payload.get("header")
        token = payload.get("token") or (header.get("token") if isinstance(header, dict) else None)
        if token != expected:
            raise SignatureMismatchError("Verification token does not match")

    def open(self, ciphertext: str) -> dict[str, Any]:
        """Decrypt an ``encrypt`` field into its JSON payload."""
        plain = self._codec.decrypt(ciphertext)
        try:
            return self._adapter.load(plain)
        except MalformedEnvelopeError as exc:
            raise DecryptionError("Decrypted payload is not a JSON object") from exc

    async def handle_event(
        self,
        body: str | bytes | Mapping[str, Any],
        handler: FeishuHandler,
    ) -> dict[str, Any]:
        """Process one event POST.

        The plaintext ``url_verification`` handshake is answered before
        any signature check or decryption.

        Returns
        -------
        dict
            ``{"challenge": ...}``, an encrypted reply envelope, or
            ``{"msg": "success"}``.
        """
        payload = self._adapter.load(body)
        if self._callback_log is not None:
            self._callback_log.record("feishu", "POST", payload)

        if self._adapter.is_url_verification(payload):
            self._check_verification_token(payload)
            _logger.debug("Answering plaintext url_verification")
            return self._adapter.url_verification_response(payload)

        envelope = self._adapter.decode_inbound(payload)
        if not verify_sha256_ordered(
            self._credentials.encrypt_key,
            envelope.timestamp,
            envelope.nonce,
            envelope.ciphertext,
            envelope.signature,
        ):
            raise SignatureMismatchError("signature does not match")

        decrypted = self.open(envelope.ciphertext)
        if decrypted.get("type") == FEISHU_URL_VERIFICATION:
            self._check_verification_token(decrypted)
            _logger.debug("Answering encrypted url_verification")
            return self._adapter.url_verification_response(decrypted)

        event = parse_feishu_event(decrypted)
        _logger.debug("Decrypted %s event %s", event.kind, event.event_type)
        if event.event_id and not self._processed.add(event.event_id, time.time()):
            _logger.info("Duplicate event %s acknowledged without processing", event.event_id)
            return dict(ACK)

        try:
            reply = await handler(event)
        except Exception:
            if event.event_id:
                self._processed.pop(event.event_id)
            raise
        if reply is None:
            return dict(ACK)
        return self.encrypt_reply(reply)

    def encrypt_reply(
        self,
        reply: Mapping[str, Any],
        *,
        timestamp: str | None = None,
        nonce: str | None = None,
    ) -> dict[str, Any]:
        """Encrypt and sign *reply* into a JSON envelope."""
        plaintext = json.dumps(dict(reply), separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        ciphertext = self._codec.encrypt(plaintext)
        timestamp = timestamp or str(int(time.time()))
        nonce = nonce or secrets.token_hex(8)
        signature = sha256_ordered_signature(self._credentials.encrypt_key, timestamp, nonce, ciphertext)
        return self._adapter.encode_outbound(ciphertext, timestamp, nonce, signature)
