"""WeCom callback pipeline.

verify → decrypt → parse frame → handler → frame → encrypt → sign → envelope
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pyimbridge._cache import LruCache
from pyimbridge._constants import WECOM_ACK
from pyimbridge._crypto.aes import KeyIvCodec
from pyimbridge._crypto.frame import RANDOM_SIZE, Frame, build_frame, check_party, parse_frame
from pyimbridge._crypto.signing import sha1_sorted_signature, verify_sha1_sorted
from pyimbridge.config import BridgeConfig, WeComCredentials
from pyimbridge.envelope import XmlEnvelopeAdapter, cdata
from pyimbridge.exceptions import EncryptionError, ImBridgeConfigError, SignatureMismatchError
from pyimbridge.models.envelope import Envelope
from pyimbridge.models.messages import EventMessage, TextMessage, UnhandledMessage, parse_wecom_message
from pyimbridge.store import CallbackLog

_logger = logging.getLogger(__name__)

WeComHandler = Callable[[TextMessage | EventMessage | UnhandledMessage], Awaitable[str | None]]
"""Receives a decrypted message; returns passive-reply text or ``None``."""


class WeComCallback:
    """Verify, decrypt and answer WeCom callbacks for one corp.

    Parameters
    ----------
    credentials : WeComCredentials
        Token, key seed and corp id. The key is decoded eagerly so a bad
        seed fails here rather than on the first request.
    callback_log : CallbackLog or None
        Optional sink for redacted request summaries.
    processed_capacity : int
        Number of ``MsgId`` values remembered for duplicate suppression.
    """

    def __init__(
        self,
        credentials: WeComCredentials,
        *,
        callback_log: CallbackLog | None = None,
        processed_capacity: int = 2048,
    ) -> None:
        self._credentials = credentials
        self._codec = KeyIvCodec(credentials.key)
        self._adapter = XmlEnvelopeAdapter()
        self._callback_log = callback_log
        self._processed: LruCache[str, float] = LruCache(processed_capacity)

    @classmethod
    def from_config(cls, config: BridgeConfig, *, callback_log: CallbackLog | None = None) -> WeComCallback:
        """Build the WeCom pipeline from a loaded :class:`BridgeConfig`.

        A :class:`CallbackLog` sized by ``recent_callback_capacity`` is
        created unless *callback_log* is given.

        Raises
        ------
        ImBridgeConfigError
            If WeCom is not configured.
        """
        if config.wecom is None:
            raise ImBridgeConfigError("WeCom integration is not configured")
        return cls(
            config.wecom,
            callback_log=callback_log if callback_log is not None else CallbackLog.from_config(config),
            processed_capacity=config.processed_message_capacity,
        )

    @property
    def callback_log(self) -> CallbackLog | None:
        return self._callback_log

    def _check_signature(self, envelope: Envelope) -> None:
        if not verify_sha1_sorted(
            self._credentials.token,
            envelope.timestamp,
            envelope.nonce,
            envelope.ciphertext,
            envelope.signature,
        ):
            raise SignatureMismatchError("msg_signature does not match")

    def open(self, ciphertext: str) -> Frame:
        """Decrypt *ciphertext* and parse its frame, applying the party policy."""
        frame = parse_frame(self._codec.decrypt(ciphertext))
        check_party(frame, self._credentials.corp_id, self._credentials.party_mismatch_policy)
        return frame

    def seal(self, message: str) -> str:
        """Frame *message* with a fresh random prefix and the corp id, then encrypt."""
        try:
            frame = build_frame(secrets.token_bytes(RANDOM_SIZE), message, self._credentials.corp_id)
        except ValueError as exc:
            raise EncryptionError(f"Could not build frame: {exc}") from exc
        return self._codec.encrypt(frame)

    def _record(self, method: str, query: Mapping[str, Any], **extra: Any) -> None:
        if self._callback_log is not None:
            self._callback_log.record("wecom", method, dict(query), **extra)

    def verify_url(self, query: Mapping[str, Any]) -> str:
        """Answer the URL-verification GET with the decrypted ``echostr``.

        Raises
        ------
        MalformedEnvelopeError
            If a required query parameter is missing.
        SignatureMismatchError
            If ``msg_signature`` is wrong.
        DecryptionError
            If ``echostr`` cannot be decrypted.
        """
        self._record("GET", query)
        envelope = self._adapter.decode_verification(query)
        self._check_signature(envelope)
        echo = self.open(envelope.ciphertext).text.strip()
        _logger.debug("URL verification succeeded, echo length %d", len(echo))
        return echo

    async def handle_message(
        self,
        query: Mapping[str, Any],
        body: str | bytes,
        handler: WeComHandler,
    ) -> str:
        """Process one message POST.

        Returns
        -------
        str
            ``"success"`` or an encrypted passive-reply XML envelope.
        """
        self._record("POST", query, body_length=len(body))
        envelope = self._adapter.decode_inbound(body, query)

        self._check_signature(envelope)

        target = self._credentials.target_agent_id
        if target and envelope.agent_id and envelope.agent_id != target:
            _logger.info("Skipping message for agent %s (serving %s)", envelope.agent_id, target)
            return WECOM_ACK

        frame = self.open(envelope.ciphertext)
        message = parse_wecom_message(frame.text)
        _logger.debug("Decrypted %s message from %s", message.kind, message.from_user)

        if message.msg_id and not self._processed.add(message.msg_id, time.time()):
            _logger.info("Duplicate message %s acknowledged without processing", message.msg_id)
            return WECOM_ACK

        try:
            reply = await handler(message)
        except Exception:
            # Only handled messages count as processed.
            if message.msg_id:
                self._processed.pop(message.msg_id)
            raise
        if not reply:
            return WECOM_ACK
        return self.build_reply(to_user=message.from_user, from_user=message.to_user, content=reply)

    def build_reply(
        self,
        to_user: str,
        from_user: str,
        content: str,
        *,
        timestamp: str | None = None,
        nonce: str | None = None,
    ) -> str:
        """Build an encrypted, signed passive text reply envelope."""
        reply_xml = (
            "<xml>\n"
            f"<ToUserName>{cdata(to_user)}</ToUserName>\n"
            f"<FromUserName>{cdata(from_user)}</FromUserName>\n"
            f"<CreateTime>{int(time.time())}</CreateTime>\n"
            "<MsgType><![CDATA[text]]></MsgType>\n"
            f"<Content>{cdata(content)}</Content>\n"
            "</xml>"
        )
        ciphertext = self.seal(reply_xml)
        timestamp = timestamp or str(int(time.time()))
        nonce = nonce or secrets.token_hex(8)
        signature = sha1_sorted_signature(self._credentials.token, timestamp, nonce, ciphertext)
        return self._adapter.encode_outbound(ciphertext, timestamp, nonce, signature)
