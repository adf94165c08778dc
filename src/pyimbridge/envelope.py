"""Envelope adapters for the two callback wire shapes.

WeCom sends XML with the ciphertext in ``<Encrypt>`` and the signature
parameters in the query string. Feishu sends JSON with all four fields
at the top level. Adapters only parse and serialise; they never verify
or decrypt.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from defusedxml import DefusedXmlException, ElementTree

from pyimbridge._constants import FEISHU_URL_VERIFICATION
from pyimbridge.exceptions import MalformedEnvelopeError
from pyimbridge.models.envelope import Envelope

_logger = logging.getLogger(__name__)


def _required(params: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = params.get(name)
        if isinstance(value, str) and value:
            return value
    raise MalformedEnvelopeError(f"Missing required parameter {names[0]!r}", field=names[0])


def cdata(value: str) -> str:
    """Wrap *value* in CDATA, splitting any embedded ``]]>``."""
    return "<![CDATA[" + value.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _to_text(body: str | bytes) -> str:
    if isinstance(body, bytes):
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedEnvelopeError("Body is not UTF-8", field="body") from exc
    return body


class XmlEnvelopeAdapter:
    """WeCom XML envelope."""

    def decode_verification(self, query: Mapping[str, Any]) -> Envelope:
        """Read the URL-verification GET parameters; ``echostr`` is the ciphertext."""
        return Envelope(
            signature=_required(query, "msg_signature", "signature"),
            timestamp=_required(query, "timestamp"),
            nonce=_required(query, "nonce"),
            ciphertext=_required(query, "echostr"),
        )

    def decode_inbound(self, body: str | bytes, query: Mapping[str, Any]) -> Envelope:
        """Extract the ciphertext from *body* and signature fields from *query*.

        Raises
        ------
        MalformedEnvelopeError
            If a query parameter is missing, the body is not XML, or it
            has no non-empty ``Encrypt`` element.
        """
        signature = _required(query, "msg_signature", "signature")
        timestamp = _required(query, "timestamp")
        nonce = _required(query, "nonce")

        text = _to_text(body)
        if not text.strip():
            raise MalformedEnvelopeError("Body is empty", field="body")
        try:
            root = ElementTree.fromstring(text)
        except (ElementTree.ParseError, DefusedXmlException) as exc:
            raise MalformedEnvelopeError(f"Body is not valid XML: {exc}", field="body") from exc

        encrypt = root.findtext("Encrypt")
        if not encrypt or not encrypt.strip():
            raise MalformedEnvelopeError("Envelope has no Encrypt element", field="Encrypt")
        agent_id = (root.findtext("AgentID") or "").strip() or None
        _logger.debug("XML envelope: ciphertext_len=%d agent_id=%s", len(encrypt.strip()), agent_id)

        return Envelope(
            signature=signature,
            timestamp=timestamp,
            nonce=nonce,
            ciphertext=encrypt.strip(),
            agent_id=agent_id,
        )

    def encode_outbound(self, ciphertext: str, timestamp: str, nonce: str, signature: str) -> str:
        """Serialise a passive-reply envelope."""
        return (
            "<xml>\n"
            f"<Encrypt>{cdata(ciphertext)}</Encrypt>\n"
            f"<MsgSignature>{cdata(signature)}</MsgSignature>\n"
            f"<TimeStamp>{timestamp}</TimeStamp>\n"
            f"<Nonce>{cdata(nonce)}</Nonce>\n"
            "</xml>"
        )


class JsonEnvelopeAdapter:
    """Feishu JSON envelope."""

    @staticmethod
    def load(body: str | bytes | Mapping[str, Any]) -> dict[str, Any]:
        """Parse a request body into a JSON object.

        Raises
        ------
        MalformedEnvelopeError
            If the body is not a JSON object.
        """
        if isinstance(body, Mapping):
            return dict(body)
        text = _to_text(body)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedEnvelopeError(f"Body is not valid JSON: {exc.msg}", field="body") from exc
        if not isinstance(payload, dict):
            raise MalformedEnvelopeError("Body is not a JSON object", field="body")
        return payload

    @staticmethod
    def is_url_verification(payload: Mapping[str, Any]) -> bool:
        return payload.get("type") == FEISHU_URL_VERIFICATION and "encrypt" not in payload

    @staticmethod
    def url_verification_response(payload: Mapping[str, Any]) -> dict[str, Any]:
        challenge = payload.get("challenge")
        if not isinstance(challenge, str):
            raise MalformedEnvelopeError("url_verification has no challenge", field="challenge")
        return {"challenge": challenge}

    def decode_inbound(self, payload: Mapping[str, Any]) -> Envelope:
        """Read ``encrypt``, ``timestamp``, ``nonce`` and ``signature``.

        Raises
        ------
        MalformedEnvelopeError
            If any field is missing or not a non-empty string.
        """
        return Envelope(
            signature=_required(payload, "signature"),
            timestamp=_required(payload, "timestamp"),
            nonce=_required(payload, "nonce"),
            ciphertext=_required(payload, "encrypt"),
        )

    def encode_outbound(self, ciphertext: str, timestamp: str, nonce: str, signature: str) -> dict[str, Any]:
        return {
            "encrypt": ciphertext,
            "timestamp": timestamp,
            "nonce": nonce,
            "signature": signature,
        }
