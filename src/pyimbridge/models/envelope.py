"""Transport envelope model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Envelope(BaseModel):
    """Signature metadata plus base64 ciphertext, inbound or outbound.

    ``agent_id`` is only populated for WeCom XML envelopes that carry an
    ``AgentID`` element.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    signature: str
    timestamp: str
    nonce: str
    ciphertext: str
    agent_id: str | None = None
