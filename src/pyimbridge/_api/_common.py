"""Helpers shared by the platform API clients."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from pyimbridge._constants import TOKEN_REFRESH_MARGIN
from pyimbridge.exceptions import UpstreamAPIError


@dataclass
class CachedToken:
    """Access token plus its monotonic expiry."""

    value: str = ""
    expires_at: float = 0.0

    def valid(self) -> bool:
        return bool(self.value) and time.monotonic() < self.expires_at

    def store(self, value: str, expires_in: Any) -> str:
        try:
            lifetime = float(expires_in)
        except (TypeError, ValueError):
            lifetime = 0.0
        self.value = value
        self.expires_at = time.monotonic() + max(0.0, lifetime - TOKEN_REFRESH_MARGIN)
        return value


def raise_for_code(response: dict[str, Any], *, code_key: str, message_key: str, endpoint: str) -> None:
    """Raise :class:`UpstreamAPIError` when *response* carries a non-zero code."""
    code = response.get(code_key, 0)
    if code in (0, "0", None):
        return
    raise UpstreamAPIError(
        f"{endpoint} failed: code={code} message={response.get(message_key, '')}",
        code=str(code),
        endpoint=endpoint,
    )
