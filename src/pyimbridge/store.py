"""In-memory stores for user records and recent callbacks.

Both are bounded: :class:`UserStore` evicts the least recently used
record and :class:`CallbackLog` keeps only the newest entries. A
persistent backend can replace :class:`UserStore` by implementing the
same methods.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from datetime import UTC, datetime
from typing import Any

from pyimbridge._cache import LruCache
from pyimbridge._redact import redact_for_log
from pyimbridge.config import BridgeConfig
from pyimbridge.models.user import UserRecord, UserState

_logger = logging.getLogger(__name__)


class UserStore:
    """User records keyed by the messaging platform's external user id."""

    def __init__(self, capacity: int = 1024) -> None:
        self._records: LruCache[str, UserRecord] = LruCache(capacity)

    @classmethod
    def from_config(cls, config: BridgeConfig) -> UserStore:
        return cls(config.user_store_capacity)

    @property
    def capacity(self) -> int:
        return self._records.capacity

    def save(
        self,
        external_userid: str,
        state: UserState,
        *,
        user_name: str | None = None,
        access_token: str | None = None,
        main_document_id: str | None = None,
    ) -> UserRecord:
        """Insert or replace the record for *external_userid*.

        Fields left as ``None`` keep their previous value.
        """
        if not external_userid:
            raise ValueError("external_userid is required")
        existing = self._records.get(external_userid)
        now = datetime.now(tz=UTC)
        updates: dict[str, Any] = {"state": state, "updated_at": now}
        if user_name is not None:
            updates["user_name"] = user_name
        if access_token is not None:
            updates["access_token"] = access_token
        if main_document_id is not None:
            updates["main_document_id"] = main_document_id

        if existing is None:
            record = UserRecord(external_userid=external_userid, created_at=now, **updates)
        else:
            record = existing.model_copy(update=updates)
        evicted = self._records.set(external_userid, record)
        if evicted is not None:
            _logger.info("User store full, evicted %s", evicted)
        _logger.debug("Saved user %s state=%s", external_userid, record.state.value)
        return record

    def get(self, external_userid: str) -> UserRecord | None:
        return self._records.get(external_userid)

    def delete(self, external_userid: str) -> bool:
        return self._records.pop(external_userid) is not None

    def all_safe(self) -> list[dict[str, Any]]:
        """Every record without access tokens."""
        return [record.safe_view() for record in self._records.values()]

    def __len__(self) -> int:
        return len(self._records)


class CallbackLog:
    """Newest-first, redacted summaries of recent callbacks."""

    def __init__(self, capacity: int = 10) -> None:
        if capacity <= 0:
            raise ValueError(f"Callback log capacity must be positive (got {capacity})")
        self._entries: deque[dict[str, Any]] = deque(maxlen=capacity)

    @classmethod
    def from_config(cls, config: BridgeConfig) -> CallbackLog:
        return cls(config.recent_callback_capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def record(self, source: str, method: str, params: dict[str, Any], **extra: Any) -> None:
        entry = {
            "time": time.time(),
            "source": source,
            "method": method,
            "params": redact_for_log(params),
            **redact_for_log(extra),
        }
        self._entries.appendleft(entry)

    def recent(self) -> list[dict[str, Any]]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
