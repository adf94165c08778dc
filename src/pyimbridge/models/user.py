"""User record kept by the in-memory user store."""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(tz=UTC)


class UserState(enum.StrEnum):
    """Onboarding state of a messaging-platform user."""

    NEW = "new"
    PENDING_AUTH = "pending_auth"
    AUTHORIZED = "authorized"


class UserRecord(BaseModel):
    """Per-user link between a WeCom external user and a Feishu account."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    external_userid: str
    state: UserState = UserState.NEW
    user_name: str | None = None
    access_token: str | None = None
    main_document_id: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def safe_view(self) -> dict[str, Any]:
        """Record without the access token, plus a ``has_token`` flag."""
        data = self.model_dump(mode="json", exclude={"access_token"})
        data["has_token"] = bool(self.access_token)
        return data
