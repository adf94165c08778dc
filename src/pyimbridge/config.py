"""Bridge configuration for pyimbridge."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyimbridge._constants import DEFAULT_COMPLETION_MODEL, DEFAULT_COMPLETION_URL
from pyimbridge._crypto.aes import decode_key_seed, derive_feishu_key
from pyimbridge._crypto.frame import PartyMismatchPolicy
from pyimbridge.exceptions import ImBridgeConfigError


def _env_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ImBridgeConfigError(f"Expected an integer, got {value!r}") from exc


def _env_policy(value: str | None) -> PartyMismatchPolicy:
    if value is None or not value.strip():
        return PartyMismatchPolicy.LOG
    try:
        return PartyMismatchPolicy(value.strip().lower())
    except ValueError as exc:
        raise ImBridgeConfigError(f"Unknown party mismatch policy {value!r} (use 'log' or 'strict')") from exc


@dataclasses.dataclass(frozen=True)
class WeComCredentials:
    """WeCom (enterprise WeChat) callback credentials.

    Parameters
    ----------
    token : str
        Shared token used only for ``msg_signature``.
    encoding_aes_key : str
        43-character base64 key seed; ``seed + "="`` decodes to the
        32-byte AES key.
    corp_id : str
        Corp identifier appended to every frame.
    agent_id : str or None
        Application agent id.
    corp_secret : str or None
        Application secret for ``gettoken``.
    target_agent_id : str or None
        When set, envelopes whose ``AgentID`` differs are acknowledged
        without decryption.
    party_mismatch_policy : PartyMismatchPolicy
        Whether a frame with a foreign corp id is logged or rejected.
    """

    token: str
    encoding_aes_key: str
    corp_id: str
    agent_id: str | None = None
    corp_secret: str | None = None
    target_agent_id: str | None = None
    party_mismatch_policy: PartyMismatchPolicy = PartyMismatchPolicy.LOG

    @property
    def key(self) -> bytes:
        """32-byte AES key decoded from :attr:`encoding_aes_key`."""
        return decode_key_seed(self.encoding_aes_key)


@dataclasses.dataclass(frozen=True)
class FeishuCredentials:
    """Feishu application and event-subscription credentials."""

    app_id: str
    app_secret: str
    encrypt_key: str
    verification_token: str | None = None

    @property
    def key(self) -> bytes:
        """32-byte AES key derived from :attr:`encrypt_key`."""
        return derive_feishu_key(self.encrypt_key)


@dataclasses.dataclass(frozen=True)
class CompletionSettings:
    """Text-completion service settings."""

    api_key: str
    api_url: str = DEFAULT_COMPLETION_URL
    model_id: str = DEFAULT_COMPLETION_MODEL
    timeout: float = 30.0


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Top-level configuration.

    Parameters
    ----------
    wecom : WeComCredentials or None
        WeCom integration, or ``None`` when not configured.
    feishu : FeishuCredentials or None
        Feishu integration, or ``None`` when not configured.
    completion : CompletionSettings or None
        Summarisation service, or ``None`` when not configured.
    recent_callback_capacity : int
        Number of callback summaries kept for debugging.
    user_store_capacity : int
        Maximum number of user records held in memory.
    processed_message_capacity : int
        Maximum number of message ids remembered for duplicate
        suppression.
    """

    wecom: WeComCredentials | None = None
    feishu: FeishuCredentials | None = None
    completion: CompletionSettings | None = None
    recent_callback_capacity: int = 10
    user_store_capacity: int = 1024
    processed_message_capacity: int = 2048

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from environment variables.

        Reads the ``WECHAT_*``, ``FEISHU_*``, ``DOUBAO_*`` and ``BRIDGE_*`` variables.
        An integration is only configured when all of its required
        variables are present. Explicit keyword arguments override
        environment values.

        Raises
        ------
        ImBridgeConfigError
            If a present value is malformed (for example an AES key that
            does not decode to 32 bytes).
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        token = env.get("WECHAT_TOKEN")
        seed = env.get("WECHAT_ENCODING_AES_KEY")
        corp_id = env.get("WECHAT_CORP_ID")
        if token and seed and corp_id:
            wecom = WeComCredentials(
                token=token,
                encoding_aes_key=seed,
                corp_id=corp_id,
                agent_id=env.get("WECHAT_AGENT_ID") or None,
                corp_secret=env.get("WECHAT_CORP_SECRET") or env.get("WECHAT_SECRET") or None,
                target_agent_id=env.get("TARGET_AGENT_ID") or None,
                party_mismatch_policy=_env_policy(env.get("WECHAT_PARTY_MISMATCH")),
            )
            # Fail at load time rather than on the first callback.
            _ = wecom.key
            config_kwargs["wecom"] = wecom

        app_id = env.get("FEISHU_APP_ID")
        app_secret = env.get("FEISHU_APP_SECRET")
        encrypt_key = env.get("FEISHU_ENCRYPT_KEY")
        if app_id and app_secret and encrypt_key:
            feishu = FeishuCredentials(
                app_id=app_id,
                app_secret=app_secret,
                encrypt_key=encrypt_key,
                verification_token=env.get("FEISHU_VERIFICATION_TOKEN") or None,
            )
            _ = feishu.key
            config_kwargs["feishu"] = feishu

        api_key = env.get("DOUBAO_API_KEY")
        if api_key:
            config_kwargs["completion"] = CompletionSettings(
                api_key=api_key,
                api_url=env.get("DOUBAO_API_URL") or DEFAULT_COMPLETION_URL,
                model_id=env.get("DOUBAO_MODEL_ID") or DEFAULT_COMPLETION_MODEL,
            )

        if "recent_callback_capacity" not in overrides:
            config_kwargs["recent_callback_capacity"] = _env_int(env.get("BRIDGE_RECENT_CALLBACKS"), 10)
        if "user_store_capacity" not in overrides:
            config_kwargs["user_store_capacity"] = _env_int(env.get("BRIDGE_USER_STORE_SIZE"), 1024)
        if "processed_message_capacity" not in overrides:
            config_kwargs["processed_message_capacity"] = _env_int(env.get("BRIDGE_PROCESSED_MESSAGES"), 2048)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)

    def describe(self) -> dict[str, Any]:
        """Presence flags and lengths only, safe to log."""
        wecom = self.wecom
        feishu = self.feishu
        return {
            "wecom": None
            if wecom is None
            else {
                "token": bool(wecom.token),
                "encoding_aes_key_length": len(wecom.encoding_aes_key),
                "corp_id": bool(wecom.corp_id),
                "corp_secret": bool(wecom.corp_secret),
                "target_agent_id": wecom.target_agent_id,
                "party_mismatch_policy": wecom.party_mismatch_policy.value,
            },
            "feishu": None
            if feishu is None
            else {
                "app_id": feishu.app_id,
                "app_secret": bool(feishu.app_secret),
                "encrypt_key_length": len(feishu.encrypt_key),
                "verification_token": bool(feishu.verification_token),
            },
            "completion": None
            if self.completion is None
            else {"api_key": True, "api_url": self.completion.api_url, "model_id": self.completion.model_id},
            "recent_callback_capacity": self.recent_callback_capacity,
            "user_store_capacity": self.user_store_capacity,
            "processed_message_capacity": self.processed_message_capacity,
        }
