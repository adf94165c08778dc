"""Outbound platform API clients."""

from pyimbridge._api.completion import CompletionClient
from pyimbridge._api.feishu import FeishuApi
from pyimbridge._api.wecom import WeComApi

__all__ = ["CompletionClient", "FeishuApi", "WeComApi"]
