"""Callback pipelines for the WeCom and Feishu integrations."""

from pyimbridge.callbacks._common import http_status_for
from pyimbridge.callbacks.feishu import FeishuCallback, FeishuHandler
from pyimbridge.callbacks.wecom import WeComCallback, WeComHandler

__all__ = [
    "FeishuCallback",
    "FeishuHandler",
    "WeComCallback",
    "WeComHandler",
    "http_status_for",
]
