"""Platform endpoints and protocol constants."""

from __future__ import annotations

WECOM_API_BASE = "https://qyapi.weixin.qq.com/cgi-bin"
FEISHU_API_BASE = "https://open.feishu.cn/open-apis"

DEFAULT_COMPLETION_URL = "https://ark.cn-beijing.volces.com/api/v3/chat/completions"
DEFAULT_COMPLETION_MODEL = "ep-20241211142857-8q2fh"

#: Refresh cached platform access tokens this many seconds early.
TOKEN_REFRESH_MARGIN = 300

#: Acknowledgement body expected by WeCom when there is no passive reply.
WECOM_ACK = "success"

FEISHU_URL_VERIFICATION = "url_verification"
FEISHU_MESSAGE_RECEIVE = "im.message.receive_v1"

USER_AGENT = "pyimbridge"
