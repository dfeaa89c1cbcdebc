"""Chat Core 顶层包。

该包把多个互不兼容的 LLM 聊天补全后端（OpenAI 风格、Anthropic 风格、
通用本地服务）统一到同一套请求/响应与流式接口之后，
包括 Provider 配置解析、请求构造、HTTP 传输、SSE 增量解码与多轮会话。
"""

from chat_core.api.service import reply, stream_reply
from chat_core.chat import ChatSession, ReplyStream, build_request
from chat_core.domain.models import ChatMessage
from chat_core.providers import PROVIDERS, resolve_provider

__all__ = [
    "ChatSession",
    "ReplyStream",
    "ChatMessage",
    "build_request",
    "resolve_provider",
    "reply",
    "stream_reply",
    "PROVIDERS",
]
