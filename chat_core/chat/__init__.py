"""对话层：请求构造 (request_builder) 与多轮会话 (session)。"""

from chat_core.chat.request_builder import DEFAULT_MAX_TOKENS, build_request
from chat_core.chat.session import ChatSession, ReplyStream, SessionState

__all__ = ["build_request", "DEFAULT_MAX_TOKENS", "ChatSession", "ReplyStream", "SessionState"]
