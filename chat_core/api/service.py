"""对外 API 服务模块。

提供无状态的函数接口供上层应用调用，不需要自己维护 ChatSession。
"""

from typing import Any, Dict, Optional

from chat_core.chat.session import ChatSession, ReplyStream
from chat_core.config.credentials import get_api_key
from chat_core.config.settings import settings
from chat_core.infrastructure.logging.logger import logger


def _prepare(options: Dict[str, Any]) -> Dict[str, Any]:
    opts = dict(options)
    if not opts.get("provider") and "base_url" not in opts:
        opts["provider"] = settings.default_provider
    if not opts.get("api_key"):
        key = get_api_key(opts.get("provider"))
        if key:
            opts["api_key"] = key
    return opts


def reply(query: str, transport=None, **options) -> str:
    """单次聊天调用。

    Args:
        query: 用户输入内容
        transport: 可选的传输实现（默认 HttpTransport）
        **options: 与 build_request 相同的选项（provider、system、history、api_key 等）

    Returns:
        助手回答文本

    Raises:
        各种 domain.exceptions 中定义的异常
    """
    opts = _prepare(options)
    system: Optional[str] = opts.pop("system", None)
    try:
        return ChatSession(system, transport=transport).reply(query, **opts)
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {
            "provider": opts.get("provider"),
            "error": str(e),
        }})
        raise


def stream_reply(query: str, transport=None, **options) -> ReplyStream:
    """单次流式聊天调用，返回逐段产出增量文本的 ReplyStream。

    与 ChatSession.stream 一致：配置错误与鉴权错误在调用时立即抛出。
    """

    opts = _prepare(options)
    system: Optional[str] = opts.pop("system", None)
    return ChatSession(system, transport=transport).stream(query, **opts)
