"""请求构造器。

把“用户问题 + 调用选项”转换为某个 Provider 的完整 HTTP 请求（ChatHttpRequest）。
这里是纯函数，不做任何网络调用；鉴权检查在这里同步完成。

请求体的组装顺序固定为：
    style.shape_payload(...) -> model -> max tokens 字段 -> prediction -> Provider 静态 body -> stream
请求头：Content-Type 默认值 < 鉴权头 < Provider 静态 headers。
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from chat_core.domain.exceptions import AuthenticationError, ConfigError
from chat_core.domain.models import ChatHttpRequest, ChatMessage
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers.registry import ProviderConfig, resolve_provider

DEFAULT_MAX_TOKENS = 1024


def _as_message(entry: Union[ChatMessage, Mapping[str, Any]]) -> ChatMessage:
    if isinstance(entry, ChatMessage):
        return entry
    if isinstance(entry, Mapping):
        return ChatMessage.from_dict(entry)
    raise ConfigError(f"unsupported history entry type: {type(entry).__name__}")


def convert_history(
    config: ProviderConfig,
    history: Optional[Iterable[Union[ChatMessage, Mapping[str, Any]]]],
) -> List[Dict[str, Any]]:
    """把中立格式的历史消息逐条转换为 Provider 原生的 {role, content}。

    条目可以是 ChatMessage，也可以是 {role, text, image?} 映射。
    """

    if not history:
        return []
    native: List[Dict[str, Any]] = []
    for entry in history:
        msg = _as_message(entry)
        native.append({"role": msg.role, "content": config.shape_content(msg.text, msg.image)})
    return native


def build_request(
    query: str,
    *,
    provider: Optional[str] = None,
    system: Optional[str] = None,
    history: Optional[Iterable[Union[ChatMessage, Mapping[str, Any]]]] = None,
    image: Optional[str] = None,
    prefill: Optional[str] = None,
    max_tokens: Optional[int] = None,
    api_key: Optional[str] = None,
    prediction: Optional[str] = None,
    stream: bool = False,
    **overrides,
) -> ChatHttpRequest:
    """构造一次聊天调用的 HTTP 请求。

    Args:
        query: 用户本轮输入。
        provider: 逻辑 Provider 名（如 "openai"），为空时只使用默认配置 + 覆盖项。
        system: 系统提示词。
        history: 之前的对话消息（ChatMessage 或 {role, text, image?} 映射）。
        image: 本轮消息附带的图片（data URL 或 http URL）。
        prefill: 预填的 assistant 开头。
        max_tokens: 最大生成 token 数，默认 1024。
        api_key: Provider 的 API Key。
        prediction: 预测输出（OpenAI predicted outputs）。
        stream: 是否请求流式响应。
        **overrides: ProviderConfig 字段的覆盖项，例如 model、base_url、max_tokens_name。

    Raises:
        ConfigError: Provider 配置无法解析出 URL 或存在未知覆盖项。
        AuthenticationError: Provider 需要鉴权但未提供 api_key。
    """

    config = resolve_provider(provider, **overrides)
    url = config.url_for("chat")

    # 鉴权检查必须发生在任何网络请求之前
    if config.authorize is not None and not api_key:
        raise AuthenticationError(
            f"API key is required for provider {config.name!r}",
            provider=config.name,
        )

    content = config.shape_content(query, image)
    native_history = convert_history(config, history)
    body: Dict[str, Any] = dict(
        config.shape_payload(content, system=system, history=native_history, prefill=prefill)
    )
    if config.model:
        body["model"] = config.model
    body[config.max_tokens_name or "max_tokens"] = max_tokens if max_tokens is not None else DEFAULT_MAX_TOKENS
    if prediction is not None:
        body["prediction"] = {"type": "content", "content": prediction}
    if config.body:
        body.update(config.body)
    body["stream"] = bool(stream)

    headers: Dict[str, str] = {"Content-Type": "application/json"}
    if config.authorize is not None and api_key:
        headers.update(config.authorize(api_key))
    if config.headers:
        headers.update(config.headers)

    logger.info(
        "request.built",
        extra={"extra": {
            "provider": config.name,
            "url": url,
            "model": config.model,
            "stream": bool(stream),
            "history": len(native_history),
        }},
    )
    return ChatHttpRequest(url=url, headers=headers, body=body, stream=bool(stream), provider=config)
