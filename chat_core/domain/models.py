"""统一的对话与请求数据模型。

本模块定义了在不同 Provider 之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant），文本 + 可选图片。
- ChatHttpRequest: 请求构造器产出的完整 HTTP 请求描述，交给 Transport 立即发送。
- RawResponse: Transport 非流式调用返回的原始响应。

所有 Provider 风格（OpenAIStyle 等）都只在构造请求时把 ChatMessage
转换为各家 API 的 JSON 结构，内存中的历史记录始终保持这里的中立格式。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional, TYPE_CHECKING

from chat_core.domain.exceptions import ConfigError, ProtocolError

if TYPE_CHECKING:
    # 仅在类型检查时导入，避免运行时循环依赖
    from chat_core.providers.registry import ProviderConfig


# LLM 消息角色类型（与 OpenAI / Anthropic 等厂商的 role 字段对应）
Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """一条对话消息。

    - role: 消息角色，如 user/assistant。
    - text: 纯文本内容。
    - image: 可选图片，data URL（data:image/png;base64,...）或普通 http(s) URL。
    """

    role: Role
    text: str
    image: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessage":
        """从 {role, text, image?} 映射构造消息。

        也接受 {role, content} 形式，content 可以是字符串或 {text, image?}。
        """

        role = data.get("role")
        text = data.get("text")
        image = data.get("image")
        content = data.get("content")
        if text is None and isinstance(content, str):
            text = content
        elif text is None and isinstance(content, Mapping):
            text = content.get("text")
            image = content.get("image", image)
        if role not in ("system", "user", "assistant"):
            raise ConfigError(f"invalid history message role: {role!r}")
        if not isinstance(text, str):
            raise ConfigError(f"history message has no text: {dict(data)!r}")
        return cls(role=role, text=text, image=image)


@dataclass
class ChatHttpRequest:
    """一次聊天调用的 HTTP 请求描述。

    - url / headers / body: 直接用于 POST 的字段，body 为可 JSON 序列化结构。
    - stream: 是否为流式请求（body 中的 stream 字段与之一致）。
    - provider: 解析后的 ProviderConfig，后续用于解析响应。
    """

    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]
    stream: bool = False
    provider: Optional["ProviderConfig"] = field(default=None, repr=False, compare=False)


@dataclass
class RawResponse:
    """非流式调用的原始响应（状态码 + 完整响应体）。"""

    status_code: int
    text: str

    def json(self) -> Any:
        try:
            return json.loads(self.text)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"response body is not valid JSON: {e}", status_code=self.status_code)
