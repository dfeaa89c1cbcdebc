"""Provider 风格抽象接口。

请求构造器与会话层不直接依赖具体厂商的 JSON 结构，而是依赖此接口：

- 每一类 API 风格实现一个 ProviderStyle（OpenAIStyle、AnthropicStyle、GenericStyle）。
- 负责：把文本/图片转成厂商 content、组装请求体、从完整响应或单个 SSE 事件中取出文本。

新增后端时只需新增一个风格类，并在 registry 中登记对应的 ProviderConfig。
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from chat_core.domain.exceptions import ProtocolError


class ProviderStyle(ABC):
    """LLM Provider 风格协议。

    实现者需要提供：
    - name: 风格名称，用于日志。
    - shape_content(text, image): 单条消息的厂商 content 值。
    - shape_payload(content, ...): 请求体的消息部分。
    - extract_response(data): 从完整 JSON 响应中取出回答文本。
    - extract_stream_delta(event): 从单个流式事件中取出增量文本，非内容事件返回 None。
    """

    name: str = "base"

    @abstractmethod
    def shape_content(self, text: str, image: Optional[str] = None) -> Any:
        ...

    @abstractmethod
    def shape_payload(
        self,
        content: Any,
        system: Optional[str] = None,
        history: Optional[List[Dict[str, Any]]] = None,
        prefill: Optional[str] = None,
    ) -> Dict[str, Any]:
        ...

    @abstractmethod
    def extract_response(self, data: Any) -> str:
        ...

    @abstractmethod
    def extract_stream_delta(self, event: Any) -> Optional[str]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def _protocol_error(self, what: str, data: Any) -> ProtocolError:
        return ProtocolError(f"{self.name} response has no {what}", style=self.name, response=data)


def split_data_url(image: str) -> Optional[Dict[str, str]]:
    """把 data:image/png;base64,xxx 拆成 media_type 与 data，非 data URL 返回 None。"""

    if not image.startswith("data:") or "," not in image:
        return None
    header, data = image[5:].split(",", 1)
    media_type = header.split(";", 1)[0] or "application/octet-stream"
    return {"media_type": media_type, "data": data}
