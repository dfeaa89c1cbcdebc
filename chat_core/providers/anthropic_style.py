"""Anthropic Messages API 风格。

与 OpenAI 风格的差异：
- system 提示放在请求体顶层的 `system` 字段，而不是消息列表里。
- 图片使用 {"type": "image", "source": {...}} 内容块。
- 响应文本位于 content 数组中的 text 块。
- 流式响应由多种事件组成（message_start、content_block_delta、message_stop 等），
  只有 content_block_delta 且 delta.type 为 text_delta 的事件携带文本；
  流以连接关闭结束，没有 [DONE] 哨兵。
"""

from typing import Any, Dict, List, Optional

from chat_core.providers.base import ProviderStyle, split_data_url


class AnthropicStyle(ProviderStyle):
    name = "anthropic"

    def shape_content(self, text: str, image: Optional[str] = None) -> Any:
        if image is None:
            return text
        parsed = split_data_url(image)
        if parsed is not None:
            source = {"type": "base64", **parsed}
        else:
            source = {"type": "url", "url": image}
        return [
            {"type": "image", "source": source},
            {"type": "text", "text": text},
        ]

    def shape_payload(
        self,
        content: Any,
        system: Optional[str] = None,
        history: Optional[List[Dict[str, Any]]] = None,
        prefill: Optional[str] = None,
    ) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = []
        if history:
            messages.extend(history)
        messages.append({"role": "user", "content": content})
        if prefill is not None:
            messages.append({"role": "assistant", "content": prefill})
        payload: Dict[str, Any] = {"messages": messages}
        if system is not None:
            payload["system"] = system
        return payload

    def extract_response(self, data: Any) -> str:
        try:
            blocks = data["content"]
            texts = [b["text"] for b in blocks if b.get("type", "text") == "text"]
        except (KeyError, TypeError, AttributeError):
            raise self._protocol_error("content blocks", data)
        if not texts:
            raise self._protocol_error("text block", data)
        return texts[0] or ""

    def extract_stream_delta(self, event: Any) -> Optional[str]:
        if not isinstance(event, dict) or event.get("type") != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        if delta.get("type") != "text_delta":
            return None
        text = delta.get("text")
        return text if isinstance(text, str) else None
