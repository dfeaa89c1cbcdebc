"""OpenAI 兼容风格。

OpenAI、Fireworks、Groq 以及大多数本地推理服务（vLLM、llama.cpp server 等）
都使用同一套 chat/completions 接口：
- 请求: {"messages": [{"role": ..., "content": ...}, ...]}，system 作为第一条消息。
- 响应: choices[0].message.content
- 流式: 每个 `data: {...}` 帧中的 choices[0].delta.content，以 `data: [DONE]` 结束。
"""

from typing import Any, Dict, List, Optional

from chat_core.providers.base import ProviderStyle


class OpenAIStyle(ProviderStyle):
    name = "openai"

    def shape_content(self, text: str, image: Optional[str] = None) -> Any:
        if image is None:
            return text
        # 图片既可以是 data URL 也可以是普通 URL，OpenAI 均接受
        return [
            {"type": "image_url", "image_url": {"url": image}},
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
        if system is not None:
            messages.append({"role": "system", "content": system})
        if history:
            messages.extend(history)
        messages.append({"role": "user", "content": content})
        if prefill is not None:
            messages.append({"role": "assistant", "content": prefill})
        return {"messages": messages}

    def extract_response(self, data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise self._protocol_error("choices[0].message.content", data)
        if content is not None and not isinstance(content, str):
            raise self._protocol_error("text content", data)
        return content or ""

    def extract_stream_delta(self, event: Any) -> Optional[str]:
        try:
            delta = event["choices"][0]["delta"]
        except (KeyError, IndexError, TypeError):
            # usage 统计等不带 choices 的事件
            return None
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) else None
