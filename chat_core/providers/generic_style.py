"""通用本地服务风格。

面向自建的简单推理服务，请求体是扁平结构：
    {"query": ..., "system": ..., "history": [...], "prefill": ...}
未设置的字段不会出现在请求体中。响应与每个流式事件都用 `text` 字段携带文本。
"""

from typing import Any, Dict, List, Optional

from chat_core.providers.base import ProviderStyle


class GenericStyle(ProviderStyle):
    name = "generic"

    def shape_content(self, text: str, image: Optional[str] = None) -> Any:
        if image is None:
            return text
        return {"text": text, "image": image}

    def shape_payload(
        self,
        content: Any,
        system: Optional[str] = None,
        history: Optional[List[Dict[str, Any]]] = None,
        prefill: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"query": content}
        if system is not None:
            payload["system"] = system
        if history:
            payload["history"] = list(history)
        if prefill is not None:
            payload["prefill"] = prefill
        return payload

    def extract_response(self, data: Any) -> str:
        if not isinstance(data, dict) or "text" not in data:
            raise self._protocol_error("text field", data)
        text = data["text"]
        if text is not None and not isinstance(text, str):
            raise self._protocol_error("text field", data)
        return text or ""

    def extract_stream_delta(self, event: Any) -> Optional[str]:
        if not isinstance(event, dict):
            return None
        text = event.get("text")
        return text if isinstance(text, str) else None
