"""鉴权头构造函数：api_key -> HTTP 头映射。"""

from typing import Dict


def authorize_bearer(api_key: str) -> Dict[str, str]:
    """OpenAI 兼容接口使用的 Authorization: Bearer <api_key>。"""

    return {"Authorization": f"Bearer {api_key}"}


def authorize_x_api_key(api_key: str) -> Dict[str, str]:
    """Anthropic 使用的 x-api-key 头。"""

    return {"x-api-key": api_key}
