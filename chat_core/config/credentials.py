"""API Key 读取。

核心层从不持久化密钥，这里只负责按 Provider 名称查找一个已经存在的 Key：
先看 settings 中的 `<provider>_api_key`，再看环境变量 `<PROVIDER>_API_KEY`。
"""

from __future__ import annotations

import os
from typing import Optional

from chat_core.config.settings import settings


def get_api_key(provider: Optional[str], cfg=None) -> Optional[str]:
    """返回 provider 对应的 API Key，找不到时返回 None。"""

    if not provider:
        return None
    cfg = cfg if cfg is not None else settings
    name = provider.strip().lower().replace("-", "_")
    value = getattr(cfg, f"{name}_api_key", None)
    if value:
        return value
    return os.environ.get(f"{name.upper()}_API_KEY") or None
