"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 风格抽象接口 (base)。
- 维护 Provider 配置与解析规则 (registry)。
- 提供各类 API 风格的具体实现 (openai_style、anthropic_style、generic_style)。
"""

from chat_core.providers.base import ProviderStyle
from chat_core.providers.anthropic_style import AnthropicStyle
from chat_core.providers.generic_style import GenericStyle
from chat_core.providers.openai_style import OpenAIStyle
from chat_core.providers.registry import (
    DEFAULT_PROVIDER,
    PROVIDERS,
    ProviderConfig,
    resolve_provider,
)

__all__ = [
    "ProviderStyle",
    "OpenAIStyle",
    "AnthropicStyle",
    "GenericStyle",
    "ProviderConfig",
    "DEFAULT_PROVIDER",
    "PROVIDERS",
    "resolve_provider",
]
