"""Provider 配置与解析。

本模块把“逻辑 Provider 名”映射为一份完整的 ProviderConfig：

- DEFAULT_PROVIDER：兜底配置，负责补齐未设置的字段。
- PROVIDER_REGISTRY：各内置 Provider 的静态配置。
- resolve_provider：按 默认配置 < 具名 Provider < 调用方覆盖 的顺序逐字段合并。

未知的 Provider 名不会报错，只会得到“默认配置 + 覆盖项”，
这样调用方可以完全通过覆盖项接入一个自定义后端；
如果此时仍缺少 URL，会在构造请求时抛出 ConfigError。"""

from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

from chat_core.domain.exceptions import ConfigError
from chat_core.providers.anthropic_style import AnthropicStyle
from chat_core.providers.auth import authorize_bearer, authorize_x_api_key
from chat_core.providers.base import ProviderStyle
from chat_core.providers.generic_style import GenericStyle
from chat_core.providers.openai_style import OpenAIStyle


BaseUrl = Union[str, Callable[[str, int], str]]
Authorizer = Callable[[str], Dict[str, str]]

# 按字典逐键合并（而不是整体替换）的字段
_MAPPING_FIELDS = ("headers", "body")


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的整体配置。

    所有字段默认为 None，表示“未设置”，解析时由更低优先级的配置补齐。
    """

    name: Optional[str] = None
    base_url: Optional[BaseUrl] = None
    host: Optional[str] = None
    port: Optional[int] = None
    chat_path: Optional[str] = None
    embed_path: Optional[str] = None
    transcribe_path: Optional[str] = None
    authorize: Optional[Authorizer] = None
    style: Optional[ProviderStyle] = None
    model: Optional[str] = None
    max_tokens_name: Optional[str] = None
    headers: Optional[Mapping[str, str]] = None
    body: Optional[Mapping[str, Any]] = None

    def url_for(self, endpoint: str = "chat") -> str:
        """拼接 base_url 与 chat/embed/transcribe 对应的相对路径。"""

        if endpoint not in ("chat", "embed", "transcribe"):
            raise ConfigError(f"unknown endpoint: {endpoint!r}", provider=self.name)
        path = getattr(self, f"{endpoint}_path")
        if self.base_url is None:
            raise ConfigError(f"provider {self.name!r} has no base_url", provider=self.name)
        if callable(self.base_url):
            if self.port is None:
                raise ConfigError(f"provider {self.name!r} needs a port", provider=self.name)
            base = self.base_url(self.host or "localhost", self.port)
        else:
            base = self.base_url
        if path is None:
            raise ConfigError(f"provider {self.name!r} has no {endpoint} path", provider=self.name)
        if not path:
            return base
        return f"{base.rstrip('/')}/{path.lstrip('/')}"

    # ---- 能力委托给 style ----

    def _style(self) -> ProviderStyle:
        if self.style is None:
            raise ConfigError(f"provider {self.name!r} has no style", provider=self.name)
        return self.style

    def shape_content(self, text: str, image: Optional[str] = None) -> Any:
        return self._style().shape_content(text, image)

    def shape_payload(self, content: Any, **kwargs) -> Dict[str, Any]:
        return self._style().shape_payload(content, **kwargs)

    def extract_response(self, data: Any) -> str:
        return self._style().extract_response(data)

    def extract_stream_delta(self, event: Any) -> Optional[str]:
        return self._style().extract_stream_delta(event)


FIELD_NAMES = frozenset(f.name for f in fields(ProviderConfig))


DEFAULT_PROVIDER = ProviderConfig(
    host="localhost",
    chat_path="chat/completions",
    embed_path="embeddings",
    transcribe_path="audio/transcriptions",
    style=OpenAIStyle(),
    max_tokens_name="max_tokens",
    headers=MappingProxyType({}),
    body=MappingProxyType({}),
)


def _local_url(host: str, port: int) -> str:
    return f"http://{host}:{port}/v1"


def _generic_url(host: str, port: int) -> str:
    return f"http://{host}:{port}"


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = MappingProxyType({
    # 本地 OpenAI 兼容服务（vLLM、llama.cpp 等）
    "local": ProviderConfig(
        name="local",
        base_url=_local_url,
        port=8000,
    ),
    # 扁平 query 协议的通用本地服务
    "generic": ProviderConfig(
        name="generic",
        base_url=_generic_url,
        port=8000,
        chat_path="chat",
        embed_path="embed",
        transcribe_path="transcribe",
        style=GenericStyle(),
    ),
    "openai": ProviderConfig(
        name="openai",
        base_url="https://api.openai.com/v1",
        authorize=authorize_bearer,
        model="gpt-4o",
        max_tokens_name="max_completion_tokens",
    ),
    "anthropic": ProviderConfig(
        name="anthropic",
        base_url="https://api.anthropic.com/v1",
        chat_path="messages",
        authorize=authorize_x_api_key,
        style=AnthropicStyle(),
        model="claude-3-5-sonnet-latest",
        headers=MappingProxyType({
            "anthropic-version": "2023-06-01",
            "anthropic-beta": "prompt-caching-2024-07-31",
        }),
    ),
    "fireworks": ProviderConfig(
        name="fireworks",
        base_url="https://api.fireworks.ai/inference/v1",
        authorize=authorize_bearer,
        model="accounts/fireworks/models/llama-v3p1-70b-instruct",
    ),
    "groq": ProviderConfig(
        name="groq",
        base_url="https://api.groq.com/openai/v1",
        authorize=authorize_bearer,
        model="llama-3.1-70b-versatile",
    ),
})

PROVIDERS = tuple(PROVIDER_REGISTRY)


def get_provider_config(name: Optional[str]) -> Optional[ProviderConfig]:
    """根据名称获取静态 ProviderConfig，名称不区分大小写；未知名称返回 None。"""

    if not name:
        return None
    key = name.strip().lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    return None


def merge_configs(*layers: Optional[ProviderConfig]) -> ProviderConfig:
    """按参数顺序逐字段合并，后面的已设置字段覆盖前面的；headers/body 逐键合并。"""

    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer is None:
            continue
        for name in FIELD_NAMES:
            value = getattr(layer, name)
            if value is None:
                continue
            if name in _MAPPING_FIELDS:
                combined = dict(merged.get(name) or {})
                combined.update(value)
                merged[name] = MappingProxyType(combined)
            else:
                merged[name] = value
    return ProviderConfig(**merged)


def resolve_provider(name: Optional[str] = None, **overrides) -> ProviderConfig:
    """解析 Provider 配置：默认配置 < 具名 Provider < 调用方覆盖项。"""

    unknown = set(overrides) - FIELD_NAMES
    if unknown:
        raise ConfigError(f"unknown provider option(s): {', '.join(sorted(unknown))}", provider=name)
    override_cfg = ProviderConfig(**overrides) if overrides else None
    resolved = merge_configs(DEFAULT_PROVIDER, get_provider_config(name), override_cfg)
    if resolved.name is None and name:
        resolved = merge_configs(resolved, ProviderConfig(name=name.strip().lower()))
    return resolved
