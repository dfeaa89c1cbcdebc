import pytest

from chat_core.domain.exceptions import ConfigError
from chat_core.providers import (
    DEFAULT_PROVIDER,
    PROVIDERS,
    AnthropicStyle,
    GenericStyle,
    OpenAIStyle,
    resolve_provider,
)
from chat_core.providers.auth import authorize_bearer, authorize_x_api_key


def test_builtin_provider_names():
    assert set(PROVIDERS) == {"local", "generic", "openai", "anthropic", "fireworks", "groq"}


def test_resolve_fills_gaps_from_default():
    cfg = resolve_provider("openai")
    assert cfg.name == "openai"
    assert cfg.model == "gpt-4o"
    assert cfg.max_tokens_name == "max_completion_tokens"
    # 未设置的字段来自默认配置
    assert cfg.chat_path == DEFAULT_PROVIDER.chat_path
    assert isinstance(cfg.style, OpenAIStyle)
    assert cfg.authorize is authorize_bearer
    assert cfg.url_for("chat") == "https://api.openai.com/v1/chat/completions"


def test_resolve_is_case_insensitive():
    assert resolve_provider("Anthropic").name == "anthropic"


def test_overrides_win_over_provider_and_default():
    cfg = resolve_provider("openai", model="gpt-4o-mini", max_tokens_name="max_tokens")
    assert cfg.model == "gpt-4o-mini"
    assert cfg.max_tokens_name == "max_tokens"
    assert cfg.base_url == "https://api.openai.com/v1"


def test_headers_merge_key_by_key():
    cfg = resolve_provider("anthropic", headers={"anthropic-beta": "none", "x-trace": "1"})
    assert cfg.headers["anthropic-version"] == "2023-06-01"
    assert cfg.headers["anthropic-beta"] == "none"
    assert cfg.headers["x-trace"] == "1"
    assert isinstance(cfg.style, AnthropicStyle)
    assert cfg.authorize is authorize_x_api_key


def test_unknown_provider_is_soft():
    cfg = resolve_provider("nope")
    assert cfg.name == "nope"
    assert cfg.base_url is None
    with pytest.raises(ConfigError):
        cfg.url_for("chat")


def test_custom_provider_purely_from_overrides():
    cfg = resolve_provider(None, base_url="https://llm.example.com/api", chat_path="v2/chat", style=GenericStyle())
    assert cfg.url_for("chat") == "https://llm.example.com/api/v2/chat"
    assert cfg.authorize is None


def test_unknown_override_key_raises():
    with pytest.raises(ConfigError) as ei:
        resolve_provider("openai", temprature=0.2)
    assert "temprature" in ei.value.message


def test_local_url_uses_host_and_port():
    assert resolve_provider("local").url_for("chat") == "http://localhost:8000/v1/chat/completions"
    cfg = resolve_provider("local", host="10.0.0.5", port=9001)
    assert cfg.url_for("chat") == "http://10.0.0.5:9001/v1/chat/completions"
    assert cfg.url_for("embed") == "http://10.0.0.5:9001/v1/embeddings"


def test_generic_paths():
    cfg = resolve_provider("generic")
    assert cfg.url_for("chat") == "http://localhost:8000/chat"
    assert cfg.url_for("transcribe") == "http://localhost:8000/transcribe"


def test_url_for_rejects_unknown_endpoint():
    with pytest.raises(ConfigError):
        resolve_provider("openai").url_for("images")


def test_callable_base_url_without_port():
    cfg = resolve_provider(None, base_url=lambda host, port: f"http://{host}:{port}")
    with pytest.raises(ConfigError):
        cfg.url_for("chat")
