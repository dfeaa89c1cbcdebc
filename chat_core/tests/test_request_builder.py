import pytest

from chat_core.chat.request_builder import DEFAULT_MAX_TOKENS, build_request
from chat_core.domain.exceptions import AuthenticationError, ConfigError
from chat_core.domain.models import ChatMessage


def test_max_tokens_precedence():
    req = build_request("hi", provider="openai", api_key="sk-test", max_tokens=500)
    assert req.body["max_completion_tokens"] == 500
    assert "max_tokens" not in req.body


def test_max_tokens_default():
    req = build_request("hi", provider="local")
    assert req.body["max_tokens"] == DEFAULT_MAX_TOKENS == 1024


def test_caller_field_name_override_wins():
    req = build_request("hi", provider="openai", api_key="k", max_tokens_name="max_tokens", max_tokens=7)
    assert req.body["max_tokens"] == 7
    assert "max_completion_tokens" not in req.body


def test_missing_api_key_raises_before_io():
    with pytest.raises(AuthenticationError) as ei:
        build_request("hi", provider="anthropic")
    assert ei.value.code == "MISSING_API_KEY"


def test_unresolved_url_raises_config_error():
    with pytest.raises(ConfigError):
        build_request("hi", provider="does-not-exist")


def test_openai_request_shape():
    req = build_request("2+2?", provider="openai", api_key="sk-test", system="be brief", stream=True)
    assert req.url == "https://api.openai.com/v1/chat/completions"
    assert req.stream is True
    assert req.headers["Authorization"] == "Bearer sk-test"
    assert req.headers["Content-Type"] == "application/json"
    assert req.body["model"] == "gpt-4o"
    assert req.body["stream"] is True
    assert req.body["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "2+2?"},
    ]
    assert req.provider.name == "openai"


def test_anthropic_request_shape():
    req = build_request("hi", provider="anthropic", api_key="ak", system="sys")
    assert req.url == "https://api.anthropic.com/v1/messages"
    assert req.headers["x-api-key"] == "ak"
    assert req.headers["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in req.headers
    assert req.body["system"] == "sys"
    assert req.body["messages"] == [{"role": "user", "content": "hi"}]
    assert req.body["max_tokens"] == 1024
    assert req.body["stream"] is False


def test_provider_headers_override_content_type():
    req = build_request("hi", provider="local", headers={"Content-Type": "application/json; charset=utf-8"})
    assert req.headers["Content-Type"] == "application/json; charset=utf-8"
    assert "Authorization" not in req.headers


def test_history_converted_with_content_shape():
    history = [
        ChatMessage(role="user", text="look", image="data:image/png;base64,AAAA"),
        ChatMessage(role="assistant", text="a cat"),
    ]
    req = build_request("and now?", provider="anthropic", api_key="ak", history=history)
    messages = req.body["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[0]["content"][0]["type"] == "image"
    assert messages[0]["content"][1] == {"type": "text", "text": "look"}
    assert messages[1]["content"] == "a cat"


def test_generic_flat_payload():
    history = [ChatMessage(role="user", text="a"), ChatMessage(role="assistant", text="b")]
    req = build_request("c", provider="generic", history=history, prefill="d")
    assert req.url == "http://localhost:8000/chat"
    assert req.body["query"] == "c"
    assert req.body["history"] == [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}]
    assert req.body["prefill"] == "d"
    assert "model" not in req.body


def test_overlay_order_prediction_body_stream():
    req = build_request(
        "hi",
        provider="openai",
        api_key="k",
        prediction="draft",
        body={"temperature": 0.2, "stream": True},
        stream=False,
    )
    assert req.body["prediction"] == {"type": "content", "content": "draft"}
    assert req.body["temperature"] == 0.2
    # stream 标志总是最后写入
    assert req.body["stream"] is False


def test_static_body_can_override_model():
    req = build_request("hi", provider="openai", api_key="k", body={"model": "o1"})
    assert req.body["model"] == "o1"


def test_history_accepts_plain_dicts():
    history = [{"role": "user", "text": "a"}, {"role": "assistant", "text": "b"}]
    req = build_request("c", provider="local", history=history)
    assert req.body["messages"] == [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
        {"role": "user", "content": "c"},
    ]


def test_history_dict_with_content_and_image():
    history = [
        {"role": "user", "content": {"text": "what is it?", "image": "data:image/png;base64,AAAA"}},
        {"role": "assistant", "content": "a cat"},
    ]
    req = build_request("sure?", provider="openai", api_key="k", history=history)
    first = req.body["messages"][0]["content"]
    assert first[0]["type"] == "image_url"
    assert req.body["messages"][1] == {"role": "assistant", "content": "a cat"}


@pytest.mark.parametrize(
    "entry",
    [
        ("user", "a"),
        {"role": "tool", "text": "a"},
        {"role": "user"},
    ],
)
def test_invalid_history_entry_is_config_error(entry):
    with pytest.raises(ConfigError):
        build_request("hi", provider="local", history=[entry])
