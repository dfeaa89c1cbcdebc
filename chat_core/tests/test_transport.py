import json

import httpx
import pytest

from chat_core.domain.exceptions import NetworkError, ProtocolError, TransportError
from chat_core.domain.models import ChatHttpRequest
from chat_core.infrastructure.http.transport import HttpTransport


def make_request(stream=False):
    return ChatHttpRequest(
        url="https://api.example.com/v1/chat/completions",
        headers={"Content-Type": "application/json"},
        body={"messages": [{"role": "user", "content": "hi"}], "stream": stream},
        stream=stream,
    )


def fake_client(response, captured=None, error=None):
    class StreamContext:
        def __enter__(self):
            return response

        def __exit__(self, *args):
            return False

    class Client:
        def __init__(self, *a, **kw):
            if captured is not None:
                captured["client_kwargs"] = kw

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, headers=None, **_):
            if error is not None:
                raise error
            if captured is not None:
                captured.update(url=url, json=json, headers=headers)
            return response

        def stream(self, method, url, json=None, headers=None, **_):
            if error is not None:
                raise error
            if captured is not None:
                captured.update(method=method, url=url, json=json, headers=headers)
            return StreamContext()

    return Client


class Resp:
    def __init__(self, status_code, text, fragments=()):
        self.status_code = status_code
        self.text = text
        self._fragments = list(fragments)
        self.read_called = False

    def read(self):
        self.read_called = True
        return self.text.encode()

    def iter_text(self):
        for frag in self._fragments:
            yield frag


def test_send_posts_json(monkeypatch):
    captured = {}
    body = json.dumps({"choices": [{"message": {"content": "ok"}}]})
    monkeypatch.setattr("httpx.Client", fake_client(Resp(200, body), captured))
    raw = HttpTransport(timeout=5.0).send(make_request())
    assert raw.status_code == 200
    assert raw.json()["choices"][0]["message"]["content"] == "ok"
    assert captured["json"]["messages"][0]["content"] == "hi"
    assert captured["headers"]["Content-Type"] == "application/json"
    assert captured["client_kwargs"]["timeout"] == 5.0


def test_send_error_status_carries_payload(monkeypatch):
    body = json.dumps({"error": {"message": "invalid x-api-key", "type": "authentication_error"}})
    monkeypatch.setattr("httpx.Client", fake_client(Resp(401, body)))
    with pytest.raises(TransportError) as ei:
        HttpTransport().send(make_request())
    err = ei.value
    assert err.status_code == 401
    assert err.payload["error"]["type"] == "authentication_error"
    assert "invalid x-api-key" in err.message
    assert err.code == "HTTP_ERROR"


def test_send_error_status_with_plain_body(monkeypatch):
    monkeypatch.setattr("httpx.Client", fake_client(Resp(502, "Bad Gateway")))
    with pytest.raises(TransportError) as ei:
        HttpTransport().send(make_request())
    assert ei.value.status_code == 502
    assert ei.value.payload == "Bad Gateway"


def test_send_network_error(monkeypatch):
    monkeypatch.setattr("httpx.Client", fake_client(None, error=httpx.ConnectError("connection refused")))
    with pytest.raises(NetworkError) as ei:
        HttpTransport().send(make_request())
    assert ei.value.status_code is None
    assert ei.value.code == "NETWORK_ERROR"


def test_raw_response_non_json_is_protocol_error(monkeypatch):
    monkeypatch.setattr("httpx.Client", fake_client(Resp(200, "<html>")))
    raw = HttpTransport().send(make_request())
    with pytest.raises(ProtocolError):
        raw.json()


def test_stream_yields_text_fragments(monkeypatch):
    captured = {}
    resp = Resp(200, "", fragments=["data: {", '"a": 1}\n\n'])
    monkeypatch.setattr("httpx.Client", fake_client(resp, captured))
    with HttpTransport().stream(make_request(stream=True)) as fragments:
        assert list(fragments) == ["data: {", '"a": 1}\n\n']
    assert captured["method"] == "POST"
    assert captured["json"]["stream"] is True


def test_stream_error_status_reads_body(monkeypatch):
    resp = Resp(429, json.dumps({"error": {"message": "slow down"}}))
    monkeypatch.setattr("httpx.Client", fake_client(resp))
    with pytest.raises(TransportError) as ei:
        with HttpTransport().stream(make_request(stream=True)):
            pytest.fail("body should not run on error status")
    assert ei.value.status_code == 429
    assert "slow down" in ei.value.message
    assert resp.read_called


def test_stream_read_error_becomes_network_error(monkeypatch):
    class BrokenResp(Resp):
        def iter_text(self):
            yield "data: {}\n"
            raise httpx.ReadError("connection reset")

    monkeypatch.setattr("httpx.Client", fake_client(BrokenResp(200, "")))
    with pytest.raises(NetworkError):
        with HttpTransport().stream(make_request(stream=True)) as fragments:
            list(fragments)


def test_send_redirect_status_is_error(monkeypatch):
    monkeypatch.setattr("httpx.Client", fake_client(Resp(302, "")))
    with pytest.raises(TransportError) as ei:
        HttpTransport().send(make_request())
    assert ei.value.status_code == 302
    assert "HTTP 302" in ei.value.message


def test_stream_redirect_status_is_error(monkeypatch):
    resp = Resp(302, "")
    monkeypatch.setattr("httpx.Client", fake_client(resp))
    with pytest.raises(TransportError) as ei:
        with HttpTransport().stream(make_request(stream=True)):
            pytest.fail("body should not run on redirect status")
    assert ei.value.status_code == 302
