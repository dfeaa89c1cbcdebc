"""HTTP 传输层。

只负责把 ChatHttpRequest 以 POST 发出去：

- send(): 非流式调用，返回完整缓冲的 RawResponse。
- stream(): 流式调用，上下文管理器，产出文本片段迭代器；离开上下文即关闭连接。

非 2xx 状态（含 3xx）统一包装为 TransportError（带状态码与服务端错误体），
连接层错误包装为 NetworkError。不做重试，超时由调用方通过 timeout 指定。
"""

import json
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import httpx

from chat_core.domain.exceptions import NetworkError, TransportError
from chat_core.domain.models import ChatHttpRequest, RawResponse
from chat_core.infrastructure.logging.logger import logger


class HttpTransport:
    """基于 httpx 的同步传输实现。"""

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout

    def send(self, request: ChatHttpRequest) -> RawResponse:
        logger.info("transport.send", extra={"extra": {"url": request.url, "stream": False}})
        try:
            with httpx.Client(timeout=self._timeout, trust_env=False) as client:
                resp = client.post(request.url, json=request.body, headers=request.headers)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(str(e), url=request.url)
        if not 200 <= resp.status_code < 300:
            raise self._status_error(request, resp.status_code, resp.text)
        return RawResponse(status_code=resp.status_code, text=resp.text)

    @contextmanager
    def stream(self, request: ChatHttpRequest) -> Iterator[Iterator[str]]:
        logger.info("transport.send", extra={"extra": {"url": request.url, "stream": True}})
        try:
            with httpx.Client(timeout=self._timeout, trust_env=False) as client:
                with client.stream("POST", request.url, json=request.body, headers=request.headers) as resp:
                    if not 200 <= resp.status_code < 300:
                        resp.read()
                        raise self._status_error(request, resp.status_code, resp.text)
                    yield resp.iter_text()
        except httpx.RequestError as e:
            raise NetworkError(str(e), url=request.url)

    @staticmethod
    def _status_error(request: ChatHttpRequest, status_code: int, text: str) -> TransportError:
        payload: Any
        try:
            payload = json.loads(text)
        except ValueError:
            payload = text
        message = text or f"HTTP {status_code}"
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                message = error["message"]
            elif isinstance(error, str) and error:
                message = error
        logger.warning(
            "transport.error",
            extra={"extra": {"url": request.url, "status_code": status_code}},
        )
        return TransportError(f"Status {status_code}: {message}", status_code=status_code, payload=payload)
