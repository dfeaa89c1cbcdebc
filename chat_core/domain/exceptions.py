"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在调用方做统一捕获与用户提示。

错误分类：
- ConfigError: Provider 配置无法解析（缺少 URL、未知配置项等）。
- AuthenticationError: Provider 需要 API Key 但调用方未提供，在任何网络请求之前抛出。
- TransportError / NetworkError: HTTP 非 2xx 状态或连接失败。
- ProtocolError: HTTP 成功但响应结构不符合 Provider 约定，或提取出的文本为空。
- ParseError: 单个 SSE 帧无法解析，只在解码器内部记录并跳过，不会抛给调用方。
- SessionBusyError: 同一会话上已有一轮对话在进行中。
"""

from typing import Any, Optional


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、url 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigError(BusinessError):
    """Provider 配置缺失或非法，例如无法解析出请求 URL。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="CONFIG_ERROR", message=message, **extra)


class AuthenticationError(BusinessError):
    """Provider 声明了鉴权方式，但调用时没有提供 API Key。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="MISSING_API_KEY", message=message, http_status=401, **extra)


class TransportError(BusinessError):
    """第三方 API 返回非 2xx 状态时抛出。

    status_code 为服务端返回的 HTTP 状态码；payload 为服务端返回的错误体，
    能解析为 JSON 时是 dict，否则是原始文本。
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
        code: str = "HTTP_ERROR",
        **extra,
    ):
        self.status_code = status_code
        self.payload = payload
        super().__init__(code=code, message=message, http_status=status_code or 502, **extra)


class NetworkError(TransportError):
    """网络层错误，例如 DNS 失败、连接被拒绝、读取中断等。"""

    def __init__(self, message: str, **extra):
        super().__init__(message, status_code=None, payload=None, code="NETWORK_ERROR", **extra)


class ProtocolError(BusinessError):
    """HTTP 成功，但响应内容与 Provider 的提取路径不匹配或为空。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="PROTOCOL_ERROR", message=message, http_status=502, **extra)


class ParseError(BusinessError):
    """SSE 数据帧不是合法 JSON。解码器记录后跳过，不向上传播。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="SSE_PARSE_ERROR", message=message, **extra)


class SessionBusyError(BusinessError):
    """同一 ChatSession 上并发发起了第二轮对话。"""

    def __init__(self, message: str = "a reply is already in progress", **extra):
        super().__init__(code="SESSION_BUSY", message=message, http_status=409, **extra)
