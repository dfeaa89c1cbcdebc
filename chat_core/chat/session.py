"""多轮对话会话。

ChatSession 持有一个固定的 system 提示词与按顺序排列的历史消息，提供两种回复方式：

- reply(): 一次性返回完整回答。
- stream(): 返回 ReplyStream，逐段产出增量文本。

一轮对话（用户输入 + 助手回答）只有在助手回答完整得到之后，才会一次性写入历史：
失败、取消或中途放弃的轮次都不会留下任何记录。
同一会话同一时间只允许一轮对话在进行，第二次调用会抛出 SessionBusyError。
"""

import inspect
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from chat_core.chat.request_builder import build_request
from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError, ProtocolError, SessionBusyError
from chat_core.domain.models import ChatHttpRequest, ChatMessage
from chat_core.infrastructure.http.sse import decode_sse
from chat_core.infrastructure.http.transport import HttpTransport
from chat_core.infrastructure.logging.logger import logger

KeySource = Callable[[Optional[str]], Optional[str]]


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class ChatSession:
    """有状态的对话会话。

    Args:
        system: 系统提示词，构造后不再变化。
        transport: HTTP 传输实现，默认 HttpTransport；测试中可替换为桩对象。
        key_source: 当调用选项中没有 api_key 时，用于按 Provider 名查找 Key 的函数。
        **defaults: 会话级默认调用选项（provider、model、max_tokens 等）。
    """

    def __init__(
        self,
        system: Optional[str] = None,
        *,
        transport=None,
        key_source: Optional[KeySource] = None,
        **defaults,
    ):
        self._system = system
        self._transport = transport if transport is not None else HttpTransport(timeout=settings.http_timeout)
        self._key_source = key_source
        self._defaults: Dict[str, Any] = dict(defaults)
        self._history: List[ChatMessage] = []
        self._state = SessionState.IDLE

    @property
    def system(self) -> Optional[str]:
        return self._system

    @property
    def history(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._history)

    @property
    def state(self) -> SessionState:
        return self._state

    # ---- 一次性回复 ----

    def reply(self, query: str, *, image: Optional[str] = None, **options) -> str:
        """发送一轮对话并返回完整回答，成功后追加 user、assistant 两条历史。"""

        self._begin_turn()
        log_ctx: Dict[str, Any] = {}
        try:
            request = self._build(query, image, options, stream=False)
            log_ctx["provider"] = request.provider.name
            logger.info("session.reply.start", extra={"extra": log_ctx})
            response = self._transport.send(request)
            text = request.provider.extract_response(response.json())
            if not text:
                raise ProtocolError("provider returned an empty reply", provider=request.provider.name)
        except BusinessError as e:
            logger.error("session.reply.error", extra={"extra": {**log_ctx, "code": e.code, "error": e.message}})
            raise
        finally:
            self._end_turn()
        self._commit(query, image, text)
        logger.info("session.reply.end", extra={"extra": {**log_ctx, "chars": len(text)}})
        return text

    # ---- 流式回复 ----

    def stream(self, query: str, *, image: Optional[str] = None, **options) -> "ReplyStream":
        """开始一轮流式对话。

        配置错误与鉴权错误在这里同步抛出；网络与协议错误在迭代 ReplyStream 时抛出。
        """

        self._begin_turn()
        try:
            request = self._build(query, image, options, stream=True)
        except Exception:
            self._end_turn()
            raise
        logger.info("session.stream.start", extra={"extra": {"provider": request.provider.name}})
        return ReplyStream(self, request, query, image)

    # ---- 内部方法 ----

    def _build(self, query: str, image: Optional[str], options: Dict[str, Any], stream: bool) -> ChatHttpRequest:
        merged: Dict[str, Any] = {"system": self._system, "history": list(self._history)}
        merged.update(self._defaults)
        merged.update(options)
        merged.pop("stream", None)
        if not merged.get("api_key") and self._key_source is not None:
            key = self._key_source(merged.get("provider"))
            if key:
                merged["api_key"] = key
        return build_request(query, image=image, stream=stream, **merged)

    def _begin_turn(self) -> None:
        if self._state is not SessionState.IDLE:
            raise SessionBusyError()
        self._state = SessionState.AWAITING_REPLY

    def _end_turn(self) -> None:
        self._state = SessionState.IDLE

    def _commit(self, query: str, image: Optional[str], text: str) -> None:
        self._history.append(ChatMessage(role="user", text=query, image=image))
        self._history.append(ChatMessage(role="assistant", text=text))


class _StreamTurn:
    """一轮流式回复的可变状态，由 ReplyStream 与生产循环共享。

    生产循环只持有本对象而不持有 ReplyStream，
    调用方丢弃 ReplyStream 时引用计数即可立即关闭生成器。
    """

    def __init__(self, session: ChatSession, request: ChatHttpRequest, query: str, image: Optional[str]):
        self.session = session
        self.request = request
        self.query = query
        self.image = image
        self.parts: List[str] = []
        self.cancelled = False
        self.done = False
        self.released = False

    @property
    def text(self) -> str:
        return "".join(self.parts)

    def release(self) -> None:
        if not self.released:
            self.released = True
            self.session._end_turn()


def _produce_deltas(turn: _StreamTurn) -> Iterator[str]:
    provider = turn.request.provider
    log_ctx = {"provider": provider.name}
    try:
        with turn.session._transport.stream(turn.request) as fragments:
            for event in decode_sse(fragments):
                if turn.cancelled:
                    break
                if event is None:
                    continue
                delta = provider.extract_stream_delta(event)
                if not delta:
                    continue
                turn.parts.append(delta)
                yield delta
        if turn.cancelled:
            logger.info("session.stream.cancelled", extra={"extra": {**log_ctx, "chars": len(turn.text)}})
            return
        text = turn.text
        if not text:
            raise ProtocolError("provider streamed an empty reply", provider=provider.name)
        turn.session._commit(turn.query, turn.image, text)
        turn.done = True
        logger.info("session.stream.end", extra={"extra": {**log_ctx, "chars": len(text)}})
    except GeneratorExit:
        turn.cancelled = True
        logger.info("session.stream.cancelled", extra={"extra": {**log_ctx, "chars": len(turn.text)}})
        raise
    except BusinessError as e:
        logger.error("session.stream.error", extra={"extra": {**log_ctx, "code": e.code, "error": e.message}})
        raise
    finally:
        turn.release()


class ReplyStream:
    """一轮流式回复的增量文本迭代器。

    - 迭代产出每个非空增量，顺序与网络到达顺序一致。
    - 迭代耗尽后才把本轮写入会话历史。
    - cancel() 是显式取消信号，生产循环在每个事件前后检查；取消后不会写入历史。
    - 可作为上下文管理器使用，离开 with 块时自动取消未完成的流；
      未消费完就被丢弃的 ReplyStream 同样视为取消。
    """

    def __init__(self, session: ChatSession, request: ChatHttpRequest, query: str, image: Optional[str]):
        self._turn = _StreamTurn(session, request, query, image)
        self._iterator = _produce_deltas(self._turn)

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        return next(self._iterator)

    def __enter__(self) -> "ReplyStream":
        return self

    def __exit__(self, *exc) -> bool:
        if not self._turn.done:
            self.cancel()
        return False

    def __del__(self) -> None:
        # 从未开始迭代的生成器被回收时不会执行 finally，需要在这里释放会话
        self.cancel()

    @property
    def text(self) -> str:
        """目前为止收到的全部文本。"""

        return self._turn.text

    @property
    def done(self) -> bool:
        return self._turn.done

    @property
    def cancelled(self) -> bool:
        return self._turn.cancelled

    def cancel(self) -> None:
        turn = self._turn
        if turn.done or turn.cancelled:
            return
        turn.cancelled = True
        state = inspect.getgeneratorstate(self._iterator)
        # 生成器正在其他线程中运行时只设置标志，由生产循环自行退出
        if state != inspect.GEN_RUNNING:
            self._iterator.close()
            turn.release()

    close = cancel
