"""Server-Sent Events 增量解码器。

由两级惰性迭代组成：

1. iter_lines: 缓冲任意大小的文本片段，按 "\\n" 切出完整行；
   网络分片不会对齐行边界，源结束时剩余的半行作为最后一行输出。
2. iter_events: 只处理 `data: ` 开头的行；`[DONE]` 表示正常结束；
   其余内容按 JSON 解析，解析失败时记录日志并产出 None，不中断整个流。
   `event: ` 行、注释和空行直接跳过。

解码器与具体 Provider 无关，文本提取由上层的 ProviderStyle 完成。
"""

import json
from typing import Any, Iterable, Iterator, Optional

from chat_core.domain.exceptions import ParseError
from chat_core.infrastructure.logging.logger import logger

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def iter_lines(fragments: Iterable[str]) -> Iterator[str]:
    buffer = ""
    for fragment in fragments:
        if not fragment:
            continue
        buffer += fragment
        while True:
            idx = buffer.find("\n")
            if idx < 0:
                break
            line, buffer = buffer[:idx], buffer[idx + 1:]
            yield line
    if buffer:
        yield buffer


def _parse_frame(data: str) -> Any:
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise ParseError(f"malformed SSE data frame: {e.msg}", frame=data[:200]) from e


def iter_events(lines: Iterable[str]) -> Iterator[Optional[Any]]:
    for line in lines:
        if not line.startswith(DATA_PREFIX):
            continue
        data = line[len(DATA_PREFIX):].rstrip("\r")
        if data == DONE_SENTINEL:
            return
        try:
            event = _parse_frame(data)
        except ParseError as e:
            logger.warning("sse.parse_error", extra={"extra": {"code": e.code, **e.extra}})
            event = None
        yield event


def decode_sse(fragments: Iterable[str]) -> Iterator[Optional[Any]]:
    """把原始文本流解码为 JSON 事件序列（惰性、只能消费一次）。"""

    return iter_events(iter_lines(fragments))
