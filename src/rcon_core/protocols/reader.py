# src/rcon_core/protocols/reader.py
"""
RCON 协议层 - 帧读取器 (Frame Reader)

TCP 不保证任何帧边界。本模块把任意大小的数据块拼接为完整的帧，
跨多次读取缓存不完整的帧，按到达顺序逐个产出。
"""

import struct
from collections.abc import Iterator

from ..exceptions import MalformedFrame
from .constants import Layout, Limits
from .packet import Frame, decode


class FrameReader:
    """增量式帧组装器。

    feed() 只追加数据；try_extract_frame() 在数据足够时取出一个帧。
    缓冲区由持有者独占，不做任何并发保护。
    """

    def __init__(self, max_frame_size: int = Limits.MAX_RESPONSE_SIZE) -> None:
        """初始化读取器。

        Args:
            max_frame_size: 入站帧 size 字段的上限，防止异常对端撑爆缓冲区。
        """
        self.max_frame_size = max_frame_size
        self._buffer = bytearray()

    @property
    def buffered(self) -> int:
        """当前缓冲区中尚未消费的字节数。"""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> None:
        """追加一块数据，不做任何解析。"""
        self._buffer += chunk

    def try_extract_frame(self) -> Frame | None:
        """尝试从缓冲区取出一个完整帧。

        Returns:
            Frame | None: 缓冲区内已有完整帧时返回该帧，否则返回 None
            (调用方需要继续 feed)。

        Raises:
            MalformedFrame: size 字段非正或超过上限，或帧内容无法解析。
        """
        if len(self._buffer) < Layout.SIZE_FIELD_LEN:
            return None

        (size,) = struct.unpack_from(Layout.INT_FORMAT, self._buffer, 0)
        if size <= 0 or size > self.max_frame_size:
            raise MalformedFrame(
                f"帧长度字段无效: {size} (允许范围 1..{self.max_frame_size})"
            )

        end = Layout.SIZE_FIELD_LEN + size
        if len(self._buffer) < end:
            return None

        payload = bytes(self._buffer[Layout.SIZE_FIELD_LEN : end])
        del self._buffer[:end]
        return decode(payload)

    def frames(self) -> Iterator[Frame]:
        """依次产出缓冲区中所有完整帧。"""
        while (frame := self.try_extract_frame()) is not None:
            yield frame

    def clear(self) -> None:
        """丢弃所有缓存数据。"""
        self._buffer.clear()
