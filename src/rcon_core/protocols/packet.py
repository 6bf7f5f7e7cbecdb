# src/rcon_core/protocols/packet.py
"""
RCON 协议层 - 数据帧编解码 (Packet Codec)

纯函数实现，不包含任何 I/O 与状态。
"""

import struct
from dataclasses import dataclass
from enum import IntEnum

from ..exceptions import BodyTooLarge, MalformedFrame
from .constants import Layout, Limits, Tag


class PacketType(IntEnum):
    """数据帧类型。

    AUTH_RESPONSE 是 EXEC_COMMAND 的别名 (同为 2)，
    两者在线上无法区分，由 RequestTracker 按当前请求判定语义。
    """

    RESPONSE_VALUE = Tag.RESPONSE_VALUE
    EXEC_COMMAND = Tag.EXEC_COMMAND
    AUTH_RESPONSE = Tag.AUTH_RESPONSE
    AUTH = Tag.AUTH


@dataclass(frozen=True)
class Frame:
    """一个协议数据帧。

    Attributes:
        id: 关联 ID (有符号 32 位)。
        kind: 帧类型。
        body: 正文字节，不含终止字节，可以为空。
    """

    id: int
    kind: PacketType
    body: bytes = b""

    @property
    def size(self) -> int:
        """编码后 size 字段的值 (由正文长度推导，不单独存储)。"""
        return Layout.MIN_PAYLOAD_LEN + len(self.body)

    @property
    def text(self) -> str:
        """将正文按 UTF-8 解码，非法字节以替换字符表示。"""
        return self.body.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"<Frame id={self.id} kind={self.kind.name} body={self.body[:32]!r}>"


def encode(frame: Frame, max_size: int = Limits.MAX_REQUEST_SIZE) -> bytes:
    """将 Frame 编码为线上字节序列。

    Args:
        frame: 待编码的数据帧。
        max_size: size 字段允许的最大值。

    Returns:
        bytes: size ++ id ++ type ++ body ++ 0x00 0x00。

    Raises:
        BodyTooLarge: 编码后的 size 超过 max_size。
    """
    size = frame.size
    if size > max_size:
        raise BodyTooLarge(size, max_size)

    return (
        struct.pack("<iii", size, frame.id, int(frame.kind))
        + frame.body
        + Layout.TERMINATOR
    )


def decode(payload: bytes) -> Frame:
    """解析紧随 size 字段之后的帧内容。

    Args:
        payload: id(4) + type(4) + body + 0x00 0x00，长度恰为 size。

    Returns:
        Frame: 解析后的数据帧。

    Raises:
        MalformedFrame: 长度不足、终止字节非零或类型未知。
    """
    if len(payload) < Layout.MIN_PAYLOAD_LEN:
        raise MalformedFrame(
            f"帧长度不足: {len(payload)} 字节 (至少 {Layout.MIN_PAYLOAD_LEN} 字节)"
        )

    if payload[-2:] != Layout.TERMINATOR:
        raise MalformedFrame(f"帧结尾终止字节无效: {payload[-2:].hex()}")

    request_id, tag = struct.unpack_from(Layout.HEADER_FORMAT, payload, 0)
    if tag not in Tag.KNOWN:
        raise MalformedFrame(f"未知的帧类型: {tag}")

    return Frame(
        id=request_id,
        kind=PacketType(tag),
        body=bytes(payload[Layout.HEADER_LEN : -len(Layout.TERMINATOR)]),
    )
