# tests/conftest.py
import asyncio
import sys
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rcon_core.config import RconConfig
from rcon_core.exceptions import TransportError
from rcon_core.protocols.packet import Frame, PacketType, encode
from rcon_core.protocols.reader import FrameReader


def frame_bytes(request_id: int, kind: PacketType, body: bytes = b"") -> bytes:
    """辅助函数：构造一个帧的线上字节"""
    return encode(Frame(request_id, kind, body))


class FakeTransport:
    """内存中的 Transport 替身。

    write() 写入的字节被解析为帧并记录在 sent 中；
    若设置了 handler，则把 handler 返回的字节放入读取队列，模拟服务器应答。
    """

    def __init__(self, handler=None):
        self.handler = handler
        self.sent: list[Frame] = []
        self.writes: list[list[Frame]] = []
        self.closed = False
        self._parser = FrameReader()
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def write(self, data: bytes) -> None:
        if self.closed:
            raise TransportError("Transport 已关闭")
        self._parser.feed(data)
        frames = list(self._parser.frames())
        self.sent.extend(frames)
        self.writes.append(frames)

        if self.handler is not None:
            for frame in frames:
                for reply in self.handler(frame) or ():
                    self.push(reply)

    async def read(self) -> bytes:
        item = await self._inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(b"")

    def push(self, data) -> None:
        """放入一块待读取的数据 (bytes) 或一个读取时抛出的异常"""
        self._inbox.put_nowait(data)


class FakeRconServer:
    """一个行为类似 Source 服务端的应答器。

    - Auth: 先回空 ResponseValue，再回 AuthResponse (密码错误时 id 为 -1)。
    - 命令: 按 responses 中的分片逐帧应答，未登记的命令原样回显。
    - 哨兵 (空正文命令): 回一个空 ResponseValue。
    """

    def __init__(self, password: str = "correct"):
        self.password = password
        self.responses: dict[str, list[str]] = {}
        self.send_preamble = True
        self.answer_sentinel = True
        self.noise_before_response: list[bytes] = []
        self.commands: list[str] = []

    def __call__(self, frame: Frame) -> list[bytes]:
        if frame.kind is PacketType.AUTH:
            replies = []
            if self.send_preamble:
                replies.append(frame_bytes(frame.id, PacketType.RESPONSE_VALUE))
            auth_id = frame.id if frame.body.decode() == self.password else -1
            replies.append(frame_bytes(auth_id, PacketType.AUTH_RESPONSE))
            return replies

        if not frame.body:
            if not self.answer_sentinel:
                return []
            return [frame_bytes(frame.id, PacketType.RESPONSE_VALUE)]

        command = frame.body.decode()
        self.commands.append(command)
        fragments = self.responses.get(command, [command])
        replies = list(self.noise_before_response)
        for fragment in fragments:
            replies.append(
                frame_bytes(frame.id, PacketType.RESPONSE_VALUE, fragment.encode())
            )
        return replies


@pytest.fixture
def valid_config():
    """
    [Fixture] 返回一个测试用的 RconConfig 对象。
    initial_id=7，使第一个认证请求的 id 为 7。
    """
    return RconConfig(
        host="127.0.0.1",
        port=27015,
        password="correct",
        auth_timeout=1.0,
        response_timeout=1.0,
        initial_id=7,
    )


@pytest.fixture
def server():
    return FakeRconServer()


@pytest.fixture
def transport(server):
    return FakeTransport(server)
