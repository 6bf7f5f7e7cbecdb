# src/rcon_core/network.py
"""
RCON 核心库 - 网络模块 (Network) [Asyncio Edition]

封装 TCP 流的建立、写入、读取与关闭。
该模块屏蔽了 asyncio Stream 的细节，向连接状态机提供纯粹的 bytes 收发接口。
"""

import asyncio
import logging
from typing import Protocol

from .config import RconConfig
from .exceptions import TransportError

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class Transport(Protocol):
    """连接状态机所消费的传输接口。

    要求: 有序、可靠、双向的字节流。
    """

    async def write(self, data: bytes) -> None:
        """完整写入一段字节 (相对本引擎的其他写入是原子的)。"""
        ...

    async def read(self) -> bytes:
        """读取下一块可用数据。仅在对端关闭时返回空 bytes。"""
        ...

    async def close(self) -> None:
        """关闭底层流。"""
        ...


class StreamTransport:
    """基于 asyncio StreamReader/StreamWriter 的 Transport 实现。"""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        chunk_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.chunk_size = chunk_size

    @classmethod
    async def connect(cls, config: RconConfig) -> "StreamTransport":
        """建立到服务器的 TCP 连接。

        Raises:
            TransportError: 连接超时或被拒绝。
        """
        target = (config.host, config.port)
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(config.host, config.port),
                timeout=config.connect_timeout,
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"连接超时 {target} ({config.connect_timeout}s)"
            ) from None
        except OSError as e:
            raise TransportError(f"连接失败 {target}: {e}") from e

        logger.debug(f"TCP 连接已建立: {target}")
        return cls(reader, writer)

    @property
    def is_closing(self) -> bool:
        return self.writer.is_closing()

    async def write(self, data: bytes) -> None:
        if self.writer.is_closing():
            raise TransportError("Transport 已关闭")
        try:
            self.writer.write(data)
            await self.writer.drain()
        except (OSError, RuntimeError) as e:
            raise TransportError(f"发送失败: {e}") from e

    async def read(self) -> bytes:
        try:
            return await self.reader.read(self.chunk_size)
        except OSError as e:
            raise TransportError(f"接收错误: {e}") from e

    async def close(self) -> None:
        """关闭 Transport，忽略关闭过程中的 I/O 错误。"""
        if self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug(f"关闭连接时出现异常: {e}")
        logger.debug("TCP Transport 已关闭")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
