# src/rcon_core/protocols/aggregator.py
"""
RCON 协议层 - 响应聚合器 (Response Aggregator)

服务器可能把一个命令的大响应拆成多个 ResponseValue 帧，而协议本身没有
"分片结束" 标记。引擎在真实命令之后紧跟一个空正文的哨兵命令：
哨兵的应答一到，说明真实命令的所有分片都已到达 (依赖 TCP 的有序性)。
"""

import logging

logger = logging.getLogger(__name__)


class ResponseAggregator:
    """把一个逻辑响应的分片按到达顺序拼接起来。"""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._fragments: list[bytes] = []
        self._finished = False

    @property
    def fragment_count(self) -> int:
        return len(self._fragments)

    @property
    def finished(self) -> bool:
        return self._finished

    def add(self, body: bytes) -> None:
        """追加一个分片正文，去除其尾部多余的 NUL 字节。

        Raises:
            RuntimeError: 聚合已经完成后仍追加分片。
        """
        if self._finished:
            raise RuntimeError("响应已完成，不能继续追加分片")
        self._fragments.append(body.rstrip(b"\x00"))

    def finish(self) -> str:
        """完成聚合并返回完整文本。

        先拼接字节再解码，保证跨分片的多字节字符不被截断。
        """
        self._finished = True
        data = b"".join(self._fragments)
        logger.debug(f"响应聚合完成: {len(self._fragments)} 个分片, {len(data)} 字节")
        return data.decode(self.encoding, errors="replace")
