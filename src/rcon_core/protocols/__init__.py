# src/rcon_core/protocols/__init__.py
"""
RCON 协议层 (Protocol Layer)

本包负责协议数据帧的编解码、组装、关联与聚合。

- 不包含任何 socket 操作或网络 I/O。
- 不依赖于 core 或 network 层。
"""

from . import constants
from .aggregator import ResponseAggregator
from .packet import Frame, PacketType, decode, encode
from .reader import FrameReader
from .tracker import (
    PendingRequest,
    RequestKind,
    RequestTracker,
    Route,
    RoutingDecision,
)

# 公共 API
__all__ = [
    "constants",
    "Frame",
    "PacketType",
    "encode",
    "decode",
    "FrameReader",
    "RequestTracker",
    "RequestKind",
    "PendingRequest",
    "Route",
    "RoutingDecision",
    "ResponseAggregator",
]
