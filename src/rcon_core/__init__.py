# src/rcon_core/__init__.py
"""
RCON-Core v1.0.0
Source RCON 远程控制台协议的异步客户端引擎。
"""

# 暴露核心配置
from .config import (
    RconConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露连接与状态
from .core import RconConnection

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    AuthenticationFailed,
    BodyTooLarge,
    Busy,
    ConfigError,
    ConnectionClosed,
    InvalidState,
    MalformedFrame,
    NotReady,
    ProtocolError,
    ProtocolViolation,
    RconError,
    ResponseTimeout,
    StateError,
    TransportError,
)
from .network import StreamTransport, Transport
from .state import CloseReason, ConnectionStatus, RconState

__version__ = "1.0.0"

__all__ = [
    "RconConnection",
    "RconConfig",
    "RconState",
    "ConnectionStatus",
    "CloseReason",
    "Transport",
    "StreamTransport",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "RconError",
    "ConfigError",
    "TransportError",
    "ProtocolError",
    "MalformedFrame",
    "ProtocolViolation",
    "ResponseTimeout",
    "AuthenticationFailed",
    "BodyTooLarge",
    "StateError",
    "NotReady",
    "Busy",
    "InvalidState",
    "ConnectionClosed",
]
