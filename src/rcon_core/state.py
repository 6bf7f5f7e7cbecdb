# File: src/rcon_core/state.py
"""
RCON 核心库 - 状态模块

负责定义和存储连接的生命周期状态。
本模块不包含业务逻辑，仅作为数据容器供 Connection 读写。
"""

from dataclasses import dataclass
from enum import Enum, auto


class ConnectionStatus(Enum):
    """连接的生命周期状态枚举。

    状态流转示意:
    UNAUTHENTICATED -> AUTHENTICATING -> READY
                             |             |
                             v             v
                           CLOSED        CLOSED

    CLOSED 是终态，任何转换都无法离开它。
    """

    UNAUTHENTICATED = auto()
    """初始状态，连接已建立但尚未发送认证请求。"""

    AUTHENTICATING = auto()
    """认证请求已发出，正在等待服务器的两帧应答。"""

    READY = auto()
    """认证成功，可以执行命令。"""

    CLOSED = auto()
    """已关闭。关闭原因见 RconState.close_reason。"""


class CloseReason(Enum):
    """连接进入 CLOSED 状态的原因。"""

    USER_REQUESTED = auto()
    """调用方主动调用 close()。"""

    AUTHENTICATION_FAILED = auto()
    """服务器拒绝了密码。"""

    PROTOCOL_VIOLATION = auto()
    """握手序列被破坏或握手超时。"""

    MALFORMED_FRAME = auto()
    """收到无法解析的数据帧。"""

    RESPONSE_TIMEOUT = auto()
    """命令响应超时 (哨兵帧未到达)。"""

    TRANSPORT_ERROR = auto()
    """底层流读写失败或被对端关闭。"""

    CANCELLED = auto()
    """调用方取消了在途操作，帧边界已无法保证。"""


@dataclass
class RconState:
    """存储一条 RCON 连接的易变状态数据。

    该对象是非持久化的，每条连接一个实例。

    Attributes:
        status: 当前生命周期状态。
        close_reason: 关闭原因，仅在 CLOSED 状态下有值。
        last_error: 最近一次发生的错误信息描述，用于 UI 显示。
        requests_sent: 已发出的逻辑请求数 (认证 + 命令)。
        unsolicited_frames: 被丢弃的无主帧数量。
    """

    status: ConnectionStatus = ConnectionStatus.UNAUTHENTICATED
    close_reason: CloseReason | None = None
    last_error: str = ""

    requests_sent: int = 0
    unsolicited_frames: int = 0

    @property
    def is_ready(self) -> bool:
        """判断当前是否可以执行命令。"""
        return self.status is ConnectionStatus.READY

    @property
    def is_closed(self) -> bool:
        """判断连接是否已进入终态。"""
        return self.status is ConnectionStatus.CLOSED
