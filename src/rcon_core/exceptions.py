# File: src/rcon_core/exceptions.py
"""
RCON 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用（如 CLI）能进行精细的错误处理。

分类原则:
- 致命错误 (Fatal): 帧完整性存疑，连接会被关闭 (MalformedFrame, ProtocolViolation,
  ResponseTimeout, TransportError, AuthenticationFailed)。
- 本地错误 (Local): 调用方误用，在写入前即被拒绝，连接不受影响
  (BodyTooLarge, NotReady, Busy, InvalidState)。
"""


class RconError(Exception):
    """RCON 核心库的所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 rcon-core 抛出的已知错误。
    """

    pass


class ConfigError(RconError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 host/password)。
    2. 字段格式错误 (如端口越界、超时为负数)。
    3. 找不到配置文件或环境变量。
    """

    pass


class TransportError(RconError):
    """传输层错误 (I/O 级别)。

    触发场景:
    1. 连接建立失败。
    2. 写入 (write) 或读取 (read) 失败。
    3. 对端关闭连接 (读到 EOF)。

    注意: 引擎从不自动重连，是否重建连接由上层决定。
    """

    pass


class ProtocolError(RconError):
    """协议交互错误 (逻辑级别) 的基类。

    所有子类都意味着字节流的帧边界已不可信，连接必须关闭。
    """

    pass


class MalformedFrame(ProtocolError):
    """收到无法解析的数据帧。

    触发场景:
    1. 帧长度不足 10 字节。
    2. 结尾的两个终止字节不全为 0x00。
    3. 类型字段不是已知的三个标签值 (0/2/3)。
    4. 长度字段为负数、零或超过配置上限。
    """

    pass


class ProtocolViolation(ProtocolError):
    """握手或分片序列违反协议约定。

    触发场景:
    1. 认证阶段收到乱序的帧 (AuthResponse 先于空 ResponseValue)。
    2. 认证阶段收到类型不符的帧。
    3. 认证握手超时。
    """

    pass


class ResponseTimeout(ProtocolError):
    """命令响应在期限内未完成 (哨兵帧未到达)。

    超时发生在分片中途时无法安全恢复帧边界，因此连接会被关闭。
    """

    pass


class AuthenticationFailed(RconError):
    """认证被服务器拒绝 (收到 id 为 -1 的 AuthResponse)。

    对当前连接而言是致命的。引擎不会自动重试，
    调用方可以新建连接后重新认证。
    """

    pass


class BodyTooLarge(RconError):
    """请求体超过允许的最大帧长度。

    在写入任何字节之前即被拒绝，连接不受影响。
    """

    def __init__(self, size: int, limit: int) -> None:
        """初始化错误。

        Args:
            size: 编码后长度字段的值。
            limit: 允许的最大值。
        """
        super().__init__(f"数据帧过大: {size} 字节 (上限 {limit} 字节)")
        self.size = size
        self.limit = limit


class StateError(RconError):
    """状态机错误 (FSM Violation) 的基类。

    属于调用方误用，连接状态不受影响。
    """

    pass


class NotReady(StateError):
    """在认证完成前尝试执行命令。"""

    pass


class Busy(StateError):
    """已有命令在途，且连接被配置为不排队。"""

    pass


class InvalidState(StateError):
    """在当前状态下不允许该操作 (如重复认证)。"""

    pass


class ConnectionClosed(RconError):
    """连接已关闭。

    当连接因其他原因 (用户关闭、传输故障等) 关闭时，
    所有尚未完成的请求都会以此异常失败。
    """

    def __init__(self, message: str, reason=None) -> None:
        """初始化错误。

        Args:
            message: 错误描述信息。
            reason: 关闭原因 (CloseReason)，未知时为 None。
        """
        super().__init__(message)
        self.reason = reason
