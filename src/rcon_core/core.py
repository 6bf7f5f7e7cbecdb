# File: src/rcon_core/core.py
"""
RCON 连接状态机 (Connection State Machine)

职责：
1. 资源组装：Config + Transport + FrameReader + RequestTracker。
2. 生命周期：UNAUTHENTICATED -> AUTHENTICATING -> READY -> CLOSED。
3. 顺序约束：同一时刻最多一个在途命令，并发调用按提交顺序 (FIFO) 排队。

并发模型：
- 后台读取任务独占 FrameReader，把入站帧交给 RequestTracker 路由。
- 调用方只在两处挂起：写入传输层，以及等待在途请求的完成信号。
- 任何使帧边界失去可信度的情况 (坏帧、超时、序列违规、取消) 都会关闭连接。
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from .config import RconConfig
from .exceptions import (
    AuthenticationFailed,
    BodyTooLarge,
    Busy,
    ConnectionClosed,
    InvalidState,
    MalformedFrame,
    NotReady,
    ProtocolViolation,
    RconError,
    ResponseTimeout,
    TransportError,
)
from .network import StreamTransport, Transport
from .protocols.packet import Frame, PacketType, encode
from .protocols.reader import FrameReader
from .protocols.tracker import PendingRequest, RequestKind, RequestTracker, Route
from .state import CloseReason, ConnectionStatus, RconState

logger = logging.getLogger(__name__)

# 定义回调函数类型别名：支持同步或异步函数
StatusCallback = Callable[[ConnectionStatus, str], Any | Awaitable[Any]]


def _close_reason_for(error: BaseException) -> CloseReason:
    """把致命错误映射为关闭原因。"""
    if isinstance(error, ConnectionClosed) and error.reason is not None:
        return error.reason
    if isinstance(error, AuthenticationFailed):
        return CloseReason.AUTHENTICATION_FAILED
    if isinstance(error, MalformedFrame):
        return CloseReason.MALFORMED_FRAME
    if isinstance(error, ProtocolViolation):
        return CloseReason.PROTOCOL_VIOLATION
    if isinstance(error, ResponseTimeout):
        return CloseReason.RESPONSE_TIMEOUT
    return CloseReason.TRANSPORT_ERROR


class RconConnection:
    """一条 RCON 连接 (Async)。

    调用方只与本类交互。实例由调用方显式持有，没有进程级单例。
    """

    def __init__(
        self,
        transport: Transport,
        config: RconConfig,
        status_callback: StatusCallback | None = None,
    ) -> None:
        """初始化连接。

        Args:
            transport: 已连接的有序、可靠、双向字节流。
            config: 连接配置。
            status_callback: 初始状态回调。也可以之后使用 add_listener 注册。
        """
        self.config = config
        self._transport = transport

        self._listeners: list[StatusCallback] = []
        if status_callback:
            self.add_listener(status_callback)

        self._state = RconState()
        self._reader = FrameReader(config.max_response_size)
        self._tracker = RequestTracker(config.initial_id, config.encoding)

        # asyncio.Lock 按等待顺序唤醒，即命令的 FIFO 队列
        self._command_lock = asyncio.Lock()
        self._reader_task: asyncio.Task | None = None

        logger.debug(f"连接已创建: {config!r}")

    @classmethod
    async def open(
        cls,
        config: RconConfig,
        status_callback: StatusCallback | None = None,
    ) -> "RconConnection":
        """建立 TCP 连接并返回一条未认证的 RconConnection。

        Raises:
            TransportError: 连接建立失败。
        """
        transport = await StreamTransport.connect(config)
        return cls(transport, config, status_callback)

    @property
    def state(self) -> RconState:
        """获取当前连接状态的只读副本。"""
        return replace(self._state)

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    def add_listener(self, callback: StatusCallback) -> None:
        """注册状态变更监听器。"""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: StatusCallback) -> None:
        """移除状态变更监听器。"""
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # 公共 API
    # ------------------------------------------------------------------

    async def authenticate(self, password: str | None = None) -> None:
        """执行认证握手。

        每条连接只能调用一次。成功需要依次收到：
        (a) id 为认证 id 的空 ResponseValue (协议遗留产物，直接丢弃)；
        (b) id 为认证 id 的 AuthResponse。

        Args:
            password: RCON 密码。为 None 时使用 config.password。

        Raises:
            InvalidState: 当前不是 UNAUTHENTICATED 状态。
            BodyTooLarge: 密码过长 (未发送任何数据，连接不受影响)。
            UnicodeEncodeError: 密码无法用配置的编码表示 (连接不受影响)。
            AuthenticationFailed: 服务器拒绝了密码，连接已关闭。
            ProtocolViolation: 握手序列错误或超时，连接已关闭。
            TransportError: 传输层失败，连接已关闭。
        """
        if self._state.status is not ConnectionStatus.UNAUTHENTICATED:
            raise InvalidState(f"当前状态不允许认证: {self._state.status.name}")

        secret = self.config.password if password is None else password
        # 本地错误 (编码失败) 必须发生在登记请求之前
        payload = secret.encode(self.config.encoding)

        request = self._tracker.register(RequestKind.AUTH)
        try:
            packet = encode(
                Frame(request.request_id, PacketType.AUTH, payload),
                self.config.max_request_size,
            )
        except BodyTooLarge:
            self._tracker.discard(request)
            raise

        self._update_status(ConnectionStatus.AUTHENTICATING, "正在认证...")
        self._ensure_reader()

        await self._run(
            request,
            packet,
            timeout=self.config.auth_timeout,
            on_timeout=ProtocolViolation(
                f"认证握手超时 ({self.config.auth_timeout}s)"
            ),
        )

        self._update_status(ConnectionStatus.READY, "认证成功")

    async def execute_command(self, command: str) -> str:
        """执行一条命令并返回重组后的完整响应文本。

        并发调用按提交顺序依次执行，响应不会被错配到其他调用。

        Raises:
            NotReady: 尚未完成认证。
            ConnectionClosed: 连接已关闭。
            Busy: 已有命令在途且 queue_commands 为 False。
            BodyTooLarge: 命令过长 (未发送任何数据，连接不受影响)。
            ResponseTimeout: 响应超时，连接已关闭。
            TransportError: 传输层失败，连接已关闭。
        """
        self._ensure_usable()
        if not self.config.queue_commands and self._command_lock.locked():
            raise Busy("已有命令在途")

        payload = command.encode(self.config.encoding)
        size = Frame(0, PacketType.EXEC_COMMAND, payload).size
        if size > self.config.max_request_size:
            raise BodyTooLarge(size, self.config.max_request_size)

        async with self._command_lock:
            # 排队期间连接可能已被关闭
            self._ensure_usable()

            request = self._tracker.register(
                RequestKind.COMMAND,
                with_sentinel=self.config.multi_packet_responses,
            )
            packet = encode(
                Frame(request.request_id, PacketType.EXEC_COMMAND, payload),
                self.config.max_request_size,
            )
            if request.sentinel_id is not None:
                packet += encode(
                    Frame(request.sentinel_id, PacketType.EXEC_COMMAND, b""),
                    self.config.max_request_size,
                )

            logger.debug(f"执行命令 id={request.request_id}: {command!r}")
            return await self._run(
                request,
                packet,
                timeout=self.config.response_timeout,
                on_timeout=ResponseTimeout(
                    f"命令响应超时 ({self.config.response_timeout}s): {command!r}"
                ),
            )

    async def close(self) -> None:
        """关闭连接。所有在途请求以 ConnectionClosed 失败。"""
        if self._state.is_closed:
            return
        await self._shutdown(
            CloseReason.USER_REQUESTED,
            ConnectionClosed("连接已被用户关闭", CloseReason.USER_REQUESTED),
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ------------------------------------------------------------------
    # 内部流程
    # ------------------------------------------------------------------

    def _ensure_usable(self) -> None:
        status = self._state.status
        if status is ConnectionStatus.CLOSED:
            raise ConnectionClosed(
                f"连接已关闭: {self._state.last_error}", self._state.close_reason
            )
        if status is not ConnectionStatus.READY:
            raise NotReady(f"尚未完成认证: {status.name}")

    async def _run(
        self,
        request: PendingRequest,
        packet: bytes,
        timeout: float,
        on_timeout: RconError,
    ) -> Any:
        """发送请求并等待其完成信号。所有失败路径都会关闭连接。"""
        self._state.requests_sent += 1
        try:
            await self._send(packet)
            return await asyncio.wait_for(request.future, timeout=timeout)

        except asyncio.TimeoutError:
            await self._shutdown(_close_reason_for(on_timeout), on_timeout)
            raise on_timeout from None

        except asyncio.CancelledError:
            # 已发出的帧无法撤回，其迟到的响应会破坏后续帧边界
            await self._shutdown(
                CloseReason.CANCELLED,
                ConnectionClosed("在途请求被取消", CloseReason.CANCELLED),
            )
            raise

        except RconError as e:
            await self._shutdown(_close_reason_for(e), e)
            # 发送失败时 fail_all 写入的异常无人等待，这里取走它
            if request.future.done() and not request.future.cancelled():
                request.future.exception()
            raise

    async def _send(self, packet: bytes) -> None:
        logger.debug(f"发送 {len(packet)} 字节")
        try:
            await self._transport.write(packet)
        except OSError as e:
            raise TransportError(f"发送失败: {e}") from e

    def _ensure_reader(self) -> None:
        if self._reader_task is None:
            self._reader_task = asyncio.create_task(
                self._read_loop(), name="RconReaderTask"
            )

    async def _read_loop(self) -> None:
        """[Internal] 后台读取循环，独占 FrameReader。"""
        try:
            while True:
                try:
                    chunk = await self._transport.read()
                except OSError as e:
                    raise TransportError(f"接收错误: {e}") from e
                if not chunk:
                    raise TransportError("连接已被对端关闭")

                self._reader.feed(chunk)
                for frame in self._reader.frames():
                    self._dispatch(frame)

        except asyncio.CancelledError:
            logger.debug("读取任务被取消")
            raise

        except RconError as e:
            logger.error(f"读取循环中断: {e}")
            await self._shutdown(_close_reason_for(e), e)

        except Exception as e:
            logger.exception(f"读取循环发生未知异常: {e}")
            error = TransportError(f"读取循环异常退出: {e}")
            error.__cause__ = e
            await self._shutdown(CloseReason.TRANSPORT_ERROR, error)

    def _dispatch(self, frame: Frame) -> None:
        """把一个入站帧交给对应的在途请求。

        Raises:
            ProtocolViolation: 认证握手序列被破坏。
        """
        logger.debug(f"收到 {frame!r}")
        route, request = self._tracker.resolve(frame)

        if route is Route.UNSOLICITED:
            self._state.unsolicited_frames += 1
            logger.warning(f"丢弃无主帧: {frame!r}")

        elif route is Route.AUTH_PREAMBLE:
            if request.preamble_seen:
                raise ProtocolViolation("重复的认证前导帧 (空 ResponseValue)")
            request.preamble_seen = True

        elif route is Route.AUTH_ACCEPTED:
            if not request.preamble_seen and self.config.auth_preamble_required:
                raise ProtocolViolation("AuthResponse 先于空 ResponseValue 到达")
            self._tracker.complete(request)

        elif route is Route.AUTH_REJECTED:
            self._tracker.fail(
                request, AuthenticationFailed("认证失败: 服务器拒绝了密码")
            )

        elif route is Route.AUTH_UNEXPECTED:
            raise ProtocolViolation(f"认证阶段收到非预期的帧: {frame!r}")

        elif route is Route.FRAGMENT:
            request.aggregator.add(frame.body)
            if request.sentinel_id is None:
                self._tracker.complete(request, request.aggregator.finish())

        elif route is Route.SENTINEL:
            self._tracker.complete(request, request.aggregator.finish())

    async def _shutdown(self, reason: CloseReason, error: BaseException) -> None:
        """进入 CLOSED 终态。重复调用无副作用。"""
        if self._state.is_closed:
            return

        self._state.close_reason = reason
        self._state.last_error = str(error)
        self._tracker.fail_all(error)
        self._reader.clear()
        self._update_status(
            ConnectionStatus.CLOSED, f"连接已关闭 ({reason.name}): {error}"
        )

        task, self._reader_task = self._reader_task, None
        current = asyncio.current_task()
        if task is not None and task is not current and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        try:
            await self._transport.close()
        except (RconError, OSError) as e:
            logger.warning(f"关闭传输层时出现异常: {e}")

    def _update_status(self, status: ConnectionStatus, msg: str) -> None:
        """更新内部状态并异步触发所有回调。"""
        self._state.status = status
        logger.info(f"[{status.name}] {msg}")

        for callback in self._listeners:
            try:
                if inspect.iscoroutinefunction(callback):
                    asyncio.create_task(callback(status, msg))  # type: ignore
                else:
                    loop = asyncio.get_running_loop()
                    loop.call_soon(callback, status, msg)
            except RuntimeError:
                # 应对 loop 尚未运行或已关闭的边缘情况
                pass
