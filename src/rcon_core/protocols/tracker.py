# src/rcon_core/protocols/tracker.py
"""
RCON 协议层 - 请求追踪器 (Request Tracker)

职责：
1. 分配关联 ID (有符号 32 位，溢出回绕，跳过保留值 -1)。
2. 维护在途逻辑请求的有序集合。
3. 根据当前在途请求把入站帧路由到正确的去处。

线上 AuthResponse 与 ExecCommand 共用类型标签 2，
因此路由完全依赖 "当前在等什么"，而不是标签本身。
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import NamedTuple

from ..exceptions import Busy, InvalidState
from .aggregator import ResponseAggregator
from .constants import RequestId
from .packet import Frame, PacketType

logger = logging.getLogger(__name__)


class RequestKind(Enum):
    """逻辑请求的种类。"""

    AUTH = auto()
    COMMAND = auto()


class Route(Enum):
    """入站帧的路由结果。"""

    AUTH_PREAMBLE = auto()
    """认证阶段必须出现的空 ResponseValue，消费后丢弃。"""

    AUTH_ACCEPTED = auto()
    """id 等于认证请求 id 的 AuthResponse。"""

    AUTH_REJECTED = auto()
    """id 为 -1 的 AuthResponse。"""

    AUTH_UNEXPECTED = auto()
    """携带认证 id 但类型或内容不符的帧。"""

    FRAGMENT = auto()
    """当前命令的一个响应分片。"""

    SENTINEL = auto()
    """哨兵命令的应答，标志着分片结束。"""

    UNSOLICITED = auto()
    """没有任何在途请求与之匹配 (非致命，记录警告后丢弃)。"""


def _new_future() -> asyncio.Future:
    return asyncio.get_running_loop().create_future()


@dataclass(eq=False)
class PendingRequest:
    """一个在途的逻辑请求。

    Attributes:
        kind: 请求种类。
        request_id: 真实请求的关联 ID。
        sentinel_id: 哨兵命令的关联 ID，单帧响应模式或认证请求时为 None。
        aggregator: 命令响应聚合器，认证请求时为 None。
        preamble_seen: [Auth] 是否已收到空 ResponseValue。
        future: 完成信号。认证成功时结果为 None，命令完成时结果为响应文本。
    """

    kind: RequestKind
    request_id: int
    sentinel_id: int | None = None
    aggregator: ResponseAggregator | None = None
    preamble_seen: bool = False
    future: asyncio.Future = field(default_factory=_new_future, repr=False)

    @property
    def done(self) -> bool:
        return self.future.done()


class RoutingDecision(NamedTuple):
    route: Route
    request: PendingRequest | None


class RequestTracker:
    """在途请求的登记与入站帧路由。"""

    def __init__(
        self,
        initial_id: int = RequestId.DEFAULT_INITIAL,
        encoding: str = "utf-8",
    ) -> None:
        """初始化追踪器。

        Args:
            initial_id: 第一个分配的关联 ID，不能为 -1。
            encoding: 命令响应文本的编码。
        """
        if initial_id == RequestId.AUTH_FAILURE:
            raise ValueError("initial_id 不能为保留值 -1")
        if not RequestId.INT32_MIN <= initial_id <= RequestId.INT32_MAX:
            raise ValueError(f"initial_id 超出 32 位有符号整数范围: {initial_id}")

        self.initial_id = initial_id
        self.encoding = encoding
        self._next_id = initial_id
        self._pending: list[PendingRequest] = []

    @property
    def pending(self) -> tuple[PendingRequest, ...]:
        """按登记顺序排列的在途请求。"""
        return tuple(self._pending)

    @property
    def current(self) -> PendingRequest | None:
        """最早登记的在途请求。"""
        return self._pending[0] if self._pending else None

    def next_id(self) -> int:
        """分配下一个关联 ID。"""
        request_id = self._next_id

        if request_id >= RequestId.INT32_MAX:
            following = RequestId.INT32_MIN
        else:
            following = request_id + 1
        if following == RequestId.AUTH_FAILURE:
            following += 1

        self._next_id = following
        return request_id

    def register(self, kind: RequestKind, with_sentinel: bool = True) -> PendingRequest:
        """登记一个新的逻辑请求。

        Args:
            kind: 请求种类。
            with_sentinel: [Command] 是否为其分配哨兵 ID。

        Returns:
            PendingRequest: 新建的在途请求。

        Raises:
            InvalidState: 已有认证请求在途时再次登记认证。
            Busy: 已有命令请求在途时再次登记命令。
        """
        for existing in self._pending:
            if existing.kind is kind:
                if kind is RequestKind.AUTH:
                    raise InvalidState("已有认证请求在途")
                raise Busy("已有命令请求在途")

        if kind is RequestKind.AUTH:
            request = PendingRequest(kind=kind, request_id=self.next_id())
        else:
            request_id = self.next_id()
            request = PendingRequest(
                kind=kind,
                request_id=request_id,
                sentinel_id=self.next_id() if with_sentinel else None,
                aggregator=ResponseAggregator(self.encoding),
            )

        self._pending.append(request)
        logger.debug(f"登记请求: {request.kind.name} id={request.request_id}")
        return request

    def resolve(self, frame: Frame) -> RoutingDecision:
        """判定入站帧属于哪个在途请求的哪一步。"""
        for request in self._pending:
            if request.kind is RequestKind.AUTH:
                route = self._match_auth(request, frame)
            else:
                route = self._match_command(request, frame)

            if route is not None:
                return RoutingDecision(route, request)

        return RoutingDecision(Route.UNSOLICITED, None)

    @staticmethod
    def _match_auth(request: PendingRequest, frame: Frame) -> Route | None:
        if frame.id not in (request.request_id, RequestId.AUTH_FAILURE):
            return None

        if frame.kind is PacketType.RESPONSE_VALUE:
            if frame.body.rstrip(b"\x00"):
                return Route.AUTH_UNEXPECTED
            return Route.AUTH_PREAMBLE

        if frame.kind is PacketType.AUTH_RESPONSE:
            if frame.id == RequestId.AUTH_FAILURE:
                return Route.AUTH_REJECTED
            return Route.AUTH_ACCEPTED

        return Route.AUTH_UNEXPECTED

    @staticmethod
    def _match_command(request: PendingRequest, frame: Frame) -> Route | None:
        if request.sentinel_id is not None and frame.id == request.sentinel_id:
            return Route.SENTINEL

        if frame.id == request.request_id and frame.kind is PacketType.RESPONSE_VALUE:
            return Route.FRAGMENT

        return None

    def complete(self, request: PendingRequest, result=None) -> None:
        """以成功结果结束一个请求。"""
        self._forget(request)
        if not request.future.done():
            request.future.set_result(result)

    def fail(self, request: PendingRequest, error: BaseException) -> None:
        """以错误结束一个请求。"""
        self._forget(request)
        if not request.future.done():
            request.future.set_exception(error)

    def discard(self, request: PendingRequest) -> None:
        """撤销一个尚未发出的请求。"""
        self._forget(request)
        request.future.cancel()

    def fail_all(self, error: BaseException) -> None:
        """以同一个终止错误结束所有在途请求 (连接关闭时使用)。"""
        pending, self._pending = self._pending, []
        for request in pending:
            if not request.future.done():
                request.future.set_exception(error)
        if pending:
            logger.debug(f"已终止 {len(pending)} 个在途请求: {error!r}")

    def _forget(self, request: PendingRequest) -> None:
        if request in self._pending:
            self._pending.remove(request)
