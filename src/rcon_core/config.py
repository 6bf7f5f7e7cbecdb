"""
RCON 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量或字典中加载配置。
"""

import codecs
import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import ConfigError
from .protocols.constants import Limits, RequestId

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "t", "yes", "on")


@dataclass(frozen=True)
class RconConfig:
    """RconConnection 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        host: 服务器地址。
        port: 服务器 RCON 端口 (Source 默认 27015，Minecraft 默认 25575)。
        password: RCON 密码。authenticate() 未传入密码时使用。
        connect_timeout: 建立 TCP 连接的超时秒数。
        auth_timeout: 认证握手的超时秒数。
        response_timeout: 单个命令等待完整响应的超时秒数。
        max_request_size: 出站帧 size 字段上限。
        max_response_size: 入站帧 size 字段上限。
        initial_id: 第一个关联 ID。
        encoding: 命令与响应文本的编码。
        auth_preamble_required: 认证成功前是否必须先收到空 ResponseValue。
            部分服务端 (如 Minecraft) 会省略该帧，此时应设为 False。
        multi_packet_responses: 是否使用哨兵命令聚合多帧响应。
            为 False 时第一个响应帧即视为完整响应。
        queue_commands: 并发命令是否排队 (FIFO)。为 False 时直接抛出 Busy。
    """

    host: str
    port: int
    password: str = ""

    connect_timeout: float = 5.0
    auth_timeout: float = 5.0
    response_timeout: float = 10.0

    max_request_size: int = Limits.MAX_REQUEST_SIZE
    max_response_size: int = Limits.MAX_RESPONSE_SIZE
    initial_id: int = RequestId.DEFAULT_INITIAL
    encoding: str = "utf-8"

    auth_preamble_required: bool = True
    multi_packet_responses: bool = True
    queue_commands: bool = True

    def __repr__(self) -> str:
        """隐藏密码字段，防止日志泄露敏感信息。"""
        return (
            f"<{self.__class__.__name__} "
            f"server={self.host}:{self.port}, "
            f"password='******', "
            f"multi_packet={self.multi_packet_responses}>"
        )


def create_config_from_dict(raw_data: dict[str, Any]) -> RconConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        RconConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """
    try:
        # --- 内部辅助函数 ---
        def _req(key: str) -> Any:
            """获取必要字段，缺失则报错"""
            if key not in raw_data:
                raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
            return raw_data[key]

        def _get(key: str, default: Any) -> Any:
            return raw_data.get(key, default)

        def _to_bool(key: str, default: bool) -> bool:
            """兼容 TOML 布尔值与环境变量字符串"""
            val = raw_data.get(key, default)
            if isinstance(val, bool):
                return val
            return str(val).strip().lower() in _TRUE_VALUES

        def _to_int(
            key: str,
            default: int | None = None,
            lo: int | None = None,
            hi: int | None = None,
        ) -> int:
            """获取整数字段，default 为 None 时视为必要字段"""
            val = _req(key) if default is None else _get(key, default)
            try:
                num = int(val)
            except (TypeError, ValueError):
                raise ConfigError(f"整数格式无效 '{key}': {val}")
            if (lo is not None and num < lo) or (hi is not None and num > hi):
                raise ConfigError(f"数值越界 '{key}': {num}")
            return num

        def _to_timeout(key: str, default: float) -> float:
            val = _get(key, default)
            try:
                num = float(val)
            except (TypeError, ValueError):
                raise ConfigError(f"超时格式无效 '{key}': {val}")
            if num <= 0:
                raise ConfigError(f"超时必须为正数 '{key}': {num}")
            return num

        initial_id = _to_int(
            "initial_id",
            RequestId.DEFAULT_INITIAL,
            lo=RequestId.INT32_MIN,
            hi=RequestId.INT32_MAX,
        )
        if initial_id == RequestId.AUTH_FAILURE:
            raise ConfigError("initial_id 不能为保留值 -1")

        encoding = str(_get("encoding", "utf-8"))
        try:
            codecs.lookup(encoding)
        except LookupError:
            raise ConfigError(f"未知的文本编码 'encoding': {encoding}")

        # --- 构建对象 ---
        return RconConfig(
            host=str(_req("host")),
            port=_to_int("port", lo=1, hi=65535),
            password=str(_get("password", "")),
            connect_timeout=_to_timeout("connect_timeout", 5.0),
            auth_timeout=_to_timeout("auth_timeout", 5.0),
            response_timeout=_to_timeout("response_timeout", 10.0),
            max_request_size=_to_int(
                "max_request_size", Limits.MAX_REQUEST_SIZE, lo=10
            ),
            max_response_size=_to_int(
                "max_response_size", Limits.MAX_RESPONSE_SIZE, lo=10
            ),
            initial_id=initial_id,
            encoding=encoding,
            auth_preamble_required=_to_bool("auth_preamble_required", True),
            multi_packet_responses=_to_bool("multi_packet_responses", True),
            queue_commands=_to_bool("queue_commands", True),
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> RconConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [rcon]: 单服务器配置块。
    3. Root: 兼容根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        RconConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    raw_config = {}

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]

    elif "rcon" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [rcon] 节，忽略 profile='{profile}'。")
        raw_config = data["rcon"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env() -> RconConfig:
    """从环境变量加载配置。

    自动读取所有以 `RCON_` 开头的环境变量，并映射到配置字段。
    例如: `RCON_PASSWORD` -> `password`。

    Returns:
        RconConfig: 配置对象。

    Raises:
        ConfigError: 未检测到任何相关环境变量。
    """
    env_map = {
        "host": "HOST",
        "port": "PORT",
        "password": "PASSWORD",
        "connect_timeout": "CONNECT_TIMEOUT",
        "auth_timeout": "AUTH_TIMEOUT",
        "response_timeout": "RESPONSE_TIMEOUT",
        "max_request_size": "MAX_REQUEST_SIZE",
        "max_response_size": "MAX_RESPONSE_SIZE",
        "initial_id": "INITIAL_ID",
        "encoding": "ENCODING",
        "auth_preamble_required": "AUTH_PREAMBLE_REQUIRED",
        "multi_packet_responses": "MULTI_PACKET_RESPONSES",
        "queue_commands": "QUEUE_COMMANDS",
    }

    raw_data = {}

    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"RCON_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        raise ConfigError("未检测到 RCON_ 前缀的环境变量")

    return create_config_from_dict(raw_data)
