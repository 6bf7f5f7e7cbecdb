# src/rcon_core/protocols/constants.py
"""
RCON 协议层 - 常量定义

本模块定义了所有协议相关的魔法数字、偏移量和固定值。
采用命名空间 (Class Namespace) 组织，不使用扁平全局变量。
"""

# =========================================================================
# 1. 类型标签 (Wire Tags)
# =========================================================================


class Tag:
    """类型字段在线上的取值。

    注意 AUTH_RESPONSE 与 EXEC_COMMAND 共用标签 2，只能依据上下文区分。
    """

    RESPONSE_VALUE = 0
    EXEC_COMMAND = 2
    AUTH_RESPONSE = 2
    AUTH = 3

    KNOWN = frozenset({RESPONSE_VALUE, EXEC_COMMAND, AUTH})


# =========================================================================
# 2. 帧结构 (Frame Layout)
# =========================================================================


class Layout:
    """帧结构偏移与长度。

    [size:i32][id:i32][type:i32][body...][0x00][0x00]
    size 为其自身之后所有字节的长度。
    """

    # 所有整数均为小端序有符号 32 位
    INT_FORMAT = "<i"
    HEADER_FORMAT = "<ii"

    SIZE_FIELD_LEN = 4
    HEADER_LEN = 8  # id + type
    TERMINATOR = b"\x00\x00"

    # id(4) + type(4) + 两个终止字节(2)
    MIN_PAYLOAD_LEN = HEADER_LEN + len(TERMINATOR)


# =========================================================================
# 3. 关联 ID (Correlation IDs)
# =========================================================================


class RequestId:
    """关联 ID 的取值范围与保留值。"""

    INT32_MIN = -(2**31)
    INT32_MAX = 2**31 - 1

    # 服务器用 -1 表示认证失败，客户端永远不能分配此值
    AUTH_FAILURE = -1

    DEFAULT_INITIAL = 1


# =========================================================================
# 4. 限制 (Limits)
# =========================================================================


class Limits:
    """默认大小限制，与常见服务端实现保持一致。"""

    # 出站帧 size 字段的上限
    MAX_REQUEST_SIZE = 4096

    # 入站帧 size 字段的上限 (服务器单帧正文通常不超过 4096，留出余量)
    MAX_RESPONSE_SIZE = 4096 * 4
