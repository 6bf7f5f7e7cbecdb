# tests/test_protocol/test_packet.py
"""
测试数据帧编解码 (protocols/packet.py)。
"""

import struct

import pytest

from rcon_core.exceptions import BodyTooLarge, MalformedFrame
from rcon_core.protocols.packet import Frame, PacketType, decode, encode


def test_encode_layout():
    """测试编码结果逐字节符合线上格式"""
    data = encode(Frame(7, PacketType.AUTH, b"correct"))

    assert data[:4] == struct.pack("<i", 4 + 4 + 7 + 2)
    assert data[4:8] == struct.pack("<i", 7)
    assert data[8:12] == struct.pack("<i", 3)
    assert data[12:19] == b"correct"
    assert data[19:] == b"\x00\x00"


def test_encode_negative_id_little_endian():
    data = encode(Frame(-1, PacketType.AUTH_RESPONSE))
    assert data == bytes.fromhex("0a000000" "ffffffff" "02000000" "0000")


def test_encode_empty_body_size():
    """空正文的 size 字段恰为 10"""
    assert encode(Frame(1, PacketType.EXEC_COMMAND))[:4] == b"\x0a\x00\x00\x00"


def test_auth_response_shares_tag_with_exec_command():
    assert PacketType.AUTH_RESPONSE is PacketType.EXEC_COMMAND
    assert PacketType.AUTH_RESPONSE == 2


@pytest.mark.parametrize(
    "frame",
    [
        Frame(0, PacketType.RESPONSE_VALUE),
        Frame(42, PacketType.EXEC_COMMAND, b"status"),
        Frame(-2**31, PacketType.AUTH, b"pw"),
        Frame(2**31 - 1, PacketType.RESPONSE_VALUE, "§a中文".encode()),
    ],
)
def test_round_trip(frame):
    assert decode(encode(frame)[4:]) == frame


def test_encode_body_too_large():
    """size 超过上限时拒绝编码"""
    with pytest.raises(BodyTooLarge) as exc:
        encode(Frame(1, PacketType.EXEC_COMMAND, b"x" * 4087))

    assert exc.value.size == 4097
    assert exc.value.limit == 4096


def test_encode_at_exact_limit():
    data = encode(Frame(1, PacketType.EXEC_COMMAND, b"x" * 4086))
    assert len(data) == 4 + 4096


def test_encode_custom_limit():
    with pytest.raises(BodyTooLarge):
        encode(Frame(1, PacketType.EXEC_COMMAND, b"abc"), max_size=12)


def test_decode_too_short():
    with pytest.raises(MalformedFrame, match="长度不足"):
        decode(b"\x01\x00\x00\x00\x00\x00\x00\x00\x00")


def test_decode_bad_terminator():
    payload = struct.pack("<ii", 1, 0) + b"abc" + b"\x00\x01"
    with pytest.raises(MalformedFrame, match="终止字节"):
        decode(payload)


def test_decode_unknown_type():
    payload = struct.pack("<ii", 1, 5) + b"\x00\x00"
    with pytest.raises(MalformedFrame, match="未知的帧类型"):
        decode(payload)


def test_decode_body_excludes_terminators():
    payload = struct.pack("<ii", 3, 0) + b"Hello" + b"\x00\x00"
    frame = decode(payload)

    assert frame.body == b"Hello"
    assert frame.text == "Hello"
    assert frame.size == 15
