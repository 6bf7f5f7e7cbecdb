# tests/test_config.py
import os
from pathlib import Path

import pytest

from rcon_core import ConfigError
from rcon_core.config import (
    RconConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)


# --- 辅助函数：生成有效字典 ---
def _get_valid_raw_dict():
    return {
        "host": "127.0.0.1",
        "port": 27015,
        "password": "secret",
    }


# --- Factory 测试 (核心逻辑) ---


def test_create_valid_dict():
    config = create_config_from_dict(_get_valid_raw_dict())

    assert config.host == "127.0.0.1"
    assert config.port == 27015
    assert config.password == "secret"
    assert config.max_request_size == 4096
    assert config.initial_id == 1
    assert config.auth_preamble_required is True
    assert config.multi_packet_responses is True


def test_create_missing_field():
    with pytest.raises(ConfigError, match="配置缺失"):
        create_config_from_dict({"host": "127.0.0.1"})


@pytest.mark.parametrize("port", [0, 70000, "abc"])
def test_create_invalid_port(port):
    raw_data = _get_valid_raw_dict()
    raw_data["port"] = port
    with pytest.raises(ConfigError):
        create_config_from_dict(raw_data)


def test_create_reserved_initial_id():
    raw_data = _get_valid_raw_dict()
    raw_data["initial_id"] = -1
    with pytest.raises(ConfigError, match="保留值"):
        create_config_from_dict(raw_data)


def test_create_non_positive_timeout():
    raw_data = _get_valid_raw_dict()
    raw_data["response_timeout"] = 0
    with pytest.raises(ConfigError, match="超时必须为正数"):
        create_config_from_dict(raw_data)


def test_create_unknown_encoding():
    raw_data = _get_valid_raw_dict()
    raw_data["encoding"] = "no-such-codec"
    with pytest.raises(ConfigError, match="未知的文本编码"):
        create_config_from_dict(raw_data)


def test_create_bool_strings():
    """环境变量中的字符串布尔值"""
    raw_data = _get_valid_raw_dict()
    raw_data["auth_preamble_required"] = "false"
    raw_data["queue_commands"] = "0"
    raw_data["multi_packet_responses"] = "yes"
    config = create_config_from_dict(raw_data)

    assert config.auth_preamble_required is False
    assert config.queue_commands is False
    assert config.multi_packet_responses is True


def test_repr_hides_password():
    config = RconConfig(host="h", port=1, password="hunter2")
    assert "hunter2" not in repr(config)


# --- Loader 测试 (I/O) ---


def test_load_toml_rcon_section(tmp_path):
    toml_content = """
    [rcon]
    host = "10.0.0.5"
    port = 25575
    password = "toml_pw"
    auth_preamble_required = false
    """
    f = tmp_path / "config.toml"
    f.write_text(toml_content, encoding="utf-8")

    config = load_config_from_toml(f)
    assert config.host == "10.0.0.5"
    assert config.auth_preamble_required is False


def test_load_toml_profile(tmp_path):
    toml_content = """
    [profile.default]
    host = "1.1.1.1"
    port = 27015

    [profile.minecraft]
    host = "2.2.2.2"
    port = 25575
    """
    f = tmp_path / "config.toml"
    f.write_text(toml_content, encoding="utf-8")

    assert load_config_from_toml(f, "minecraft").host == "2.2.2.2"
    with pytest.raises(ConfigError, match="未找到预设"):
        load_config_from_toml(f, "missing")


def test_load_toml_not_found():
    with pytest.raises(ConfigError, match="配置文件未找到"):
        load_config_from_toml(Path("non_existent.toml"))


def test_load_toml_invalid(tmp_path):
    f = tmp_path / "broken.toml"
    f.write_text("host = ", encoding="utf-8")
    with pytest.raises(ConfigError, match="读取 TOML 失败"):
        load_config_from_toml(f)


def test_load_env(monkeypatch):
    monkeypatch.setenv("RCON_HOST", "192.168.1.10")
    monkeypatch.setenv("RCON_PORT", "27015")
    monkeypatch.setenv("RCON_PASSWORD", "env_pw")
    monkeypatch.setenv("RCON_RESPONSE_TIMEOUT", "2.5")

    config = load_config_from_env()
    assert config.host == "192.168.1.10"
    assert config.port == 27015
    assert config.response_timeout == 2.5


def test_load_env_empty(monkeypatch):
    for key in list(os.environ):
        if key.startswith("RCON_"):
            monkeypatch.delenv(key)
    with pytest.raises(ConfigError, match="RCON_"):
        load_config_from_env()
