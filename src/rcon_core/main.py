# src/rcon_core/main.py
"""
RCON 命令行客户端 (CLI)

配置优先级: 命令行参数 > TOML 配置文件 > 环境变量 (.env)。
给出命令时逐条执行后退出；否则进入交互模式。
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from .config import RconConfig, load_config_from_env, load_config_from_toml
from .core import RconConnection
from .exceptions import AuthenticationFailed, ConfigError, RconError

logger = logging.getLogger("RconCLI")

EXIT_COMMANDS = ("exit", "quit")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rcon-core", description="Source RCON 协议命令行客户端"
    )
    parser.add_argument("-c", "--config", type=Path, help="TOML 配置文件路径")
    parser.add_argument("-p", "--profile", default="default", help="配置预设名")
    parser.add_argument("-H", "--host", help="服务器地址")
    parser.add_argument("-P", "--port", type=int, help="服务器 RCON 端口")
    parser.add_argument("--password", help="RCON 密码")
    parser.add_argument(
        "--single-packet",
        action="store_true",
        help="不使用哨兵命令，第一个响应帧即为完整响应",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    parser.add_argument("commands", nargs="*", help="要执行的命令")
    return parser


def load_cli_config(args: argparse.Namespace) -> RconConfig:
    """为 CLI 加载配置。

    先尝试加载当前目录下的 .env，再按优先级合并。
    """
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
        logger.debug(f"已加载配置文件: {env_path}")

    if args.config is not None:
        config = load_config_from_toml(args.config, args.profile)
    elif args.host is not None and args.port is not None:
        config = RconConfig(host=args.host, port=args.port)
    else:
        config = load_config_from_env()

    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.password is not None:
        overrides["password"] = args.password
    if args.single_packet:
        overrides["multi_packet_responses"] = False

    return replace(config, **overrides) if overrides else config


async def run(config: RconConfig, commands: list[str]) -> int:
    """连接、认证并执行命令。返回进程退出码。"""
    async with await RconConnection.open(config) as conn:
        await conn.authenticate()

        if commands:
            for command in commands:
                print(await conn.execute_command(command))
            return 0

        loop = asyncio.get_running_loop()
        while True:
            try:
                line = await loop.run_in_executor(None, input, "> ")
            except EOFError:
                break

            command = line.strip()
            if not command:
                continue
            if command.lower() in EXIT_COMMANDS:
                break
            print(await conn.execute_command(command))

    return 0


def main(argv: list[str] | None = None) -> int:
    """程序主入口点。"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_cli_config(args)
    except ConfigError as e:
        logger.critical(f"启动失败: {e}")
        return 2

    try:
        return asyncio.run(run(config, args.commands))
    except AuthenticationFailed as e:
        logger.critical(f"{e}")
        return 3
    except RconError as e:
        logger.critical(f"连接异常: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("收到用户中断信号 (Ctrl+C)，准备退出...")
        return 130


# 程序入口
if __name__ == "__main__":
    sys.exit(main())
