"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


DEFAULT_PORT = 8080
MAX_BODY_BYTES = _env_int("STATIC_SERVER_MAX_BODY_BYTES", 5 * 1024 * 1024)

HEADER_DELIMITER = b"\r\n\r\n"
COUNT_ENDPOINT = "/count"
COUNTER_KEY_PREFIX = "page.count."

ACCESS_LOG_NAME = "server.log"
MAX_LOG_FILES = 10

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
}


@dataclass
class ServerConfig:
    """Runtime settings resolved from the command line and environment."""

    host: str
    port: int
    directory: str = "."
    log_directory: str = "."
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"
    log_destination: str = "stderr"
    socket_timeout: int = 60
    shutdown_grace_seconds: int = 30


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser; only the port is exposed as a flag."""
    parser = argparse.ArgumentParser(
        description="Serve the working directory over HTTP with access logging"
    )
    parser.add_argument(
        "-p",
        dest="port",
        type=int,
        default=DEFAULT_PORT,
        metavar="PORT",
        help="Define what TCP port to bind to (default: %(default)s)",
    )
    return parser


def parse_cli_args(argv: Optional[list[str]]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    return build_parser().parse_args(argv)


def load_config(args: argparse.Namespace) -> ServerConfig:
    """Combine CLI arguments with STATIC_SERVER_* environment settings."""
    return ServerConfig(
        host=_env_str("STATIC_SERVER_HOST", "0.0.0.0"),
        port=args.port,
        redis_url=_env_str("STATIC_SERVER_REDIS_URL", "redis://localhost:6379/0"),
        log_level=_env_str("STATIC_SERVER_LOG_LEVEL", "INFO").upper(),
        log_destination=_env_str("STATIC_SERVER_LOG_DESTINATION", "stderr"),
        socket_timeout=_env_int("STATIC_SERVER_SOCKET_TIMEOUT", 60),
        shutdown_grace_seconds=_env_int("STATIC_SERVER_SHUTDOWN_GRACE_SECONDS", 30),
    )
