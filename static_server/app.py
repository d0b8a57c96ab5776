"""Process entry point wiring configuration, logging and the server."""

import datetime
import logging
import signal
import sys
from typing import Callable, Optional, TextIO

from static_server.access.formatters import COLOR_GREEN, colorize
from static_server.access.middleware import RequestLogger
from static_server.access.rotation import LogRotationError, LogRotator
from static_server.bootstrap.config import ServerConfig, load_config, parse_cli_args
from static_server.bootstrap.logging_setup import configure_logging
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.lifecycle.state import ServerLifecycle
from static_server.pipeline.router import Dispatcher
from static_server.storage.counter import CounterClient
from static_server.transport.accept_loop import run_server

APP_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.app"), {})


def build_dispatcher(
    config: ServerConfig,
    counter: CounterClient,
    console_stream: Optional[TextIO] = None,
    on_rotation_failure: Optional[Callable[[LogRotationError], None]] = None,
    today_provider: Optional[Callable[[], datetime.date]] = None,
) -> tuple[Dispatcher, RequestLogger]:
    """Create the request logger (opening ``server.log``) and the dispatcher."""
    rotator = LogRotator(config.log_directory, today_provider=today_provider)
    request_logger = RequestLogger(rotator, console_stream, on_rotation_failure)
    return Dispatcher(counter, request_logger, config.directory), request_logger


def main(argv: Optional[list[str]] = None) -> None:
    """Parse ``-p``, start serving the working directory and block until shutdown."""
    args = parse_cli_args(argv)
    config = load_config(args)
    configure_logging(config.log_level, config.log_destination)

    counter = CounterClient.from_url(config.redis_url)
    try:
        dispatcher, request_logger = build_dispatcher(config, counter)
    except OSError as error:
        APP_LOGGER.critical(
            "Error opening access log",
            extra={
                "event": "access_log_open_failed",
                "log_directory": config.log_directory,
                "error": str(error),
            },
        )
        sys.exit(1)

    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        APP_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "shutdown_signal", "signal": signum},
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    APP_LOGGER.info(
        "Starting static server",
        extra={
            "event": "server_starting",
            "host": config.host,
            "port": config.port,
            "directory": config.directory,
            "log_directory": config.log_directory,
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
        },
    )
    request_logger.announce(colorize(f"Starting server on :{config.port}", COLOR_GREEN))
    try:
        run_server(config, lifecycle, dispatcher)
    except OSError:
        sys.exit(1)
    finally:
        request_logger.close()
        counter.close()
