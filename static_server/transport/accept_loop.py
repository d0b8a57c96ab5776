"""Main connection acceptance loop."""

import logging
import socket
import threading
from typing import Optional

from static_server.bootstrap.config import SECURITY_HEADERS, ServerConfig
from static_server.bootstrap.socket_factory import create_server_socket
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.http_types import Handler, format_remote_addr
from static_server.domain.response_builders import draining_response
from static_server.lifecycle.state import ServerLifecycle
from static_server.pipeline.io import send_response
from static_server.transport.context import WorkerContext
from static_server.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.transport.accept"), {}
)


def _spawn_worker(
    client_socket: socket.socket,
    client_address: tuple,
    handler_context: WorkerContext,
) -> threading.Thread:
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": format_remote_addr(client_address),
            },
        )
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, handler_context),
        daemon=False,
    )
    if handler_context.lifecycle is not None:
        handler_context.lifecycle.register_worker(thread)
    thread.start()
    return thread


def run_server(
    config: ServerConfig,
    lifecycle: ServerLifecycle,
    dispatcher: Handler,
    server_socket: Optional[socket.socket] = None,
) -> None:
    """Accept connections until draining, one worker thread per connection."""

    if server_socket is None:
        server_socket = create_server_socket(config.host, config.port)

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={"event": "server_listening", "host": config.host, "port": config.port},
    )

    handler_context = WorkerContext(
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        socket_timeout=config.socket_timeout,
    )

    try:
        while True:
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                if lifecycle.is_draining():
                    break
                continue
            except OSError as error:
                if lifecycle.is_draining():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            if lifecycle.is_draining():
                send_response(client_socket, draining_response(SECURITY_HEADERS))
                client_socket.close()
                continue

            _spawn_worker(client_socket, client_address, handler_context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "grace_seconds": config.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(config.shutdown_grace_seconds)
        ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})
