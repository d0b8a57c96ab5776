"""Listening socket creation."""

import logging
import socket

from static_server.domain.correlation_id import CorrelationLoggerAdapter

SOCKET_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.socket"), {})

ACCEPT_TIMEOUT_SECONDS = 0.5


def create_server_socket(host: str, port: int) -> socket.socket:
    """Bind a listening TCP socket whose accept() wakes up periodically."""
    try:
        server_socket = socket.create_server((host, port))
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "bind_failed",
                "host": host,
                "port": port,
                "error": str(error),
            },
        )
        raise
    server_socket.settimeout(ACCEPT_TIMEOUT_SECONDS)
    return server_socket
