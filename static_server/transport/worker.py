"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
from typing import Optional

from static_server.bootstrap.config import MAX_BODY_BYTES, SECURITY_HEADERS
from static_server.domain.correlation_id import (
    CorrelationLoggerAdapter,
    clear_correlation_id,
    generate_correlation_id,
    set_correlation_id,
)
from static_server.domain.http_types import (
    HttpRequest,
    format_remote_addr,
    should_close,
)
from static_server.domain.response_builders import (
    bad_request_response,
    draining_response,
    entity_too_large_response,
    internal_error_response,
)
from static_server.pipeline.io import (
    ResponseWriter,
    receive_request,
    send_response,
    write_response,
)
from static_server.pipeline.validation import RequestEntityTooLarge, validate_request
from static_server.transport.context import WorkerContext

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.transport.worker"), {}
)


def _read_request(
    client_socket: socket.socket, buffer: bytes, remote_addr: str
) -> tuple[Optional[HttpRequest], bytes, bool]:
    """Read one request, answering 400/413 itself when the bytes are unusable."""
    try:
        request, buffer = receive_request(client_socket, buffer, remote_addr)
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request body size exceeded limit",
            extra={
                "event": "body_size_exceeded",
                "client": remote_addr,
                "limit": MAX_BODY_BYTES,
            },
        )
        send_response(client_socket, entity_too_large_response(SECURITY_HEADERS))
        return None, b"", True
    except ValueError:
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": remote_addr},
        )
        send_response(client_socket, bad_request_response(SECURITY_HEADERS))
        return None, b"", True

    if request is None:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client disconnected",
                extra={"event": "client_disconnected", "client": remote_addr},
            )
        return None, b"", True
    return request, buffer, False


def _process_request(
    request: HttpRequest, context: WorkerContext, client_socket: socket.socket
) -> bool:
    """Dispatch a request; return True when the connection must be closed."""
    close_requested = should_close(request.headers)
    validation_response = validate_request(request, SECURITY_HEADERS)
    if validation_response is not None:
        send_response(client_socket, validation_response, close_requested)
        return close_requested

    writer = ResponseWriter(client_socket, request.method, close_requested)
    try:
        context.dispatcher(request, writer)
    except OSError:
        raise
    except Exception:
        if not writer.header_sent:
            write_response(writer, internal_error_response(SECURITY_HEADERS))
            writer.finish()
        raise
    writer.finish()
    return writer.close_connection


def _cleanup_worker(
    context: WorkerContext,
    client_socket: socket.socket,
    thread: threading.Thread,
    remote_addr: str,
) -> None:
    if context.lifecycle is not None:
        context.lifecycle.cleanup_worker(thread)
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()
    if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        WORKER_LOGGER.debug(
            "Socket closed", extra={"event": "socket_closed", "client": remote_addr}
        )
    clear_correlation_id()


def handle_client(
    client_socket: socket.socket,
    client_address: tuple,
    context: WorkerContext,
) -> None:
    """Serve requests on one connection until it closes or the server drains."""
    buffer = b""
    remote_addr = format_remote_addr(client_address)
    current_thread = threading.current_thread()
    if context.lifecycle is not None:
        context.lifecycle.register_worker(current_thread)
    if context.socket_timeout is not None:
        client_socket.settimeout(context.socket_timeout)

    try:
        while True:
            set_correlation_id(generate_correlation_id())

            if context.lifecycle is not None and context.lifecycle.is_draining():
                send_response(client_socket, draining_response(SECURITY_HEADERS))
                break

            request, buffer, should_terminate = _read_request(
                client_socket, buffer, remote_addr
            )
            if should_terminate:
                break

            if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
                WORKER_LOGGER.debug(
                    "Request line parsed",
                    extra={
                        "event": "request_line_parsed",
                        "method": request.method,
                        "route": request.path,
                    },
                )

            if _process_request(request, context, client_socket):
                break
            clear_correlation_id()
    except (ConnectionError, TimeoutError, OSError) as error:
        WORKER_LOGGER.error(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": remote_addr,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": remote_addr,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
    finally:
        _cleanup_worker(context, client_socket, current_thread, remote_addr)
