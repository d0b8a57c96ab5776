"""HTTP Input/Output operations."""

import logging
import socket
import urllib.parse
from http import HTTPStatus
from typing import Optional, Tuple

from static_server.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from static_server.domain.correlation_id import (
    CorrelationLoggerAdapter,
    get_correlation_id,
    set_correlation_id,
)
from static_server.domain.http_types import HttpRequest, HttpResponse, status_line
from static_server.pipeline.validation import RequestEntityTooLarge

IO_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.io"), {})


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ": " in line:
            name, value = line.split(": ", 1)
            parsed[name.lower()] = value
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str, dict[str, list[str]]]:
    """Split the request line into method, decoded path and query parameters."""
    try:
        method, target, _ = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc

    parsed_target = urllib.parse.urlsplit(target)
    path = urllib.parse.unquote(parsed_target.path)
    query = urllib.parse.parse_qs(parsed_target.query, keep_blank_values=True)
    return method, path, query


def determine_content_length(headers: dict[str, str]) -> int:
    """Validate and return the declared Content-Length for the request."""
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > MAX_BODY_BYTES:
        raise RequestEntityTooLarge
    return content_length


def receive_request(
    client_socket: socket.socket, buffer: bytes, remote_addr: str = ""
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available."""
    while HEADER_DELIMITER not in buffer:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        buffer += chunk

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode().split("\r\n")
    method, path, query = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    incoming_correlation_id = headers.get("x-request-id")
    if incoming_correlation_id:
        set_correlation_id(incoming_correlation_id)

    content_length = determine_content_length(headers)

    while len(remainder) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        remainder += chunk

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    return HttpRequest(method, path, headers, body, query, remote_addr), leftover


class ResponseWriter:
    """Streams a single response onto a client socket.

    Handlers fill in ``headers`` and then call :meth:`write_header` and
    :meth:`write`. Without an explicit ``Content-Length`` the body goes out
    with chunked transfer encoding. :meth:`finish` must be called once the
    handler returns so the chunked terminator (or a bare 200) is sent.
    """

    def __init__(
        self,
        client_socket: socket.socket,
        method: str = "GET",
        close_connection: bool = False,
    ) -> None:
        self.headers: dict[str, str] = {}
        self.status: Optional[int] = None
        self.close_connection = close_connection
        self._socket = client_socket
        self._omit_body = method == "HEAD"
        self._chunked = False

    @property
    def header_sent(self) -> bool:
        return self.status is not None

    def write_header(self, status: int) -> None:
        if self.status is not None:
            IO_LOGGER.warning(
                "Superfluous write_header call ignored",
                extra={"event": "superfluous_write_header", "status_code": int(status)},
            )
            return
        self.status = int(status)

        headers = dict(self.headers)
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Request-ID"] = correlation_id
        if "Content-Length" not in headers and not self._omit_body:
            headers["Transfer-Encoding"] = "chunked"
            self._chunked = True
        if headers.get("Connection", "").lower() == "close":
            self.close_connection = True
        if self.close_connection:
            headers["Connection"] = "close"

        header_lines = [status_line(self.status)]
        header_lines.extend(f"{name}: {value}" for name, value in headers.items())
        self._socket.sendall("\r\n".join(header_lines).encode() + HEADER_DELIMITER)

    def write(self, data: bytes) -> int:
        if self.status is None:
            self.write_header(HTTPStatus.OK)
        if not data or self._omit_body:
            return 0
        if self._chunked:
            self._socket.sendall(f"{len(data):X}\r\n".encode() + data + b"\r\n")
        else:
            self._socket.sendall(data)
        return len(data)

    def finish(self) -> None:
        if self.status is None:
            self.write_header(HTTPStatus.OK)
        if self._chunked:
            self._socket.sendall(b"0\r\n\r\n")
            self._chunked = False
        if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
            IO_LOGGER.debug(
                "Sent response",
                extra={"event": "response_sent", "status_code": self.status},
            )


def write_response(sink, response: HttpResponse) -> None:
    """Write a prepared response through a handler's response sink."""
    sink.headers.update(response.headers)
    if response.body_iter is None:
        sink.headers.setdefault("Content-Length", str(len(response.body)))
    sink.write_header(response.status)
    if response.body_iter is not None:
        for chunk in response.body_iter:
            sink.write(chunk)
    elif response.body:
        sink.write(response.body)


def send_response(
    client_socket: socket.socket,
    response: HttpResponse,
    close_connection: bool = True,
) -> None:
    """Serialize a complete response outside of any handler."""
    writer = ResponseWriter(client_socket, close_connection=close_connection)
    write_response(writer, response)
    writer.finish()
