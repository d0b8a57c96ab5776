"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Callable, Iterable, Optional, Protocol


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes = b""
    query: dict[str, list[str]] = field(default_factory=dict)
    remote_addr: str = ""

    def query_value(self, name: str) -> str:
        """Return the first value of a query parameter, or an empty string."""
        values = self.query.get(name)
        return values[0] if values else ""


@dataclass
class HttpResponse:
    """Represents an HTTP response to be written to a client."""

    status: int
    headers: dict[str, str]
    body: bytes = b""
    body_iter: Optional[Iterable[bytes]] = None


class ResponseSink(Protocol):
    """Anything a handler can write a response through."""

    headers: dict[str, str]

    def write_header(self, status: int) -> None: ...

    def write(self, data: bytes) -> int: ...


Handler = Callable[[HttpRequest, ResponseSink], None]


def status_line(status: int) -> str:
    """Render the HTTP/1.1 status line for a numeric code."""
    try:
        phrase = HTTPStatus(status).phrase
    except ValueError:
        phrase = ""
    return f"HTTP/1.1 {status} {phrase}".rstrip()


def should_close(headers: dict[str, str]) -> bool:
    """Determine whether the connection should be closed after responding."""
    return headers.get("connection", "").lower() == "close"


def format_remote_addr(client_address: tuple) -> str:
    """Render a socket peer address the way a ``host:port`` string reads."""
    host, port = client_address[0], client_address[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
