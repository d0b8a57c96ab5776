"""Static file serving rooted at the working directory."""

import email.utils
import html
import logging
import mimetypes
import urllib.parse
from http import HTTPStatus
from pathlib import Path
from typing import BinaryIO, Iterator

from static_server.bootstrap.config import SECURITY_HEADERS
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.http_types import HttpRequest, HttpResponse, ResponseSink
from static_server.domain.response_builders import (
    forbidden_response,
    internal_error_response,
    method_not_allowed_response,
    not_found_response,
    redirect_response,
)
from static_server.domain.sandbox import ForbiddenPath, resolve_sandbox_path
from static_server.pipeline.io import write_response

FILE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.handlers.file"), {}
)

INDEX_DOCUMENT = "index.html"
ALLOWED_METHODS = ("GET", "HEAD")
CHUNK_SIZE = 65536


def stream_file(file_handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield file contents in fixed-size chunks, closing the handle at the end."""
    with file_handle:
        while True:
            chunk = file_handle.read(chunk_size)
            if not chunk:
                break
            yield chunk


def _content_type_for_path(filepath: Path) -> str:
    mime_type, _ = mimetypes.guess_type(filepath.as_posix())
    return mime_type or "application/octet-stream"


def _file_response(request: HttpRequest, resolved_path: Path) -> HttpResponse:
    try:
        file_handle = open(resolved_path, "rb")
    except PermissionError:
        FILE_LOGGER.warning(
            "File not readable",
            extra={"event": "file_forbidden", "path": resolved_path.as_posix()},
        )
        return forbidden_response(SECURITY_HEADERS)
    except OSError as error:
        FILE_LOGGER.error(
            "File open failed",
            extra={
                "event": "file_open_failed",
                "path": resolved_path.as_posix(),
                "error_type": type(error).__name__,
            },
        )
        return internal_error_response(SECURITY_HEADERS)

    stat = resolved_path.stat()
    headers = {
        "Content-Type": _content_type_for_path(resolved_path),
        "Content-Length": str(stat.st_size),
        "Last-Modified": email.utils.formatdate(stat.st_mtime, usegmt=True),
        **SECURITY_HEADERS,
    }
    if request.method == "HEAD":
        file_handle.close()
        return HttpResponse(HTTPStatus.OK, headers)
    return HttpResponse(HTTPStatus.OK, headers, body_iter=stream_file(file_handle))


def _listing_response(request: HttpRequest, directory: Path) -> HttpResponse:
    """Render a minimal HTML index of the directory entries."""
    try:
        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
    except PermissionError:
        return forbidden_response(SECURITY_HEADERS)

    lines = ["<pre>"]
    for entry in entries:
        name = entry.name + ("/" if entry.is_dir() else "")
        href = urllib.parse.quote(name)
        lines.append(f'<a href="{href}">{html.escape(name)}</a>')
    lines.append("</pre>")
    body = ("\n".join(lines) + "\n").encode()
    headers = {"Content-Type": "text/html; charset=utf-8", **SECURITY_HEADERS}
    if request.method == "HEAD":
        headers["Content-Length"] = str(len(body))
        return HttpResponse(HTTPStatus.OK, headers)
    return HttpResponse(HTTPStatus.OK, headers, body)


def static_response(request: HttpRequest, directory: str) -> HttpResponse:
    """Resolve a request path under ``directory`` into a response."""
    if request.method not in ALLOWED_METHODS:
        return method_not_allowed_response(SECURITY_HEADERS, ALLOWED_METHODS)

    if request.path.endswith("/" + INDEX_DOCUMENT):
        return redirect_response(
            request.path[: -len(INDEX_DOCUMENT)], SECURITY_HEADERS
        )

    try:
        resolved_path = resolve_sandbox_path(directory, request.path)
    except ForbiddenPath:
        FILE_LOGGER.warning(
            "Forbidden path access blocked",
            extra={
                "event": "forbidden_path",
                "path": request.path,
                "method": request.method,
            },
        )
        return forbidden_response(SECURITY_HEADERS)

    if not resolved_path.exists():
        if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
            FILE_LOGGER.debug(
                "File not found",
                extra={"event": "file_not_found", "path": resolved_path.as_posix()},
            )
        return not_found_response(SECURITY_HEADERS)

    if resolved_path.is_dir():
        if not request.path.endswith("/"):
            return redirect_response(request.path + "/", SECURITY_HEADERS)
        index_path = resolved_path / INDEX_DOCUMENT
        if index_path.is_file():
            return _file_response(request, index_path)
        return _listing_response(request, resolved_path)

    return _file_response(request, resolved_path)


def serve_static(request: HttpRequest, sink: ResponseSink, directory: str) -> None:
    """Handler for the catch-all route."""
    write_response(sink, static_response(request, directory))
