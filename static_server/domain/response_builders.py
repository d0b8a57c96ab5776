"""Pure HTTP response builders."""

import json
from http import HTTPStatus
from typing import Any

from static_server.domain.http_types import HttpResponse


def error_response(
    status: int, message: str, security_headers: dict[str, str]
) -> HttpResponse:
    """Plain-text error body terminated by a newline."""
    headers = {
        "Content-Type": "text/plain; charset=utf-8",
        **security_headers,
    }
    return HttpResponse(status, headers, f"{message}\n".encode())


def json_response(
    payload: dict[str, Any], security_headers: dict[str, str]
) -> HttpResponse:
    """Serialize ``payload`` as a newline-terminated JSON document."""
    body = (json.dumps(payload) + "\n").encode()
    headers = {"Content-Type": "application/json", **security_headers}
    return HttpResponse(HTTPStatus.OK, headers, body)


def bad_request_response(
    security_headers: dict[str, str], message: str = "400 Bad Request"
) -> HttpResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message, security_headers)


def forbidden_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(HTTPStatus.FORBIDDEN, "403 Forbidden", security_headers)


def not_found_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(HTTPStatus.NOT_FOUND, "404 page not found", security_headers)


def method_not_allowed_response(
    security_headers: dict[str, str], allowed_methods
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    response = error_response(
        HTTPStatus.METHOD_NOT_ALLOWED, "405 method not allowed", security_headers
    )
    response.headers["Allow"] = ", ".join(allowed_methods)
    return response


def redirect_response(location: str, security_headers: dict[str, str]) -> HttpResponse:
    """301 pointing the client at the canonical location."""
    headers = {"Location": location, **security_headers}
    return HttpResponse(HTTPStatus.MOVED_PERMANENTLY, headers, b"")


def entity_too_large_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(
        HTTPStatus.REQUEST_ENTITY_TOO_LARGE, "413 Payload Too Large", security_headers
    )


def internal_error_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(
        HTTPStatus.INTERNAL_SERVER_ERROR, "500 Internal Server Error", security_headers
    )


def draining_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 503 response indicating the server is draining."""
    response = error_response(
        HTTPStatus.SERVICE_UNAVAILABLE, "draining", security_headers
    )
    response.headers["Connection"] = "close"
    return response
