"""Request validation applied before routing."""

from typing import Optional

from static_server.domain.http_types import HttpRequest, HttpResponse
from static_server.domain.response_builders import bad_request_response


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds configured limits."""


def enforce_safe_path(
    request: HttpRequest, security_headers: dict[str, str]
) -> Optional[HttpResponse]:
    """Reject request targets that are not absolute paths.

    ``..`` segments are left to the file handler, which answers them with
    403 inside the request logger.
    """
    if not request.path.startswith("/") or "\x00" in request.path:
        return bad_request_response(security_headers)
    return None


def validate_request(
    request: HttpRequest, security_headers: dict[str, str]
) -> Optional[HttpResponse]:
    """Return an error response when the request fails validation checks."""
    return enforce_safe_path(request, security_headers)
