"""Page-view counter endpoint."""

import logging
from http import HTTPStatus

from static_server.bootstrap.config import SECURITY_HEADERS
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.http_types import HttpRequest, ResponseSink
from static_server.domain.response_builders import error_response, json_response
from static_server.pipeline.io import write_response
from static_server.storage.counter import CounterBackendError, CounterClient

COUNTER_HANDLER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.handlers.counter"), {}
)


def handle_count(
    request: HttpRequest, sink: ResponseSink, counter: CounterClient
) -> None:
    """Increment ``page`` and reply with ``{"page": ..., "count": ...}``."""
    page = request.query_value("page")
    if not page:
        write_response(
            sink,
            error_response(
                HTTPStatus.BAD_REQUEST, "Page parameter is missing", SECURITY_HEADERS
            ),
        )
        return

    try:
        count = counter.increment(page)
    except CounterBackendError:
        write_response(
            sink,
            error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR, "Database error", SECURITY_HEADERS
            ),
        )
        return

    if COUNTER_HANDLER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        COUNTER_HANDLER_LOGGER.debug(
            "Page counter incremented",
            extra={"event": "page_counted", "page": page},
        )
    write_response(sink, json_response({"page": page, "count": count}, SECURITY_HEADERS))
