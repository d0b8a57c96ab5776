"""Request routing logic."""

import functools
import logging

from static_server.access.middleware import RequestLogger
from static_server.bootstrap.config import COUNT_ENDPOINT
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.http_types import Handler, HttpRequest, ResponseSink
from static_server.handlers.counter_handler import handle_count
from static_server.handlers.file_handler import serve_static
from static_server.storage.counter import CounterClient

ROUTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.pipeline.router"), {}
)


class Dispatcher:
    """Routes ``/count`` to the counter and everything else to static files.

    Only the static route is wrapped by the request logger.
    """

    def __init__(
        self,
        counter: CounterClient,
        request_logger: RequestLogger,
        directory: str = ".",
    ) -> None:
        self._routes: dict[str, Handler] = {
            COUNT_ENDPOINT: functools.partial(handle_count, counter=counter),
        }
        self._fallback = request_logger.wrap(
            functools.partial(serve_static, directory=directory)
        )

    def __call__(self, request: HttpRequest, sink: ResponseSink) -> None:
        handler = self._routes.get(request.path)
        if handler is None:
            handler = self._fallback
        elif ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            ROUTER_LOGGER.debug(
                "Route matched",
                extra={"event": "route_matched", "route": request.path},
            )
        handler(request, sink)
