"""Request logging middleware."""

import logging
import os
import sys
import time
from typing import Callable, Optional, TextIO

from static_server.access.formatters import ColorAccessFormatter
from static_server.access.record import AccessRecord, extract_client_ip
from static_server.access.rotation import LogRotationError, LogRotator
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.http_types import Handler, HttpRequest, ResponseSink
from static_server.pipeline.capture import ResponseCapture

ACCESS_LOGGER_NAME = "static_server.access"
ACCESS_LOGGER = CorrelationLoggerAdapter(logging.getLogger(ACCESS_LOGGER_NAME), {})


def terminate_process(error: LogRotationError) -> None:
    """Log the rotation failure and end the whole process with status 1.

    Handlers run on worker threads, where ``sys.exit`` would only end the
    thread, so the process is stopped with ``os._exit``.
    """
    ACCESS_LOGGER.critical(
        "Error rotating log file",
        extra={
            "event": "log_rotation_failed",
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )
    logging.shutdown()
    os._exit(1)


class RequestLogger:
    """Wraps handlers so every request is written to the console and file sinks.

    Built once at startup and shared by all worker threads. The file sink and
    its rotation state live in the :class:`LogRotator`; this object adds the
    console sink, timing and response capture.

    A failed rotation is fatal: ``on_rotation_failure`` defaults to
    :func:`terminate_process`.
    """

    def __init__(
        self,
        rotator: LogRotator,
        console_stream: Optional[TextIO] = None,
        on_rotation_failure: Optional[Callable[[LogRotationError], None]] = None,
    ) -> None:
        self._rotator = rotator
        self._console = logging.StreamHandler(console_stream or sys.stdout)
        self._console.setFormatter(ColorAccessFormatter())
        self._on_rotation_failure = on_rotation_failure or terminate_process

    @property
    def rotator(self) -> LogRotator:
        return self._rotator

    def check_rotation(self) -> None:
        try:
            self._rotator.check_and_rotate()
        except LogRotationError as error:
            self._on_rotation_failure(error)

    def wrap(self, handler: Handler) -> Handler:
        """Return a handler that rotates if needed, runs ``handler`` and logs it."""

        def logged_handler(request: HttpRequest, sink: ResponseSink) -> None:
            self.check_rotation()
            started = time.perf_counter()
            capture = ResponseCapture(sink)
            try:
                handler(request, capture)
            finally:
                # A dropped client still gets its line, with the bytes sent so far.
                duration_ms = int((time.perf_counter() - started) * 1000)
                self.emit(
                    AccessRecord(
                        client_ip=extract_client_ip(request.remote_addr),
                        method=request.method,
                        path=request.path,
                        status=capture.status,
                        duration_ms=duration_ms,
                        bytes_written=capture.bytes_written,
                    )
                )

        return logged_handler

    def emit(self, access: AccessRecord) -> None:
        """Send one access record to both sinks."""
        record = logging.makeLogRecord(
            {
                "name": ACCESS_LOGGER_NAME,
                "levelno": logging.INFO,
                "levelname": "INFO",
                "msg": "request served",
                "access": access,
            }
        )
        self._console.handle(record)
        self._rotator.handle(record)

    def announce(self, message: str) -> None:
        """Write a free-form line to the console sink only."""
        record = logging.makeLogRecord(
            {
                "name": ACCESS_LOGGER_NAME,
                "levelno": logging.INFO,
                "levelname": "INFO",
                "msg": message,
            }
        )
        self._console.handle(record)

    def close(self) -> None:
        self._console.flush()
        self._console.close()
        self._rotator.close()
