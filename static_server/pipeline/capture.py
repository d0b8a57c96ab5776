"""Response wrapper that records what a handler sent."""

from http import HTTPStatus


class ResponseCapture:
    """Wraps a response sink, remembering the status and counting body bytes.

    The first ``write_header`` wins; any later call is dropped without
    reaching the wrapped sink. ``write`` sends a default 200 header first if
    the handler never chose a status.
    """

    def __init__(self, sink) -> None:
        self._sink = sink
        self.status = int(HTTPStatus.OK)
        self.bytes_written = 0
        self.wrote_header = False

    @property
    def headers(self) -> dict[str, str]:
        return self._sink.headers

    def write_header(self, status: int) -> None:
        if self.wrote_header:
            return
        self._sink.write_header(status)
        self.status = int(status)
        self.wrote_header = True

    def write(self, data: bytes) -> int:
        if not self.wrote_header:
            self.write_header(HTTPStatus.OK)
        written = self._sink.write(data)
        self.bytes_written += written
        return written
