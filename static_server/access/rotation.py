"""Daily rotation of the access log file.

The active file (``server.log``) is renamed into a fixed ring of indexed
files, ``server1.log`` through ``server10.log``, at most once per UTC
day. The ring is addressed by index: once all slots are used the next
rotation overwrites the slot after the last one written, whatever its age.

Rotation renames the active file and then creates a new one. The two steps
are not atomic; if the process dies between them no active file exists until
the next start. Callers treat a failed rotation as fatal.
"""

import datetime
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional, TextIO

from static_server.access.formatters import PlainAccessFormatter
from static_server.bootstrap.config import ACCESS_LOG_NAME, MAX_LOG_FILES
from static_server.domain.correlation_id import CorrelationLoggerAdapter

ROTATION_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.access.rotation"), {}
)


def utc_today() -> datetime.date:
    """Current date with days cut at the UTC midnight boundary."""
    return datetime.datetime.now(datetime.timezone.utc).date()


class LogRotationError(OSError):
    """Raised when the active log file cannot be archived or recreated."""


class LogRotator:
    """Owns the active access log file, its rotation counter and last rotation date."""

    def __init__(
        self,
        directory: str = ".",
        file_name: str = ACCESS_LOG_NAME,
        max_files: int = MAX_LOG_FILES,
        today_provider: Optional[Callable[[], datetime.date]] = None,
    ) -> None:
        self._directory = Path(directory)
        self._active_path = self._directory / file_name
        self._stem, self._suffix = os.path.splitext(file_name)
        self._max_files = max_files
        self._today = today_provider or utc_today
        self._lock = threading.Lock()
        self._rotation_counter = 0
        self._last_rotation_date = self._today()
        self._handler = logging.StreamHandler(self._open_active())
        self._handler.setFormatter(PlainAccessFormatter())

    @property
    def active_path(self) -> Path:
        return self._active_path

    @property
    def rotation_counter(self) -> int:
        return self._rotation_counter

    @property
    def last_rotation_date(self) -> datetime.date:
        return self._last_rotation_date

    def rotated_path(self, index: int) -> Path:
        return self._directory / f"{self._stem}{index}{self._suffix}"

    def _open_active(self) -> TextIO:
        return open(self._active_path, "a", encoding="utf-8")

    def check_and_rotate(self) -> bool:
        """Rotate if the calendar day moved past the last rotation date.

        Returns True when a rotation happened. Concurrent callers serialize
        on the rotator lock, so a day change rotates exactly once.
        """
        with self._lock:
            today = self._today()
            if today <= self._last_rotation_date:
                return False
            self._rotate(today)
            return True

    def _rotate(self, today: datetime.date) -> None:
        index = (self._rotation_counter % self._max_files) + 1
        target = self.rotated_path(index)
        try:
            os.replace(self._active_path, target)
            stream = self._open_active()
        except OSError as error:
            raise LogRotationError(
                f"cannot rotate {self._active_path} to {target}: {error}"
            ) from error

        previous = self._handler.setStream(stream)
        if previous is not None:
            previous.close()
        self._rotation_counter = index
        self._last_rotation_date = today
        ROTATION_LOGGER.info(
            "Access log rotated",
            extra={
                "event": "log_rotated",
                "rotation_index": index,
                "rotated_to": target.as_posix(),
            },
        )

    def handle(self, record: logging.LogRecord) -> None:
        """Append a record to the active file."""
        self._handler.handle(record)

    def close(self) -> None:
        self._handler.close()
        stream = self._handler.stream
        if stream is not None and not stream.closed:
            stream.close()
