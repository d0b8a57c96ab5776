"""Formatters rendering access records for the console and the log file."""

import logging

from static_server.access.record import AccessRecord

COLOR_RED = "\033[31m"
COLOR_GREEN = "\033[32m"
COLOR_YELLOW = "\033[33m"
COLOR_BLUE = "\033[34m"
COLOR_MAGENTA = "\033[35m"
COLOR_CYAN = "\033[36m"
COLOR_RESET = "\033[0m"

METHOD_COLORS = {
    "GET": COLOR_BLUE,
    "POST": COLOR_GREEN,
    "PUT": COLOR_YELLOW,
    "DELETE": COLOR_RED,
}

ACCESS_FORMAT = "%(asctime)s %(message)s"
ACCESS_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{COLOR_RESET}"


def colored_method(method: str) -> str:
    """Uppercase the method and wrap it in its ANSI colour (magenta if unknown)."""
    method = method.upper()
    return colorize(method, METHOD_COLORS.get(method, COLOR_MAGENTA))


class AccessFormatter(logging.Formatter):
    """Prefix a timestamp to the rendering of ``record.access``.

    Records without an ``access`` attribute fall back to the plain
    ``timestamp message`` layout, which is how startup banners are printed.
    """

    def __init__(self) -> None:
        super().__init__(ACCESS_FORMAT, ACCESS_DATE_FORMAT)

    def render(self, access: AccessRecord) -> str:
        raise NotImplementedError

    def format(self, record: logging.LogRecord) -> str:
        access = getattr(record, "access", None)
        if access is None:
            return super().format(record)
        return f"{self.formatTime(record, self.datefmt)} {self.render(access)}"


class PlainAccessFormatter(AccessFormatter):
    """``ip [METHOD] path status ms bytes`` with no decoration."""

    def render(self, access: AccessRecord) -> str:
        return (
            f"{access.client_ip} [{access.method}] {access.path} "
            f"{access.status} {access.duration_ms} {access.bytes_written}"
        )


class ColorAccessFormatter(AccessFormatter):
    """Same fields as the plain line, with cyan IP, coloured method, yellow path."""

    def render(self, access: AccessRecord) -> str:
        return (
            f"{colorize(access.client_ip, COLOR_CYAN)} "
            f"[{colored_method(access.method)}] "
            f"{colorize(access.path, COLOR_YELLOW)} "
            f"{access.status} {access.duration_ms} {access.bytes_written}"
        )
