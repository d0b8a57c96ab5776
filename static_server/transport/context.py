"""Context object shared across worker threads."""

from dataclasses import dataclass
from typing import Optional

from static_server.domain.http_types import Handler
from static_server.lifecycle.state import ServerLifecycle


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    dispatcher: Handler
    lifecycle: Optional[ServerLifecycle] = None
    socket_timeout: Optional[float] = None
