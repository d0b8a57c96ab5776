"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import datetime
import io
import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import fakeredis
import pytest

from static_server.access.middleware import RequestLogger
from static_server.access.rotation import LogRotationError, utc_today
from static_server.app import build_dispatcher
from static_server.bootstrap.config import ServerConfig
from static_server.lifecycle.state import ServerLifecycle
from static_server.storage.counter import CounterClient
from static_server.transport.accept_loop import run_server
from tests.utils.http import reserve_port, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"


class ManualCalendar:
    """Date source the tests can move forward."""

    def __init__(self) -> None:
        self.today = utc_today()

    def __call__(self) -> datetime.date:
        return self.today

    def advance(self, days: int = 1) -> None:
        self.today += datetime.timedelta(days=days)


class RunningServerInfo(TypedDict):
    """An in-process server bound to a reserved port."""

    base_url: str
    host: str
    port: int
    directory: Path
    access_log: Path
    console: io.StringIO
    redis: fakeredis.FakeRedis
    request_logger: RequestLogger
    rotation_failures: list[LogRotationError]
    calendar: ManualCalendar


class ServerProcessInfo(TypedDict):
    """Metadata describing a server started as a subprocess of main.py."""

    base_url: str
    host: str
    port: int
    directory: Path
    process: subprocess.Popen[str]


@pytest.fixture(name="running_server")
def _running_server(
    tmp_path_factory: "TempPathFactory",
) -> Generator[RunningServerInfo, None, None]:
    """Run the accept loop on a background thread with an in-memory Redis."""

    host = "127.0.0.1"
    port = reserve_port(host)
    directory = tmp_path_factory.mktemp("site")
    config = ServerConfig(
        host=host,
        port=port,
        directory=str(directory),
        log_directory=str(directory),
        socket_timeout=5,
        shutdown_grace_seconds=2,
    )
    fake_redis = fakeredis.FakeRedis(server=fakeredis.FakeServer())
    console = io.StringIO()
    failures: list[LogRotationError] = []
    calendar = ManualCalendar()
    dispatcher, request_logger = build_dispatcher(
        config,
        CounterClient(fake_redis),
        console_stream=console,
        on_rotation_failure=failures.append,
        today_provider=calendar,
    )
    lifecycle = ServerLifecycle()
    thread = threading.Thread(
        target=run_server, args=(config, lifecycle, dispatcher), daemon=True
    )
    thread.start()
    wait_for_port(host, port)

    yield {
        "base_url": f"http://{host}:{port}",
        "host": host,
        "port": port,
        "directory": directory,
        "access_log": directory / "server.log",
        "console": console,
        "redis": fake_redis,
        "request_logger": request_logger,
        "rotation_failures": failures,
        "calendar": calendar,
    }

    lifecycle.begin_draining()
    thread.join(timeout=5)
    request_logger.close()


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch main.py in a scratch working directory with no reachable Redis."""

    host = "127.0.0.1"
    port = reserve_port(host)
    directory = tmp_path_factory.mktemp("server-cwd")
    env = {
        **os.environ,
        "STATIC_SERVER_HOST": host,
        "STATIC_SERVER_REDIS_URL": f"redis://{host}:{reserve_port(host)}/0",
        "STATIC_SERVER_SHUTDOWN_GRACE_SECONDS": "2",
    }

    with subprocess.Popen(
        [sys.executable, str(SERVER_ENTRYPOINT), "-p", str(port)],
        cwd=directory,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            process.terminate()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            raise

        yield {
            "base_url": f"http://{host}:{port}",
            "host": host,
            "port": port,
            "directory": directory,
            "process": process,
        }

        if process.poll() is None:
            process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
