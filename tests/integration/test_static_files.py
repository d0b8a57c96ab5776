"""Integration tests for serving files from the working directory."""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING

import pytest
import requests

from tests.utils.http import read_http_response

pytestmark = pytest.mark.integration

if TYPE_CHECKING:
    from tests.conftest import RunningServerInfo


def test_file_bytes_are_served_exactly(running_server: "RunningServerInfo") -> None:
    """A file's bytes come back unchanged with its length."""
    payload = bytes(range(256)) * 400
    (running_server["directory"] / "blob.bin").write_bytes(payload)

    response = requests.get(f"{running_server['base_url']}/blob.bin", timeout=5)

    assert response.status_code == 200
    assert response.content == payload
    assert response.headers["Content-Length"] == str(len(payload))


def test_nested_file_and_mime_type(running_server: "RunningServerInfo") -> None:
    """Files in subdirectories resolve and carry a content type."""
    nested = running_server["directory"] / "css"
    nested.mkdir()
    (nested / "site.css").write_text("body{}\n")

    response = requests.get(f"{running_server['base_url']}/css/site.css", timeout=5)

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "text/css"
    assert response.text == "body{}\n"


def test_missing_file_is_404(running_server: "RunningServerInfo") -> None:
    """Unknown paths are reported as not found."""
    response = requests.get(f"{running_server['base_url']}/does-not-exist", timeout=5)

    assert response.status_code == 404
    assert response.text == "404 page not found\n"


def test_directory_redirect_and_index(running_server: "RunningServerInfo") -> None:
    """Directories redirect to a slash form and serve index.html."""
    docs = running_server["directory"] / "docs"
    docs.mkdir()
    (docs / "index.html").write_text("<p>docs</p>\n")

    redirect = requests.get(
        f"{running_server['base_url']}/docs", allow_redirects=False, timeout=5
    )
    page = requests.get(f"{running_server['base_url']}/docs/", timeout=5)

    assert redirect.status_code == 301
    assert redirect.headers["Location"] == "/docs/"
    assert page.text == "<p>docs</p>\n"


def test_root_lists_directory(running_server: "RunningServerInfo") -> None:
    """Without an index the root shows a listing."""
    (running_server["directory"] / "listed.txt").write_text("x")

    response = requests.get(f"{running_server['base_url']}/", timeout=5)

    assert response.status_code == 200
    assert '<a href="listed.txt">listed.txt</a>' in response.text


def test_traversal_is_forbidden(running_server: "RunningServerInfo") -> None:
    """Raw dot-dot paths cannot escape the served directory."""
    with socket.create_connection(
        (running_server["host"], running_server["port"]), timeout=5
    ) as sock:
        sock.sendall(b"GET /../../etc/passwd HTTP/1.1\r\nHost: localhost\r\n\r\n")
        response = read_http_response(sock)

    assert response.status == 403


def test_post_is_not_allowed(running_server: "RunningServerInfo") -> None:
    """Only GET and HEAD reach files."""
    (running_server["directory"] / "form.txt").write_text("x")

    response = requests.post(
        f"{running_server['base_url']}/form.txt", data=b"hello", timeout=5
    )

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET, HEAD"


def test_head_request(running_server: "RunningServerInfo") -> None:
    """HEAD returns the length without the body."""
    (running_server["directory"] / "head.txt").write_bytes(b"0123456789")

    response = requests.head(f"{running_server['base_url']}/head.txt", timeout=5)

    assert response.status_code == 200
    assert response.headers["Content-Length"] == "10"
    assert response.content == b""


def test_keep_alive_serves_sequential_requests(running_server: "RunningServerInfo") -> None:
    """Several requests on one connection are answered in order."""
    (running_server["directory"] / "a.txt").write_text("alpha")
    (running_server["directory"] / "b.txt").write_text("beta")

    with socket.create_connection(
        (running_server["host"], running_server["port"]), timeout=5
    ) as sock:
        sock.sendall(b"GET /a.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")
        first = read_http_response(sock)
        sock.sendall(b"GET /b.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")
        second = read_http_response(sock)

    assert first.body == b"alpha"
    assert second.body == b"beta"

