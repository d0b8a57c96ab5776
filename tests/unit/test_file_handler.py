"""Unit tests for static file resolution."""

from pathlib import Path

import pytest

from static_server.domain.http_types import HttpRequest
from static_server.handlers.file_handler import static_response, stream_file


@pytest.fixture(name="site")
def site_fixture(tmp_path: Path) -> Path:
    (tmp_path / "hello.txt").write_bytes(b"hello, world\n")
    (tmp_path / "style.css").write_text("body { color: red; }\n")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "index.html").write_text("<h1>docs</h1>\n")
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "logo.bin").write_bytes(bytes(range(256)) * 10)
    (tmp_path / "assets" / "a & b.txt").write_text("amp\n")
    return tmp_path


def _get(site: Path, path: str, method: str = "GET"):
    return static_response(HttpRequest(method, path, {}), str(site))


def _body(response) -> bytes:
    if response.body_iter is not None:
        return b"".join(response.body_iter)
    return response.body


def test_serves_file_bytes_with_length(site):
    """Regular files stream their exact contents."""
    response = _get(site, "/hello.txt")

    assert response.status == 200
    assert _body(response) == b"hello, world\n"
    assert response.headers["Content-Length"] == "13"
    assert response.headers["Content-Type"] == "text/plain"
    assert "Last-Modified" in response.headers


def test_binary_file_round_trips(site):
    """Large binary files are streamed in chunks without alteration."""
    response = _get(site, "/assets/logo.bin")

    assert _body(response) == bytes(range(256)) * 10
    assert response.headers["Content-Type"] == "application/octet-stream"


def test_content_type_from_extension(site):
    """Known extensions get their MIME type."""
    assert _get(site, "/style.css").headers["Content-Type"] == "text/css"


def test_missing_file_is_404(site):
    """Paths that do not exist are 404 with a plain-text body."""
    response = _get(site, "/nope.txt")

    assert response.status == 404
    assert response.body == b"404 page not found\n"


def test_parent_traversal_is_forbidden(site):
    """Paths climbing out of the directory are refused."""
    response = _get(site, "/../secret.txt")

    assert response.status == 403


def test_symlink_escape_is_forbidden(site, tmp_path_factory):
    """Symlinks pointing outside the served tree are refused."""
    outside = tmp_path_factory.mktemp("outside") / "secret.txt"
    outside.write_text("secret\n")
    (site / "link.txt").symlink_to(outside)

    assert _get(site, "/link.txt").status == 403


def test_directory_without_slash_redirects(site):
    """Directories are canonicalised with a trailing slash."""
    response = _get(site, "/docs")

    assert response.status == 301
    assert response.headers["Location"] == "/docs/"


def test_directory_serves_index_document(site):
    """A directory containing index.html serves it."""
    response = _get(site, "/docs/")

    assert response.status == 200
    assert _body(response) == b"<h1>docs</h1>\n"
    assert response.headers["Content-Type"] == "text/html"


def test_explicit_index_document_redirects(site):
    """Requests naming index.html are redirected to the directory."""
    response = _get(site, "/docs/index.html")

    assert response.status == 301
    assert response.headers["Location"] == "/docs/"


def test_directory_listing(site):
    """Directories without an index get an HTML listing."""
    response = _get(site, "/assets/")

    assert response.status == 200
    assert response.headers["Content-Type"] == "text/html; charset=utf-8"
    body = response.body.decode()
    assert body.startswith("<pre>\n")
    assert '<a href="logo.bin">logo.bin</a>' in body
    assert '<a href="a%20%26%20b.txt">a &amp; b.txt</a>' in body


def test_root_listing_marks_directories(site):
    """The served root lists subdirectories with a trailing slash."""
    body = _get(site, "/").body.decode()

    assert '<a href="docs/">docs/</a>' in body
    assert '<a href="hello.txt">hello.txt</a>' in body


def test_head_omits_body_but_keeps_length(site):
    """HEAD returns file headers without a body."""
    response = _get(site, "/hello.txt", method="HEAD")

    assert response.status == 200
    assert response.body_iter is None
    assert response.body == b""
    assert response.headers["Content-Length"] == "13"


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
def test_other_methods_not_allowed(site, method):
    """Only GET and HEAD are served."""
    response = _get(site, "/hello.txt", method=method)

    assert response.status == 405
    assert response.headers["Allow"] == "GET, HEAD"


def test_stream_file_closes_handle(site):
    """The generator closes the file once exhausted."""
    handle = open(site / "hello.txt", "rb")

    chunks = list(stream_file(handle, chunk_size=4))

    assert b"".join(chunks) == b"hello, world\n"
    assert chunks[0] == b"hell"
    assert handle.closed
