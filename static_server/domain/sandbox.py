"""Filesystem sandbox utilities for safe path resolution."""

from pathlib import Path


class ForbiddenPath(Exception):
    """Raised when a requested path escapes the served directory."""


def resolve_sandbox_path(directory: str, url_path: str) -> Path:
    """Map a URL path onto the served directory, refusing anything outside it.

    An empty or ``/`` path maps to the directory itself. ``..`` segments, NUL
    bytes and symlinks that lead outside the root raise :class:`ForbiddenPath`.
    """
    if "\x00" in url_path:
        raise ForbiddenPath

    directory_root = Path(directory).resolve()
    relative_part = url_path.lstrip("/")
    if not relative_part:
        return directory_root

    if ".." in Path(relative_part).parts:
        raise ForbiddenPath

    target = (directory_root / relative_part).resolve()
    if not (target == directory_root or directory_root in target.parents):
        raise ForbiddenPath

    return target
