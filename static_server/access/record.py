"""The per-request access record and client address parsing."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AccessRecord:
    """One served request, rendered to the console and file sinks."""

    client_ip: str
    method: str
    path: str
    status: int
    duration_ms: int
    bytes_written: int


def split_host_port(remote_addr: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port``; raise ValueError otherwise."""
    host, separator, port = remote_addr.rpartition(":")
    if not separator:
        raise ValueError(f"missing port in address {remote_addr!r}")
    if host.startswith("["):
        if not host.endswith("]"):
            raise ValueError(f"missing ']' in address {remote_addr!r}")
        host = host[1:-1]
    elif ":" in host or "]" in host:
        raise ValueError(f"too many colons in address {remote_addr!r}")
    elif "[" in port or "]" in port:
        raise ValueError(f"unexpected bracket in address {remote_addr!r}")
    return host, port


def extract_client_ip(remote_addr: str) -> str:
    """Return the host part of the peer address, or the raw value if unparsable."""
    try:
        host, _ = split_host_port(remote_addr)
    except ValueError:
        return remote_addr
    return host
