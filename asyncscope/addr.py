"""Addresses on which the instrumentation server listens."""

from __future__ import annotations

import ipaddress
import os
import socket
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Union

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_IP = ipaddress.IPv4Address("127.0.0.1")
DEFAULT_PORT = 6669

_UNIX_SOCKETS = hasattr(socket, "AF_UNIX")


def _check_port(port: Any) -> int:
    if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 0xFFFF:
        raise ValueError(f"invalid port: {port!r}")
    return port


@dataclass(frozen=True)
class TcpAddr:
    """A TCP socket address."""

    ip: IpAddress
    port: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip", ipaddress.ip_address(self.ip))
        _check_port(self.port)

    def __str__(self) -> str:
        if self.ip.version == 6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


@dataclass(frozen=True)
class UnixAddr:
    """A Unix domain socket path."""

    path: PurePath


def server_addr_from(value: Any) -> TcpAddr | UnixAddr:
    """Turn an address, an ``(ip, port)`` pair or a path into a server address."""
    if isinstance(value, (TcpAddr, UnixAddr)):
        return value
    if isinstance(value, tuple) and len(value) == 2:
        ip, port = value
        return TcpAddr(ipaddress.ip_address(ip), _check_port(port))
    if isinstance(value, (PurePath, os.PathLike)) and not isinstance(value, str):
        if not _UNIX_SOCKETS:
            raise TypeError("Unix domain sockets are not supported on this platform")
        return UnixAddr(PurePath(os.fspath(value)))
    raise TypeError(f"cannot use {value!r} as a server address")


def resolve_bind(text: str) -> TcpAddr:
    """Resolve a ``HOST:PORT`` description to the first matching TCP address."""
    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        raise ValueError(
            f"bind address must be formatted as HOST:PORT, such as localhost:4321: {text!r}"
        )
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = _check_port(int(port_text))
    except ValueError as exc:
        raise ValueError(f"invalid port in bind address {text!r}") from exc

    try:
        return TcpAddr(ipaddress.ip_address(host), port)
    except ValueError:
        pass

    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except OSError as exc:
        raise ValueError(f"could not resolve bind address {text!r}: {exc}") from exc
    for family, _, _, _, sockaddr in infos:
        if family in (socket.AF_INET, socket.AF_INET6):
            address = str(sockaddr[0]).split("%", 1)[0]
            return TcpAddr(ipaddress.ip_address(address), port)
    raise ValueError(f"could not resolve bind address {text!r}")