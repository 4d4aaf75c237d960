"""Configuration of the instrumentation layer and its server."""

from __future__ import annotations

import datetime as _dt
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from dataclasses import field as dc_field
from pathlib import Path
from typing import Any

from asyncscope.addr import DEFAULT_IP, DEFAULT_PORT, TcpAddr, UnixAddr, resolve_bind, server_addr_from
from asyncscope.envconfig import duration_from_env, usize_from_env

DEFAULT_EVENT_BUFFER_CAPACITY = 1024 * 100
DEFAULT_CLIENT_BUFFER_CAPACITY = 1024 * 4
DEFAULT_PUBLISH_INTERVAL = 1.0
DEFAULT_RETENTION = 60.0 * 60.0
DEFAULT_POLL_DURATION_MAX = 1.0
DEFAULT_SCHEDULED_DURATION_MAX = 1.0
DEFAULT_FILTER_ENV_VAR = "RUST_LOG"


def _seconds(value: Any) -> float:
    if isinstance(value, _dt.timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        raise TypeError(f"expected a duration, got {value!r}")
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {value!r}")
    return seconds


def _capacity(value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"capacity must be a non-negative integer: {value!r}")
    return value


def _default_addr() -> TcpAddr:
    return TcpAddr(DEFAULT_IP, DEFAULT_PORT)


@dataclass(frozen=True)
class Builder:
    """Settings for the instrumentation layer; durations are in seconds.

    Each ``with_*`` method returns a new builder and leaves this one unchanged.
    """

    event_buffer_capacity: int = DEFAULT_EVENT_BUFFER_CAPACITY
    client_buffer_capacity: int = DEFAULT_CLIENT_BUFFER_CAPACITY
    publish_interval: float = DEFAULT_PUBLISH_INTERVAL
    retention: float = DEFAULT_RETENTION
    server_addr: TcpAddr | UnixAddr = dc_field(default_factory=_default_addr)
    recording_path: Path | None = None
    filter_env_var: str = DEFAULT_FILTER_ENV_VAR
    self_trace: bool = False
    poll_duration_max: float = DEFAULT_POLL_DURATION_MAX
    scheduled_duration_max: float = DEFAULT_SCHEDULED_DURATION_MAX

    def with_event_buffer_capacity(self, capacity: int) -> Builder:
        """Set the capacity of the event channel; events beyond it are dropped."""
        return replace(self, event_buffer_capacity=_capacity(capacity))

    def with_client_buffer_capacity(self, capacity: int) -> Builder:
        """Set how many updates are buffered per client before it is dropped."""
        return replace(self, client_buffer_capacity=_capacity(capacity))

    def with_publish_interval(self, interval: Any) -> Builder:
        return replace(self, publish_interval=_seconds(interval))

    def with_retention(self, retention: Any) -> Builder:
        """Set how long data for completed tasks is kept."""
        return replace(self, retention=_seconds(retention))

    def with_server_addr(self, addr: Any) -> Builder:
        """Set the TCP address, ``(ip, port)`` pair or socket path to serve on."""
        return replace(self, server_addr=server_addr_from(addr))

    def with_recording_path(self, path: Any) -> Builder:
        return replace(self, recording_path=Path(path))

    def with_filter_env_var(self, name: str) -> Builder:
        """Set the environment variable holding the log filter."""
        return replace(self, filter_env_var=str(name))

    def with_poll_duration_histogram_max(self, value: Any) -> Builder:
        return replace(self, poll_duration_max=_seconds(value))

    def with_scheduled_duration_histogram_max(self, value: Any) -> Builder:
        return replace(self, scheduled_duration_max=_seconds(value))

    def with_self_trace(self, enabled: bool) -> Builder:
        """Set whether activity of the instrumentation thread itself is recorded."""
        return replace(self, self_trace=bool(enabled))

    def with_default_env(self, environ: Mapping[str, str] | None = None) -> Builder:
        """Apply the standard ``TOKIO_CONSOLE_*`` environment variables.

        Raises ValueError when a variable is set but cannot be parsed.
        """
        env = os.environ if environ is None else environ
        builder = self

        retention = duration_from_env("TOKIO_CONSOLE_RETENTION", env)
        if retention is not None:
            builder = replace(builder, retention=retention)

        bind = env.get("TOKIO_CONSOLE_BIND")
        if bind is not None:
            builder = replace(builder, server_addr=resolve_bind(bind))

        interval = duration_from_env("TOKIO_CONSOLE_PUBLISH_INTERVAL", env)
        if interval is not None:
            builder = replace(builder, publish_interval=interval)

        path = env.get("TOKIO_CONSOLE_RECORD_PATH")
        if path is not None:
            builder = replace(builder, recording_path=Path(path))

        capacity = usize_from_env("TOKIO_CONSOLE_BUFFER_CAPACITY", env)
        if capacity is not None:
            builder = replace(builder, event_buffer_capacity=capacity)

        return builder