"""Configuration read from environment variables, and the console event filter."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from asyncscope.models import Metadata, MetadataKind

_NANOS_PER_SECOND = 1_000_000_000

_UNIT_NANOS = {
    "nsec": 1,
    "ns": 1,
    "usec": 1_000,
    "us": 1_000,
    "µs": 1_000,
    "msec": 1_000_000,
    "ms": 1_000_000,
    "seconds": _NANOS_PER_SECOND,
    "second": _NANOS_PER_SECOND,
    "sec": _NANOS_PER_SECOND,
    "s": _NANOS_PER_SECOND,
    "minutes": 60 * _NANOS_PER_SECOND,
    "minute": 60 * _NANOS_PER_SECOND,
    "min": 60 * _NANOS_PER_SECOND,
    "mins": 60 * _NANOS_PER_SECOND,
    "m": 60 * _NANOS_PER_SECOND,
    "hours": 3_600 * _NANOS_PER_SECOND,
    "hour": 3_600 * _NANOS_PER_SECOND,
    "hr": 3_600 * _NANOS_PER_SECOND,
    "hrs": 3_600 * _NANOS_PER_SECOND,
    "h": 3_600 * _NANOS_PER_SECOND,
    "days": 86_400 * _NANOS_PER_SECOND,
    "day": 86_400 * _NANOS_PER_SECOND,
    "d": 86_400 * _NANOS_PER_SECOND,
    "weeks": 604_800 * _NANOS_PER_SECOND,
    "week": 604_800 * _NANOS_PER_SECOND,
    "w": 604_800 * _NANOS_PER_SECOND,
    "months": 2_630_016 * _NANOS_PER_SECOND,
    "month": 2_630_016 * _NANOS_PER_SECOND,
    "M": 2_630_016 * _NANOS_PER_SECOND,
    "years": 31_557_600 * _NANOS_PER_SECOND,
    "year": 31_557_600 * _NANOS_PER_SECOND,
    "y": 31_557_600 * _NANOS_PER_SECOND,
}

_SEGMENT = re.compile(r"\s*(\d+)\s*([A-Za-zµ]+)\s*")


def parse_duration(text: str) -> float:
    """Parse a human-readable duration such as ``"1h 30m"`` or ``"100ms"``.

    Returns the duration in seconds. Every number needs a unit.
    """
    if not text or not text.strip():
        raise ValueError("empty duration")
    total = 0
    pos = 0
    while pos < len(text):
        match = _SEGMENT.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r} at position {pos}")
        number, unit = match.groups()
        try:
            scale = _UNIT_NANOS[unit]
        except KeyError:
            raise ValueError(f"unknown time unit {unit!r} in {text!r}") from None
        total += int(number) * scale
        pos = match.end()
    return total / _NANOS_PER_SECOND


def _environ(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def duration_from_env(name: str, environ: Mapping[str, str] | None = None) -> float | None:
    """Read a duration in seconds from an environment variable, if it is set."""
    value = _environ(environ).get(name)
    if value is None:
        return None
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ValueError(f"failed to parse a duration from `{name}={value!r}`: {exc}") from exc


def usize_from_env(name: str, environ: Mapping[str, str] | None = None) -> int | None:
    """Read a non-negative integer from an environment variable, if it is set."""
    value = _environ(environ).get(name)
    if value is None:
        return None
    if not re.fullmatch(r"\+?\d+", value):
        raise ValueError(f"failed to parse a usize from `{name}={value!r}`")
    return int(value)


def console_filter(metadata: Metadata) -> bool:
    """Return True for spans and events the console needs to see."""
    if metadata.kind is MetadataKind.EVENT:
        return metadata.target.startswith("runtime") or metadata.target.startswith("tokio")
    # Spans are recognised by name; the `tokio` target covers older runtimes.
    return metadata.name.startswith("runtime.") or metadata.target.startswith("tokio")