"""Messages sent from the instrumentation server to its clients."""

from __future__ import annotations

import datetime as _dt
import enum
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass
from dataclasses import field as dc_field
from typing import Any

from asyncscope.models import Field, Id, Location, MetaId, RegisterMetadata


class TaskKind(enum.IntEnum):
    """The kind of a task."""

    SPAWN = 0


@dataclass
class Task:
    """Static data describing a spawned task."""

    id: Id
    kind: TaskKind = TaskKind.SPAWN
    metadata: MetaId | None = None
    parents: list[Id] = dc_field(default_factory=list)
    fields: list[Field] = dc_field(default_factory=list)
    location: Location | None = None


@dataclass
class Resource:
    """Static data describing a resource."""

    id: Id
    parent_resource_id: Id | None = None
    kind: str | int | None = None
    metadata: MetaId | None = None
    concrete_type: str = ""
    location: Location | None = None
    is_internal: bool = False


@dataclass
class AsyncOp:
    """Static data describing an async operation on a resource."""

    id: Id
    metadata: MetaId | None = None
    resource_id: Id | None = None
    source: str = ""
    parent_async_op_id: Id | None = None


@dataclass
class PollOp:
    """A poll of a resource made by an async operation inside a task."""

    metadata: MetaId | None = None
    resource_id: Id | None = None
    name: str = ""
    task_id: Id | None = None
    async_op_id: Id | None = None
    is_ready: bool = False


@dataclass
class TaskUpdate:
    """New tasks and task stats changed since the previous update."""

    new_tasks: list[Task] = dc_field(default_factory=list)
    stats_update: dict[int, Any] = dc_field(default_factory=dict)
    dropped_events: int = 0


@dataclass
class ResourceUpdate:
    """New resources, resource stats and poll ops since the previous update."""

    new_resources: list[Resource] = dc_field(default_factory=list)
    stats_update: dict[int, Any] = dc_field(default_factory=dict)
    new_poll_ops: list[PollOp] = dc_field(default_factory=list)
    dropped_events: int = 0


@dataclass
class AsyncOpUpdate:
    """New async ops and async op stats since the previous update."""

    new_async_ops: list[AsyncOp] = dc_field(default_factory=list)
    stats_update: dict[int, Any] = dc_field(default_factory=dict)
    dropped_events: int = 0


@dataclass
class Update:
    """A complete state update pushed to watching clients."""

    now: _dt.datetime | None = None
    new_metadata: RegisterMetadata | None = None
    task_update: TaskUpdate | None = None
    resource_update: ResourceUpdate | None = None
    async_op_update: AsyncOpUpdate | None = None


@dataclass
class TaskDetails:
    """Detailed statistics for a single task."""

    task_id: Id | None = None
    now: _dt.datetime | None = None
    poll_times_histogram: Any = None
    scheduled_times_histogram: Any = None


def _varint_size(value: int) -> int:
    if value < 0:
        return 10
    return max(1, (value.bit_length() + 6) // 7)


def _delimited(length: int) -> int:
    return _varint_size(length) + length


def _payload(value: Any) -> tuple[int, bool]:
    """Return the encoded size of a value (without tag) and whether it is a default."""
    if isinstance(value, bool):
        return 1, not value
    if isinstance(value, enum.Enum):
        return _payload(value.value)
    if isinstance(value, int):
        return _varint_size(value), value == 0
    if isinstance(value, float):
        return 8, value == 0.0
    if isinstance(value, str):
        size = len(value.encode("utf-8"))
        return _delimited(size), size == 0
    if isinstance(value, (bytes, bytearray)):
        return _delimited(len(value)), len(value) == 0
    if isinstance(value, _dt.datetime):
        ts = value.timestamp()
        seconds = math.floor(ts)
        return _delimited(_pair_size(seconds, value.microsecond * 1000)), False
    if isinstance(value, _dt.timedelta):
        seconds = value.days * 86400 + value.seconds
        return _delimited(_pair_size(seconds, value.microseconds * 1000)), False
    if is_dataclass(value) and not isinstance(value, type):
        return _delimited(_message_size(value)), False
    return _payload(repr(value))


def _pair_size(first: int, second: int) -> int:
    return _field_size(1, first) + _field_size(2, second)


def _tag_size(number: int) -> int:
    return _varint_size(number << 3)


def _field_size(number: int, value: Any, *, always: bool = False) -> int:
    if value is None:
        return 0
    if isinstance(value, (list, tuple)):
        return sum(_field_size(number, item, always=True) for item in value)
    if isinstance(value, Mapping):
        total = 0
        for key, item in value.items():
            entry = _field_size(1, key) + _field_size(2, item)
            total += _tag_size(number) + _delimited(entry)
        return total
    size, is_default = _payload(value)
    if is_default and not always:
        return 0
    return _tag_size(number) + size


def _message_size(message: Any) -> int:
    return sum(
        _field_size(number, getattr(message, f.name))
        for number, f in enumerate(fields(message), start=1)
    )


def encoded_size(message: Any) -> int:
    """Approximate size in bytes of a message in a protobuf-like wire format.

    Fields are numbered in declaration order; unset and default values take
    no space.
    """
    if not is_dataclass(message) or isinstance(message, type):
        raise TypeError(f"not a message: {message!r}")
    return _message_size(message)