"""Static data kept by the aggregator for tasks, resources and async ops."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from dataclasses import field as dc_field
from dataclasses import replace
from typing import Any

from asyncscope import messages
from asyncscope.events import (
    AsyncResourceOpEvent,
    MetadataEvent,
    PollOpEvent,
    ResourceEvent,
    SpawnEvent,
)
from asyncscope.models import Field, Id, Location, Metadata, MetaId


def _copy_location(location: Location | None) -> Location | None:
    return replace(location) if location is not None else None


class _Unsent:
    """Tracks whether a record changed since it was last sent."""

    is_dirty: bool
    _lock: threading.Lock

    def take_unsent(self) -> bool:
        """Return whether the record was unsent, and mark it as sent."""
        with self._lock:
            was_dirty = self.is_dirty
            self.is_dirty = False
            return was_dirty

    def is_unsent(self) -> bool:
        with self._lock:
            return self.is_dirty


@dataclass(eq=False)
class TaskRecord(_Unsent):
    """Static data of a spawned task."""

    id: Id
    metadata: Metadata
    fields: list[Field] = dc_field(default_factory=list)
    location: Location | None = None
    is_dirty: bool = True
    _lock: threading.Lock = dc_field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def to_proto(self, base_time: Any) -> messages.Task:
        return messages.Task(
            id=self.id,
            kind=messages.TaskKind.SPAWN,
            metadata=MetaId.of(self.metadata),
            parents=[],
            fields=[replace(f) for f in self.fields],
            location=_copy_location(self.location),
        )

    def take_unsent(self) -> bool:
        return super().take_unsent()

    def is_unsent(self) -> bool:
        return super().is_unsent()


@dataclass(eq=False)
class ResourceRecord(_Unsent):
    """Static data of a resource."""

    id: Id
    metadata: Metadata
    concrete_type: str
    kind: str | int | None
    parent_id: Id | None = None
    location: Location | None = None
    is_internal: bool = False
    is_dirty: bool = True
    _lock: threading.Lock = dc_field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def to_proto(self, base_time: Any) -> messages.Resource:
        return messages.Resource(
            id=self.id,
            parent_resource_id=self.parent_id,
            kind=self.kind,
            metadata=MetaId.of(self.metadata),
            concrete_type=self.concrete_type,
            location=_copy_location(self.location),
            is_internal=self.is_internal,
        )

    def take_unsent(self) -> bool:
        return super().take_unsent()

    def is_unsent(self) -> bool:
        return super().is_unsent()


@dataclass(eq=False)
class AsyncOpRecord(_Unsent):
    """Static data of an async operation on a resource."""

    id: Id
    resource_id: Id
    metadata: Metadata
    source: str
    parent_id: Id | None = None
    is_dirty: bool = True
    _lock: threading.Lock = dc_field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def to_proto(self, base_time: Any) -> messages.AsyncOp:
        return messages.AsyncOp(
            id=self.id,
            metadata=MetaId.of(self.metadata),
            resource_id=self.resource_id,
            source=self.source,
            parent_async_op_id=self.parent_id,
        )

    def take_unsent(self) -> bool:
        return super().take_unsent()

    def is_unsent(self) -> bool:
        return super().is_unsent()


@dataclass
class EventCounts:
    """Number of events of each kind received in one drain cycle."""

    async_resource_op: int = 0
    metadata: int = 0
    poll_op: int = 0
    resource: int = 0
    spawn: int = 0

    def update(self, event: Any) -> None:
        """Count one event according to its kind."""
        if isinstance(event, AsyncResourceOpEvent):
            self.async_resource_op += 1
        elif isinstance(event, MetadataEvent):
            self.metadata += 1
        elif isinstance(event, PollOpEvent):
            self.poll_op += 1
        elif isinstance(event, ResourceEvent):
            self.resource += 1
        elif isinstance(event, SpawnEvent):
            self.spawn += 1
        else:
            raise TypeError(f"not an event: {event!r}")

    def total(self) -> int:
        return (
            self.async_resource_op
            + self.metadata
            + self.poll_op
            + self.resource
            + self.spawn
        )