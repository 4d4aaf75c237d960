"""Events, commands and shared state passed between the layer, aggregator and server."""

from __future__ import annotations

import asyncio
import enum
import threading
from collections import deque
from collections.abc import AsyncIterator
from dataclasses import dataclass, replace
from dataclasses import field as dc_field
from typing import Any, Generic, TypeVar, Union

from asyncscope.models import Field, Id, Location, Metadata

T = TypeVar("T")


class WakeKind(enum.Enum):
    """The kind of operation performed on a task's waker."""

    WAKE = "wake"
    WAKE_BY_REF = "wake_by_ref"
    CLONE = "clone"
    DROP = "drop"


_WAKE_KINDS = frozenset({WakeKind.WAKE, WakeKind.WAKE_BY_REF})


@dataclass(frozen=True)
class WakeOp:
    """A waker operation; wakes also record whether the task woke itself."""

    kind: WakeKind
    self_wake: bool = False

    def __post_init__(self) -> None:
        if self.self_wake and self.kind not in _WAKE_KINDS:
            raise ValueError(f"{self.kind.value} operations cannot be self-wakes")

    def is_wake(self) -> bool:
        """Return True for ``WAKE`` and ``WAKE_BY_REF`` operations."""
        return self.kind in _WAKE_KINDS

    def with_self_wake(self, self_wake: bool) -> WakeOp:
        """Return a copy with the self-wake flag set; other kinds are unchanged."""
        if not self.is_wake():
            return self
        return replace(self, self_wake=bool(self_wake))


# === events sent from the layer to the aggregator ===


@dataclass
class MetadataEvent:
    """A new callsite was registered."""

    metadata: Metadata


@dataclass
class SpawnEvent:
    """A task was spawned."""

    id: Id
    metadata: Metadata
    stats: Any
    fields: list[Field] = dc_field(default_factory=list)
    location: Location | None = None


@dataclass
class ResourceEvent:
    """A resource was created."""

    id: Id
    metadata: Metadata
    concrete_type: str
    kind: str | int | None
    stats: Any
    parent_id: Id | None = None
    location: Location | None = None
    is_internal: bool = False


@dataclass
class PollOpEvent:
    """A resource was polled by an async operation inside a task."""

    metadata: Metadata
    resource_id: Id
    op_name: str
    async_op_id: Id
    task_id: Id
    is_ready: bool


@dataclass
class AsyncResourceOpEvent:
    """An async operation on a resource was started."""

    id: Id
    resource_id: Id
    metadata: Metadata
    source: str
    stats: Any
    parent_id: Id | None = None


Event = Union[
    MetadataEvent, SpawnEvent, ResourceEvent, PollOpEvent, AsyncResourceOpEvent
]


# === client subscriptions ===


class Watch(Generic[T]):
    """A bounded stream of updates to one client.

    The producer calls :meth:`update`, which never blocks and reports whether
    the message was accepted. The client reads with :meth:`recv` or ``async for``
    and calls :meth:`close` when it stops listening.
    """

    def __init__(self, capacity: int) -> None:
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity < 1:
            raise ValueError(f"watch capacity must be a positive integer: {capacity!r}")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._waiters: list[asyncio.Future] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    def update(self, message: T) -> bool:
        """Queue a message; return False if the watch is closed or full."""
        if self._closed or len(self._items) >= self.capacity:
            return False
        self._items.append(message)
        self._wake_waiters()
        return True

    def close(self) -> None:
        """Stop accepting messages; queued messages can still be received."""
        self._closed = True
        self._wake_waiters()

    def _wake_waiters(self) -> None:
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def recv(self) -> T | None:
        """Return the next message, or None once the watch is closed and drained."""
        while not self._items:
            if self._closed:
                return None
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            finally:
                self._waiters.remove(waiter)
        return self._items.popleft()

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            message = await self.recv()
            if message is None:
                return
            yield message


@dataclass
class WatchRequest(Generic[T]):
    """A request to stream details of one task.

    The aggregator answers through ``stream_sender``: with a :class:`Watch`
    when the task exists, or with :class:`LookupError` when it does not.
    """

    id: Id
    stream_sender: asyncio.Future
    buffer: int

    def respond(self, watch: Watch[T]) -> bool:
        """Hand the stream to the requester; return False if it stopped waiting."""
        if self.stream_sender.done():
            return False
        self.stream_sender.set_result(watch)
        return True

    def reject(self) -> None:
        """Tell the requester that the task was not found."""
        if not self.stream_sender.done():
            self.stream_sender.set_exception(LookupError(f"task {int(self.id)} not found"))


@dataclass
class InstrumentCommand:
    """A client subscribes to all state updates."""

    watch: Watch


@dataclass
class WatchTaskDetailCommand:
    """A client subscribes to details of one task."""

    request: WatchRequest


@dataclass(frozen=True)
class PauseCommand:
    """Stop publishing updates to clients."""


@dataclass(frozen=True)
class ResumeCommand:
    """Resume publishing updates to clients."""


Command = Union[InstrumentCommand, WatchTaskDetailCommand, PauseCommand, ResumeCommand]


# === shared state ===


class Flush:
    """Signals the aggregator that the event buffer should be drained.

    :meth:`trigger` may be called from any thread; only the first call before
    :meth:`has_flushed` notifies the aggregator. A notification given while no
    one waits is kept until the next :meth:`wait`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._triggered = False
        self._permit = False
        self._waiters: deque[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = deque()

    @property
    def triggered(self) -> bool:
        with self._lock:
            return self._triggered

    def trigger(self) -> None:
        """Request a flush unless one is already pending."""
        with self._lock:
            if self._triggered:
                return
            self._triggered = True
            self._notify_one_locked()

    def has_flushed(self) -> None:
        """Mark the buffer as drained, so the next trigger notifies again."""
        with self._lock:
            self._triggered = False

    def _notify_one_locked(self) -> None:
        while self._waiters:
            loop, future = self._waiters.popleft()
            if future.done() or loop.is_closed():
                continue
            loop.call_soon_threadsafe(self._wake, future)
            return
        self._permit = True

    def _wake(self, future: asyncio.Future) -> None:
        if future.done():
            # The waiter went away before the wake-up landed; keep the permit.
            with self._lock:
                self._notify_one_locked()
            return
        future.set_result(None)

    async def wait(self) -> None:
        """Wait until a flush is requested."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._permit:
                self._permit = False
                return
            future = loop.create_future()
            entry = (loop, future)
            self._waiters.append(entry)
        try:
            await future
        finally:
            with self._lock:
                if entry in self._waiters:
                    self._waiters.remove(entry)


class DroppedCounter:
    """A thread-safe count of events dropped because the buffer was full."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> None:
        with self._lock:
            self._value += 1

    def take(self) -> int:
        """Return the count and reset it to zero."""
        with self._lock:
            value, self._value = self._value, 0
            return value


@dataclass
class Shared:
    """State shared between the layer and the aggregator."""

    flush: Flush = dc_field(default_factory=Flush)
    dropped_tasks: DroppedCounter = dc_field(default_factory=DroppedCounter)
    dropped_async_ops: DroppedCounter = dc_field(default_factory=DroppedCounter)
    dropped_resources: DroppedCounter = dc_field(default_factory=DroppedCounter)