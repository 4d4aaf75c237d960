"""Callsite classification and event delivery used by the instrumentation layer."""

from __future__ import annotations

import enum
import queue
import threading
from collections.abc import Callable, Reversible
from typing import Any, TypeVar

from asyncscope.events import DroppedCounter, Shared
from asyncscope.models import Id

S = TypeVar("S")

RES_SPAN_NAME = "runtime.resource"
ASYNC_OP_SPAN_NAME = "runtime.resource.async_op"
ASYNC_OP_POLL_SPAN_NAME = "runtime.resource.async_op.poll"
POLL_OP_EVENT_TARGET = "runtime::resource::poll_op"
RE_STATE_UPDATE_EVENT_TARGET = "runtime::resource::state_update"
AO_STATE_UPDATE_EVENT_TARGET = "runtime::resource::async_op::state_update"


class CallsiteKind(enum.Enum):
    """What a registered callsite represents to the console."""

    SPAWN = "spawn"
    WAKER = "waker"
    RESOURCE = "resource"
    ASYNC_OP = "async_op"
    ASYNC_OP_POLL = "async_op_poll"
    POLL_OP = "poll_op"
    RESOURCE_STATE_UPDATE = "resource_state_update"
    ASYNC_OP_STATE_UPDATE = "async_op_state_update"
    OTHER = "other"

    def dropped_counter(self, shared: Shared) -> DroppedCounter:
        """Return the counter of dropped events for callsites of this kind."""
        if self in (CallsiteKind.RESOURCE, CallsiteKind.RESOURCE_STATE_UPDATE):
            return shared.dropped_resources
        if self in (
            CallsiteKind.ASYNC_OP,
            CallsiteKind.ASYNC_OP_POLL,
            CallsiteKind.POLL_OP,
            CallsiteKind.ASYNC_OP_STATE_UPDATE,
        ):
            return shared.dropped_async_ops
        return shared.dropped_tasks


def classify_callsite(name: str, target: str) -> CallsiteKind:
    """Classify a callsite by its name and target; earlier rules win."""
    if name == "runtime.spawn" or (name == "task" and target == "tokio::task"):
        return CallsiteKind.SPAWN
    if target in ("runtime::waker", "tokio::task::waker"):
        return CallsiteKind.WAKER
    if name == RES_SPAN_NAME:
        return CallsiteKind.RESOURCE
    if name == ASYNC_OP_SPAN_NAME:
        return CallsiteKind.ASYNC_OP
    if name == ASYNC_OP_POLL_SPAN_NAME:
        return CallsiteKind.ASYNC_OP_POLL
    if target == POLL_OP_EVENT_TARGET:
        return CallsiteKind.POLL_OP
    if target == RE_STATE_UPDATE_EVENT_TARGET:
        return CallsiteKind.RESOURCE_STATE_UPDATE
    if target == AO_STATE_UPDATE_EVENT_TARGET:
        return CallsiteKind.ASYNC_OP_STATE_UPDATE
    return CallsiteKind.OTHER


def first_entered(stack: Reversible[Id], predicate: Callable[[Id], bool]) -> Id | None:
    """Return the most recently entered span id matching ``predicate``."""
    return next((id for id in reversed(stack) if predicate(id)), None)


class EventSender:
    """Sends events to the aggregator through a bounded queue without blocking.

    Events that do not fit are dropped and counted. When the remaining
    capacity falls to ``flush_under_capacity`` or below, a flush is requested.
    """

    def __init__(self, queue: queue.Queue, shared: Shared, flush_under_capacity: int) -> None:
        if queue.maxsize <= 0:
            raise ValueError("the event queue must be bounded")
        self.queue = queue
        self.shared = shared
        self.flush_under_capacity = flush_under_capacity
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop delivering events; later sends are discarded."""
        self._closed = True

    def capacity(self) -> int:
        """Return how many more events fit into the queue."""
        return max(self.queue.maxsize - self.queue.qsize(), 0)

    def _send(
        self, dropped: DroppedCounter, make_event: Callable[[], tuple[Any, S]]
    ) -> tuple[bool, S | None]:
        sent: tuple[bool, S | None] = (False, None)
        if not self._closed:
            with self._lock:
                if self.queue.full():
                    dropped.increment()
                else:
                    event, stats = make_event()
                    self.queue.put_nowait(event)
                    sent = (True, stats)
        if self.capacity() <= self.flush_under_capacity:
            self.shared.flush.trigger()
        return sent

    def send(
        self, dropped: DroppedCounter, make_event: Callable[[], tuple[Any, S]]
    ) -> S | None:
        """Send the event built by ``make_event`` and return its stats.

        ``make_event`` is only called when there is room for the event.
        Returns None if the event was not sent.
        """
        return self._send(dropped, make_event)[1]

    def send_event(self, dropped: DroppedCounter, event: Any) -> bool:
        """Send a prepared event; return whether it was sent."""
        return self._send(dropped, lambda: (event, None))[0]