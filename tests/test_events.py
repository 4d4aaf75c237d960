import asyncio
import threading

import pytest

from asyncscope.events import (
    AsyncResourceOpEvent,
    DroppedCounter,
    Flush,
    InstrumentCommand,
    MetadataEvent,
    PauseCommand,
    PollOpEvent,
    ResourceEvent,
    ResumeCommand,
    Shared,
    SpawnEvent,
    WakeKind,
    WakeOp,
    Watch,
    WatchRequest,
    WatchTaskDetailCommand,
)
from asyncscope.models import Id, Metadata


# === WakeOp ===


@pytest.mark.parametrize(
    "kind,expected",
    [
        (WakeKind.WAKE, True),
        (WakeKind.WAKE_BY_REF, True),
        (WakeKind.CLONE, False),
        (WakeKind.DROP, False),
    ],
)
def test_is_wake(kind, expected):
    assert WakeOp(kind).is_wake() is expected


@pytest.mark.parametrize("kind", [WakeKind.WAKE, WakeKind.WAKE_BY_REF])
def test_with_self_wake_sets_flag_on_wakes(kind):
    op = WakeOp(kind).with_self_wake(True)
    assert op.kind is kind
    assert op.self_wake is True
    assert op.with_self_wake(False).self_wake is False


@pytest.mark.parametrize("kind", [WakeKind.CLONE, WakeKind.DROP])
def test_with_self_wake_leaves_other_kinds_unchanged(kind):
    op = WakeOp(kind)
    assert op.with_self_wake(True) == op
    assert op.with_self_wake(True).self_wake is False


def test_non_wake_cannot_be_self_wake():
    with pytest.raises(ValueError):
        WakeOp(WakeKind.CLONE, self_wake=True)


# === Watch ===


def test_watch_accepts_until_full():
    watch = Watch(2)
    assert watch.update("a") is True
    assert watch.update("b") is True
    assert watch.update("c") is False
    assert len(watch) == 2


def test_watch_rejects_after_close():
    watch = Watch(4)
    watch.close()
    assert watch.closed is True
    assert watch.update("a") is False
    assert len(watch) == 0


@pytest.mark.parametrize("capacity", [0, -1, True, 1.5])
def test_watch_rejects_bad_capacity(capacity):
    with pytest.raises(ValueError):
        Watch(capacity)


@pytest.mark.asyncio
async def test_watch_recv_in_order():
    watch = Watch(3)
    for message in ["x", "y", "z"]:
        watch.update(message)
    received = [await watch.recv() for _ in range(3)]
    assert received == ["x", "y", "z"]
    assert len(watch) == 0


@pytest.mark.asyncio
async def test_watch_frees_room_after_recv():
    watch = Watch(1)
    assert watch.update(1)
    assert not watch.update(2)
    assert await watch.recv() == 1
    assert watch.update(2)


@pytest.mark.asyncio
async def test_watch_iteration_drains_then_ends_on_close():
    watch = Watch(5)
    watch.update(1)
    watch.update(2)
    watch.close()
    assert [m async for m in watch] == [1, 2]
    assert await watch.recv() is None


@pytest.mark.asyncio
async def test_watch_recv_wakes_on_update():
    watch = Watch(2)
    receiver = asyncio.create_task(watch.recv())
    await asyncio.sleep(0)
    assert not receiver.done()
    watch.update("hello")
    assert await asyncio.wait_for(receiver, 1) == "hello"


@pytest.mark.asyncio
async def test_watch_recv_wakes_on_close():
    watch = Watch(2)
    receiver = asyncio.create_task(watch.recv())
    await asyncio.sleep(0)
    watch.close()
    assert await asyncio.wait_for(receiver, 1) is None


# === WatchRequest and commands ===


@pytest.mark.asyncio
async def test_watch_request_respond():
    future = asyncio.get_running_loop().create_future()
    request = WatchRequest(id=Id(7), stream_sender=future, buffer=4)
    watch = Watch(request.buffer)
    assert request.respond(watch) is True
    assert await future is watch
    assert request.respond(Watch(1)) is False


@pytest.mark.asyncio
async def test_watch_request_reject():
    future = asyncio.get_running_loop().create_future()
    request = WatchRequest(id=Id(7), stream_sender=future, buffer=4)
    request.reject()
    with pytest.raises(LookupError):
        await future
    assert request.respond(Watch(1)) is False


@pytest.mark.asyncio
async def test_watch_request_respond_after_requester_gave_up():
    future = asyncio.get_running_loop().create_future()
    future.cancel()
    request = WatchRequest(id=Id(1), stream_sender=future, buffer=1)
    assert request.respond(Watch(1)) is False


def test_commands_hold_their_payload():
    watch = Watch(1)
    assert InstrumentCommand(watch).watch is watch
    assert PauseCommand() == PauseCommand()
    assert PauseCommand() != ResumeCommand()


@pytest.mark.asyncio
async def test_task_detail_command_holds_request():
    future = asyncio.get_running_loop().create_future()
    request = WatchRequest(id=Id(3), stream_sender=future, buffer=2)
    command = WatchTaskDetailCommand(request)
    assert command.request.id == Id(3)
    assert command.request.buffer == 2


# === events ===


def test_event_defaults():
    meta = Metadata(name="runtime.spawn", target="tokio::task")
    spawn = SpawnEvent(id=Id(1), metadata=meta, stats=None)
    assert spawn.fields == []
    assert spawn.location is None

    resource = ResourceEvent(
        id=Id(2), metadata=meta, concrete_type="Mutex", kind="Sync", stats=None
    )
    assert resource.parent_id is None
    assert resource.is_internal is False

    op = AsyncResourceOpEvent(
        id=Id(3), resource_id=Id(2), metadata=meta, source="Mutex::lock", stats=None
    )
    assert op.parent_id is None
    assert op.resource_id == Id(2)


def test_poll_op_and_metadata_events_keep_values():
    meta = Metadata(name="poll")
    event = PollOpEvent(
        metadata=meta,
        resource_id=Id(1),
        op_name="poll_acquire",
        async_op_id=Id(2),
        task_id=Id(3),
        is_ready=True,
    )
    assert event.op_name == "poll_acquire"
    assert event.is_ready is True
    assert MetadataEvent(meta).metadata is meta


# === Flush ===


def test_flush_trigger_and_has_flushed():
    flush = Flush()
    assert flush.triggered is False
    flush.trigger()
    assert flush.triggered is True
    flush.has_flushed()
    assert flush.triggered is False


@pytest.mark.asyncio
async def test_flush_permit_is_kept_until_wait():
    flush = Flush()
    flush.trigger()
    await asyncio.wait_for(flush.wait(), 1)
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(flush.wait(), 0.05)


@pytest.mark.asyncio
async def test_flush_repeated_trigger_notifies_once():
    flush = Flush()
    flush.trigger()
    flush.trigger()
    await asyncio.wait_for(flush.wait(), 1)
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(flush.wait(), 0.05)


@pytest.mark.asyncio
async def test_flush_notifies_again_after_has_flushed():
    flush = Flush()
    flush.trigger()
    await asyncio.wait_for(flush.wait(), 1)
    flush.has_flushed()
    flush.trigger()
    await asyncio.wait_for(flush.wait(), 1)
    assert flush.triggered is True


@pytest.mark.asyncio
async def test_flush_trigger_from_other_thread_wakes_waiter():
    flush = Flush()
    waiter = asyncio.create_task(flush.wait())
    await asyncio.sleep(0.01)
    thread = threading.Thread(target=flush.trigger)
    thread.start()
    await asyncio.wait_for(waiter, 2)
    thread.join()
    assert flush.triggered is True


# === counters and shared state ===


def test_dropped_counter_take_resets():
    counter = DroppedCounter()
    counter.increment()
    counter.increment()
    assert counter.value == 2
    assert counter.take() == 2
    assert counter.value == 0
    assert counter.take() == 0


def test_dropped_counter_is_thread_safe():
    counter = DroppedCounter()

    def bump():
        for _ in range(1000):
            counter.increment()

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert counter.value == 4 * 1000


def test_shared_counters_are_independent():
    shared = Shared()
    shared.dropped_tasks.increment()
    assert shared.dropped_tasks.value == 1
    assert shared.dropped_resources.value == 0
    assert shared.dropped_async_ops.value == 0
    assert Shared().flush is not shared.flush