# asyncscope

`asyncscope` provides the building blocks for collecting instrumentation from
an async runtime — spawned tasks, waker operations, resources such as locks
and semaphores, and the async operations performed on them — so that it can be
aggregated into updates for a watching client.

It has no runtime dependencies beyond the Python standard library.

## What is in the package

- `asyncscope.models` — the shared data types: `Metadata`, `MetadataKind`,
  `Level`, `Location`, `Field`, `FieldValue`, `MetaId`, `Id`, `NewMetadata`,
  `RegisterMetadata` and `Attribute`. `str(Location(...))` renders
  `module:line:column` (the module path is preferred over the file, and
  `<unknown location>` is shown when neither is set); `str(Field(...))`
  renders `name=value` for string-named fields. `FieldValue.from_python`
  picks a value kind (`bool`, `u64`, `i64`, `str` or `debug`) for a Python
  value.
- `asyncscope.messages` — the client-facing messages: `Task`, `Resource`,
  `AsyncOp`, `PollOp`, `TaskUpdate`, `ResourceUpdate`, `AsyncOpUpdate`,
  `Update` and `TaskDetails`. `encoded_size(message)` estimates the size of a
  message in a protobuf-like wire format, numbering fields in declaration
  order and skipping unset and default values.
- `asyncscope.events` — what happens at runtime and how it travels:
  - events: `MetadataEvent`, `SpawnEvent`, `ResourceEvent`, `PollOpEvent`,
    `AsyncResourceOpEvent`, and `WakeOp` (with `WakeKind`) for waker activity;
  - commands from clients: `InstrumentCommand`, `WatchTaskDetailCommand`,
    `PauseCommand`, `ResumeCommand`;
  - `Watch`, a bounded per-client stream: `update()` never blocks and returns
    `False` when the watch is full or closed; clients read with `await recv()`
    or `async for`, and `close()` stops it;
  - `WatchRequest`, answered with `respond(watch)` or `reject()` (the requester
    then gets a `LookupError`);
  - `Flush`, a thread-safe signal: only the first `trigger()` before
    `has_flushed()` wakes a waiter in `await wait()`;
  - `Shared`, holding the `Flush` and the `DroppedCounter`s for tasks,
    resources and async ops.
- `asyncscope.layer` — `classify_callsite(name, target)` returns a
  `CallsiteKind` (spawn, waker, resource, async op, poll op, state updates,
  other), and `CallsiteKind.dropped_counter(shared)` picks the matching
  counter. `first_entered(stack, predicate)` finds the most recently entered
  span id that matches. `EventSender` pushes events into a bounded
  `queue.Queue` without blocking: an event that does not fit is dropped and
  counted, and when the remaining room falls to `flush_under_capacity` or
  below, a flush is triggered.
- `asyncscope.records` — `TaskRecord`, `ResourceRecord` and `AsyncOpRecord`
  keep the static data of each entry, remember whether it has been sent
  (`take_unsent()`, `is_unsent()`) and convert to messages with `to_proto()`.
  `EventCounts` counts events by kind.
- `asyncscope.attribute` — `Attributes` holds per-entity attributes, updated
  by `Update`s whose `UpdateOp` adds, subtracts (saturating at the `u64` /
  `i64` bounds) or overrides numeric values; other kinds are replaced.
- `asyncscope.callsites` — `Callsites`, a set of callsites compared by
  identity, kept in a small list up to `max_callsites` and spilling into an
  overflow set beyond that.
- `asyncscope.builder`, `asyncscope.envconfig`, `asyncscope.addr` —
  configuration, described below.

## Sending events

```python
import queue

from asyncscope.events import MetadataEvent, Shared
from asyncscope.layer import EventSender
from asyncscope.models import Metadata

shared = Shared()
sender = EventSender(queue.Queue(maxsize=4), shared, flush_under_capacity=2)

event = MetadataEvent(Metadata(name="runtime.spawn", target="tokio::task"))
sender.send_event(shared.dropped_tasks, event)   # True
sender.capacity()                                # 3
```

## Attributes

```python
from asyncscope.attribute import Attributes, Update, UpdateOp
from asyncscope.models import Field, FieldValue, Id

attributes = Attributes()
attributes.update(Id(1), Update(Field("permits", FieldValue("u64", 5))))
attributes.update(Id(1), Update(Field("permits", FieldValue("u64", 2)), op=UpdateOp.ADD))
[str(a.field) for a in attributes.values()]      # ['permits=7']
```

## Configuration

Settings are held by the frozen dataclass `asyncscope.builder.Builder`;
durations are in seconds. Every `with_*` method returns a new builder:

```python
from asyncscope.builder import Builder

builder = (
    Builder()
    .with_event_buffer_capacity(50_000)
    .with_client_buffer_capacity(1024)
    .with_publish_interval(0.5)
    .with_self_trace(False)
)
```

| Setting                     | Default          |
|-----------------------------|------------------|
| event buffer capacity       | 102400 events    |
| client buffer capacity      | 4096 updates     |
| publish interval            | 1 second         |
| retention of completed data | 1 hour           |
| server address              | `127.0.0.1:6669` |
| recording path              | none             |
| log filter variable         | `RUST_LOG`       |
| poll duration histogram max | 1 second         |
| scheduled duration max      | 1 second         |

Durations may be given as numbers of seconds or as `datetime.timedelta`.

### From the environment

`Builder.with_default_env(environ=None)` reads these variables from the given
mapping, or from `os.environ` when none is given:

| Variable                         | Meaning                                        |
|----------------------------------|------------------------------------------------|
| `TOKIO_CONSOLE_RETENTION`        | how long to keep data for completed entries    |
| `TOKIO_CONSOLE_BIND`             | `HOST:PORT` to serve on, e.g. `localhost:1234` |
| `TOKIO_CONSOLE_PUBLISH_INTERVAL` | time between updates sent to clients           |
| `TOKIO_CONSOLE_RECORD_PATH`      | file to record events to                       |
| `TOKIO_CONSOLE_BUFFER_CAPACITY`  | event buffer capacity                          |

Durations are written the human way — `"500ms"`, `"30s"`, `"1h 30m"` — and
parsed by `asyncscope.envconfig.parse_duration`, which returns seconds. A
value that cannot be parsed, or a bind address that does not resolve, raises
`ValueError`. `duration_from_env` and `usize_from_env` read single variables.

### Server addresses

`asyncscope.addr.server_addr_from` turns an `(ip, port)` pair into a
`TcpAddr` and a path object into a `UnixAddr` (where the platform has Unix
domain sockets). `resolve_bind("HOST:PORT")` resolves a host name or IP
literal to the first matching `TcpAddr`.

### Filtering

`asyncscope.envconfig.console_filter(metadata)` returns `True` for events
whose target starts with `runtime` or `tokio`, and for spans whose name
starts with `runtime.` or whose target starts with `tokio`.

## What the package does not do

The package has no aggregation loop that drains the event queue, keeps state
per entry and publishes `Update`s on a timer, and no server that listens on
the configured address or answers client requests. `Builder` settings such
as the server address, retention and recording path are held and validated,
but nothing in the package acts on them. Messages are Python dataclasses;
they are not serialized for a network, and `encoded_size` only estimates
their size.