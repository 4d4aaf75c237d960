import datetime
import ipaddress
from pathlib import Path

import pytest

from asyncscope.addr import DEFAULT_IP, DEFAULT_PORT, TcpAddr
from asyncscope.builder import (
    DEFAULT_CLIENT_BUFFER_CAPACITY,
    DEFAULT_EVENT_BUFFER_CAPACITY,
    DEFAULT_RETENTION,
    Builder,
)
from asyncscope.envconfig import parse_duration


def test_defaults():
    builder = Builder()
    assert builder.event_buffer_capacity == DEFAULT_EVENT_BUFFER_CAPACITY == 1024 * 100
    assert builder.client_buffer_capacity == DEFAULT_CLIENT_BUFFER_CAPACITY == 1024 * 4
    assert builder.retention == DEFAULT_RETENTION == 60 * 60
    assert builder.server_addr == TcpAddr(DEFAULT_IP, DEFAULT_PORT)
    assert builder.filter_env_var == "RUST_LOG"
    assert builder.recording_path is None
    assert builder.self_trace is False


def test_default_server_addr_text():
    assert str(Builder().server_addr) == "127.0.0.1:6669"


def test_with_methods_leave_original_unchanged():
    base = Builder()
    changed = base.with_event_buffer_capacity(10).with_client_buffer_capacity(3)
    assert (changed.event_buffer_capacity, changed.client_buffer_capacity) == (10, 3)
    assert base.event_buffer_capacity == DEFAULT_EVENT_BUFFER_CAPACITY


def test_durations_accept_timedelta_and_seconds():
    a = Builder().with_retention(datetime.timedelta(minutes=2))
    b = Builder().with_retention(120)
    assert a.retention == b.retention == parse_duration("2m")


def test_histogram_maxima_and_interval():
    builder = (
        Builder()
        .with_poll_duration_histogram_max(2)
        .with_scheduled_duration_histogram_max(datetime.timedelta(seconds=3))
        .with_publish_interval(0.5)
    )
    assert builder.poll_duration_max == 2
    assert builder.scheduled_duration_max == 3
    assert builder.publish_interval == 0.5


def test_negative_duration_rejected():
    with pytest.raises(ValueError):
        Builder().with_retention(-1)


def test_invalid_capacity_rejected():
    with pytest.raises(ValueError):
        Builder().with_event_buffer_capacity(-5)


def test_with_server_addr_pair():
    builder = Builder().with_server_addr(("127.0.0.1", 1234))
    assert builder.server_addr == TcpAddr(ipaddress.ip_address("127.0.0.1"), 1234)


def test_with_recording_path_and_filter_and_self_trace():
    builder = (
        Builder()
        .with_recording_path("events.json")
        .with_filter_env_var("APP_LOG")
        .with_self_trace(True)
    )
    assert builder.recording_path == Path("events.json")
    assert builder.filter_env_var == "APP_LOG"
    assert builder.self_trace is True


def test_with_default_env_empty_keeps_defaults():
    assert Builder().with_default_env({}) == Builder()


def test_with_default_env_reads_all_variables():
    env = {
        "TOKIO_CONSOLE_RETENTION": "30s",
        "TOKIO_CONSOLE_BIND": "127.0.0.1:4321",
        "TOKIO_CONSOLE_PUBLISH_INTERVAL": "100ms",
        "TOKIO_CONSOLE_RECORD_PATH": "recording.json",
        "TOKIO_CONSOLE_BUFFER_CAPACITY": "64",
    }
    builder = Builder().with_default_env(env)
    assert builder.retention == parse_duration("30s")
    assert builder.server_addr == TcpAddr(ipaddress.ip_address("127.0.0.1"), 4321)
    assert builder.publish_interval == parse_duration("100ms")
    assert builder.recording_path == Path("recording.json")
    assert builder.event_buffer_capacity == 64


def test_with_default_env_bad_bind():
    with pytest.raises(ValueError):
        Builder().with_default_env({"TOKIO_CONSOLE_BIND": "no-port-here"})


def test_with_default_env_bad_duration():
    with pytest.raises(ValueError):
        Builder().with_default_env({"TOKIO_CONSOLE_RETENTION": "forever"})


def test_with_default_env_uses_os_environ(monkeypatch):
    monkeypatch.setenv("TOKIO_CONSOLE_BUFFER_CAPACITY", "8")
    monkeypatch.delenv("TOKIO_CONSOLE_BIND", raising=False)
    monkeypatch.delenv("TOKIO_CONSOLE_RETENTION", raising=False)
    monkeypatch.delenv("TOKIO_CONSOLE_PUBLISH_INTERVAL", raising=False)
    monkeypatch.delenv("TOKIO_CONSOLE_RECORD_PATH", raising=False)
    assert Builder().with_default_env().event_buffer_capacity == 8