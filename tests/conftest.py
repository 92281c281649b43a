"""Shared pytest fixtures for natstop tests."""

import threading

import pytest

from natstop.config import Config
from natstop.exceptions import UnreachableServer
from natstop.models import (
    ConnectionInfo,
    ConnectionList,
    RateSample,
    Sample,
    ServerStats,
    Snapshot,
)


def build_stats(**overrides) -> ServerStats:
    """Build a ServerStats with neutral defaults."""
    values = {
        "cpu_percent": 12.5,
        "mem_bytes": 8 * 1024 * 1024,
        "max_connections": 65536,
        "in_msgs": 0,
        "out_msgs": 0,
        "in_bytes": 0,
        "out_bytes": 0,
        "server_id": "NATSD1",
        "version": "2.10.0",
        "uptime": "1h2m3s",
    }
    values.update(overrides)
    return ServerStats(**values)


def build_connection(cid: int, **overrides) -> ConnectionInfo:
    """Build a ConnectionInfo with neutral defaults."""
    values = {
        "cid": cid,
        "ip": "127.0.0.1",
        "port": 40000 + cid,
        "subscriptions": 0,
        "pending_bytes": 0,
        "out_msgs": 0,
        "in_msgs": 0,
        "out_bytes": 0,
        "in_bytes": 0,
        "lang": "go",
        "version": "1.31.0",
    }
    values.update(overrides)
    return ConnectionInfo(**values)


class StubFetcher:
    """Fetcher returning scripted captures instead of calling a server."""

    def __init__(self, stats=None, connections=None, fail_after=None):
        self.stats = list(stats or [build_stats()])
        self.connections = connections or ConnectionList(num_connections=0)
        self.fail_after = fail_after
        self.sort_keys = []
        self.calls = 0
        self._lock = threading.Lock()

    def fetch_server_stats(self):
        with self._lock:
            self.calls += 1
            if self.fail_after is not None and self.calls > self.fail_after:
                raise UnreachableServer("http://127.0.0.1:8333/varz", 5, ConnectionError("refused"))
            if len(self.stats) > 1:
                return self.stats.pop(0)
            return self.stats[0]

    def fetch_connections(self, sort_key=None):
        with self._lock:
            self.sort_keys.append(sort_key)
        return self.connections


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 100.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSurface:
    """Render surface recording what the controller asked for."""

    def __init__(self):
        self.renders = 0
        self.prompts = []
        self.layouts = []
        self.sizes = []
        self.scheduled = []
        self.sort_hints = []
        self.shutdowns = []

    def render_view(self, controller):
        self.renders += 1

    def render_prompt(self, text):
        self.prompts.append(text)

    def switch_layout(self, view_mode):
        self.layouts.append(view_mode)

    def resize_widgets(self, width, height):
        self.sizes.append((width, height))

    def schedule(self, delay, callback):
        self.scheduled.append((delay, callback))

    def apply_sort_hint(self, sort_key):
        self.sort_hints.append(sort_key)

    def shutdown(self, exit_code, error=None):
        self.shutdowns.append((exit_code, error))

    def fire_scheduled(self):
        pending, self.scheduled = self.scheduled, []
        for _, callback in pending:
            callback()


@pytest.fixture
def config() -> Config:
    """Default configuration with a fast retry budget."""
    return Config(retry_wait=0.0, interval=0.05)


@pytest.fixture
def make_stats():
    """Factory for ServerStats."""
    return build_stats


@pytest.fixture
def make_connection():
    """Factory for ConnectionInfo."""
    return build_connection


@pytest.fixture
def make_sample():
    """Factory for a Sample built from stats and connections."""

    def _make(stats=None, connections=(), num_connections=None, rates=None, sequence=1):
        conn_list = ConnectionList(
            num_connections=len(connections) if num_connections is None else num_connections,
            connections=tuple(connections),
        )
        snapshot = Snapshot(stats=stats or build_stats(), connections=conn_list, captured_at=0.0)
        return Sample(snapshot=snapshot, rates=rates or RateSample.zero(), sequence=sequence)

    return _make


@pytest.fixture
def stub_fetcher():
    """Factory for StubFetcher."""
    return StubFetcher


@pytest.fixture
def fake_clock():
    """Hand-driven monotonic clock."""
    return FakeClock()


@pytest.fixture
def surface() -> FakeSurface:
    """Recording render surface."""
    return FakeSurface()
