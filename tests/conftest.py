"""Shared fixtures for the file watcher tests."""

import time
from pathlib import Path

import pytest

from src.filewatcher.config import WatcherConfig
from src.filewatcher.models import RawEvent, RawEventKind
from src.filewatcher.source import NotificationSource, WatchHandle


class FakeNotificationSource(NotificationSource):
    """In-memory source; tests push raw events onto handles directly."""

    def __init__(self, max_pending_events: int = 512):
        super().__init__(max_pending_events)
        self.started = []
        self.stopped = []
        self.refused = set()
        self.on_start = None

    def _start_watch(self, handle: WatchHandle) -> None:
        if handle.path in self.refused:
            raise OSError(f"registration refused for {handle.path}")
        if self.on_start is not None:
            self.on_start(handle)
        self.started.append(handle)

    def _stop_watch(self, handle: WatchHandle) -> None:
        self.stopped.append(handle)

    def emit(self, handle: WatchHandle, kind: RawEventKind, name: str = "") -> None:
        if kind is RawEventKind.OVERFLOW:
            handle.add_event(RawEvent.overflow())
        else:
            handle.add_event(RawEvent(kind, Path(name)))


def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def fake_source():
    source = FakeNotificationSource()
    yield source
    source.close()


@pytest.fixture
def fast_config():
    return WatcherConfig(settle_delay_ms=0, stop_timeout_s=5.0)


@pytest.fixture
def wait_until():
    return _wait_until
