"""Notification sources: native watch handles backed by the watchdog library."""

import itertools
import logging
import os
import queue
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Set

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from .config import WatcherConfig
from .exceptions import RegistrationError, SourceClosedError, WatchInterrupted
from .models import ALL_KINDS, EventKind, RawEvent, RawEventKind

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)

# Placed on the ready queue to wake a blocked take()
_WAKEUP = object()


class WatchHandle:
    """
    A registration with a notification source.

    Raw events accumulate on the handle. The handle is queued for take()
    once, when its first pending event arrives, and stays out of the
    queue until reset() re-arms it.
    """

    def __init__(
        self,
        path: Path,
        kinds: FrozenSet[EventKind],
        max_pending_events: int,
        on_signal: Callable[["WatchHandle"], None],
    ):
        self.path = path
        self.kinds = kinds
        self.handle_id = next(_handle_ids)
        self.max_pending_events = max_pending_events
        self._on_signal = on_signal
        self._events: List[RawEvent] = []
        self._overflowed = False
        self._signalled = False
        self._valid = True
        self._lock = threading.Lock()

    def add_event(self, event: RawEvent) -> None:
        """
        Record a raw event and signal the handle if it is not queued yet.

        Events of kinds the handle was not registered for are dropped.
        Once the buffer is full a single OVERFLOW event is recorded and
        further events are dropped until the handle is drained.
        """
        if not event.is_overflow and event.kind.to_event_kind() not in self.kinds:
            return

        with self._lock:
            if not self._valid or self._overflowed:
                return
            if len(self._events) >= self.max_pending_events:
                self._events.append(RawEvent.overflow())
                self._overflowed = True
            else:
                self._events.append(event)
            signal = not self._signalled
            self._signalled = True

        if signal:
            self._on_signal(self)

    def poll_events(self) -> List[RawEvent]:
        """Remove and return all pending events, in arrival order."""
        with self._lock:
            events, self._events = self._events, []
            self._overflowed = False
            return events

    def reset(self) -> bool:
        """
        Re-arm the handle after its events were processed.

        If events arrived while the handle was being processed it is
        queued again right away.

        Returns:
            True if the handle is still valid
        """
        with self._lock:
            if not self._valid:
                return False
            signal = bool(self._events)
            self._signalled = signal

        if signal:
            self._on_signal(self)
        return True

    def invalidate(self) -> None:
        """Mark the handle invalid and wake the consumer so it can notice."""
        with self._lock:
            if not self._valid:
                return
            self._valid = False
            signal = not self._signalled
            self._signalled = True

        if signal:
            self._on_signal(self)

    @property
    def is_valid(self) -> bool:
        with self._lock:
            return self._valid

    def pending_count(self) -> int:
        with self._lock:
            return len(self._events)

    def __repr__(self) -> str:
        return f"WatchHandle(id={self.handle_id}, path={str(self.path)!r}, valid={self._valid})"


class NotificationSource(ABC):
    """
    Base class for notification sources.

    Subclasses only start and stop the native watch for a handle; handle
    bookkeeping, the ready queue and interruption live here.
    """

    def __init__(self, max_pending_events: int = 512):
        self.max_pending_events = max_pending_events
        self._ready: "queue.Queue[object]" = queue.Queue()
        self._handles: Set[WatchHandle] = set()
        self._handles_lock = threading.Lock()
        self._closed = threading.Event()

    @abstractmethod
    def _start_watch(self, handle: WatchHandle) -> None:
        """
        Begin delivering events for a handle.

        Raises:
            OSError: If the native registration fails
        """
        pass

    @abstractmethod
    def _stop_watch(self, handle: WatchHandle) -> None:
        """Stop delivering events for a handle."""
        pass

    def register(self, path: Path, kinds: Iterable[EventKind] = ALL_KINDS) -> WatchHandle:
        """
        Register a directory with the source.

        Args:
            path: Canonical path of the directory
            kinds: Event kinds to report

        Returns:
            The watch handle

        Raises:
            SourceClosedError: If the source is closed
            RegistrationError: If the native registration fails
        """
        if self._closed.is_set():
            raise SourceClosedError("Notification source is closed")

        handle = WatchHandle(path, frozenset(kinds), self.max_pending_events, self._signal)
        try:
            self._start_watch(handle)
        except OSError as e:
            raise RegistrationError(f"Cannot watch {path}: {e}") from e

        with self._handles_lock:
            self._handles.add(handle)
        logger.debug(f"Registered {handle}")
        return handle

    def take(self) -> WatchHandle:
        """
        Block until a handle is signalled and return it.

        Raises:
            WatchInterrupted: If interrupt() was called
            SourceClosedError: If the source is closed
        """
        if self._closed.is_set():
            raise SourceClosedError("Notification source is closed")

        item = self._ready.get()
        if item is _WAKEUP:
            if self._closed.is_set():
                raise SourceClosedError("Notification source is closed")
            raise WatchInterrupted("take() was interrupted")
        return item

    def cancel(self, handle: WatchHandle) -> None:
        """Cancel a registration. Cancelling twice is a no-op."""
        with self._handles_lock:
            if handle not in self._handles:
                return
            self._handles.discard(handle)

        handle.invalidate()
        self._stop_watch(handle)
        logger.debug(f"Cancelled {handle}")

    def interrupt(self) -> None:
        """Wake a thread blocked in take()."""
        self._ready.put(_WAKEUP)

    def close(self) -> None:
        """Cancel every handle and wake any blocked take()."""
        if self._closed.is_set():
            return
        self._closed.set()

        with self._handles_lock:
            handles = list(self._handles)
        for handle in handles:
            self.cancel(handle)

        self._ready.put(_WAKEUP)

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def _signal(self, handle: WatchHandle) -> None:
        self._ready.put(handle)

    def __len__(self) -> int:
        """Return the number of live registrations."""
        with self._handles_lock:
            return len(self._handles)


class HandleEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to raw events on one handle."""

    def __init__(self, handle: WatchHandle, config: WatcherConfig):
        super().__init__()
        self.handle = handle
        self.config = config
        self.root = str(handle.path)

    def _relative(self, path) -> Optional[Path]:
        """Return the path relative to the root, for direct children only."""
        path = os.fsdecode(path)
        if os.path.dirname(path) != self.root:
            return None
        return Path(os.path.basename(path))

    def _emit(self, kind: RawEventKind, path) -> None:
        """Record a raw event on the handle."""
        relative = self._relative(path)
        if relative is None:
            return
        if self.config.should_ignore(self.handle.path / relative):
            return
        self.handle.add_event(RawEvent(kind, relative))

    def on_created(self, event):
        self._emit(RawEventKind.CREATED, event.src_path)

    def on_deleted(self, event):
        if os.fsdecode(event.src_path) == self.root:
            logger.warning(f"Watched directory was removed: {self.root}")
            self.handle.invalidate()
            return
        self._emit(RawEventKind.DELETED, event.src_path)

    def on_modified(self, event):
        self._emit(RawEventKind.MODIFIED, event.src_path)

    def on_moved(self, event):
        # A rename is reported as the old name going away and the new one
        # appearing; either side may lie outside the root.
        self._emit(RawEventKind.DELETED, event.src_path)
        self._emit(RawEventKind.CREATED, event.dest_path)


class WatchdogNotificationSource(NotificationSource):
    """
    Notification source backed by watchdog observers, one per handle.

    Directories are scheduled non-recursively.
    """

    def __init__(self, config: Optional[WatcherConfig] = None):
        """
        Initialize the source.

        Args:
            config: Watcher configuration
        """
        self.config = config or WatcherConfig()
        super().__init__(self.config.max_pending_events)
        self._observers: Dict[int, BaseObserver] = {}
        self._lock = threading.Lock()

    def _create_observer(self) -> BaseObserver:
        if self.config.use_polling:
            logger.debug(f"Using polling observer (interval: {self.config.poll_interval_s}s)")
            return PollingObserver(timeout=self.config.poll_interval_s)
        return Observer()

    def _start_watch(self, handle: WatchHandle) -> None:
        observer = self._create_observer()
        observer.schedule(
            HandleEventHandler(handle, self.config),
            str(handle.path),
            recursive=False,
        )
        observer.start()

        with self._lock:
            self._observers[handle.handle_id] = observer

    def _stop_watch(self, handle: WatchHandle) -> None:
        with self._lock:
            observer = self._observers.pop(handle.handle_id, None)

        if observer is None:
            return
        observer.stop()
        if observer is not threading.current_thread():
            observer.join(timeout=5.0)
