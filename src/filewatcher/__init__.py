"""
File Watcher Package

Watches directories for file system changes and calls registered
listeners for each event.

Features:
- Created, deleted and modified events for one or more directories
- Capability-based listeners, dispatched per event kind in registration order
- Optional single-file target filter per listener
- One background thread with a settle delay after each wake-up
- Dynamic directory and listener registration while running
- Bounded, idempotent stop
"""

from .models import (
    EventKind,
    RawEventKind,
    RawEvent,
    EventRecord,
    WatchedDirectory,
    LoopState,
    canonicalize,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    DirectoryError,
    DirectoryNotFoundError,
    RegistrationError,
    SourceError,
    SourceClosedError,
    WatchInterrupted,
    WatcherAlreadyRunningError,
    WatcherStoppedError,
)

from .source import NotificationSource, WatchHandle, WatchdogNotificationSource
from .directory_registry import DirectoryRegistry
from .listeners import (
    HandlesCreated,
    HandlesDeleted,
    HandlesModified,
    SpecificTarget,
    Listener,
    ListenerRegistry,
)
from .dispatcher import Dispatcher
from .event_loop import EventLoop, LoopStats
from .watcher import Watcher


__all__ = [
    # Models
    "EventKind",
    "RawEventKind",
    "RawEvent",
    "EventRecord",
    "WatchedDirectory",
    "LoopState",
    "canonicalize",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "DirectoryError",
    "DirectoryNotFoundError",
    "RegistrationError",
    "SourceError",
    "SourceClosedError",
    "WatchInterrupted",
    "WatcherAlreadyRunningError",
    "WatcherStoppedError",
    # Components
    "NotificationSource",
    "WatchHandle",
    "WatchdogNotificationSource",
    "DirectoryRegistry",
    "HandlesCreated",
    "HandlesDeleted",
    "HandlesModified",
    "SpecificTarget",
    "Listener",
    "ListenerRegistry",
    "Dispatcher",
    "EventLoop",
    "LoopStats",
    # Facade
    "Watcher",
]

__version__ = "0.1.0"
