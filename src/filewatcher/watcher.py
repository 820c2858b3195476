"""Watcher facade: registration, start and stop of the event loop."""

import logging
import threading
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple, Union

from .config import WatcherConfig
from .directory_registry import DirectoryRegistry
from .dispatcher import Dispatcher, FilterErrorCallback
from .event_loop import EventLoop, LoopStats
from .exceptions import WatcherAlreadyRunningError, WatcherError, WatcherStoppedError
from .listeners import Handler, Listener, ListenerRegistry
from .models import EventKind, LoopState, WatchedDirectory
from .source import NotificationSource, WatchdogNotificationSource

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Watcher:
    """
    Watches directories and calls listeners for created, deleted and
    modified entries.

    One background thread runs the event loop. Listeners are called on
    that thread, so a slow listener holds up every event after it.
    Directories and listeners may be added or removed while running.

    Example:
        with Watcher("./data") as watcher:
            watcher.subscribe([EventKind.CREATED], print)
            watcher.start()
            ...
    """

    def __init__(
        self,
        directory: PathLike,
        config: Optional[WatcherConfig] = None,
        source: Optional[NotificationSource] = None,
        on_filter_error: Optional[FilterErrorCallback] = None,
    ):
        """
        Create a watcher for an initial directory.

        Args:
            directory: First directory to watch
            config: Watcher configuration
            source: Notification source (defaults to a watchdog source)
            on_filter_error: Called when a listener's target filter
                cannot be evaluated for an event

        Raises:
            DirectoryNotFoundError: If directory is not an existing directory
            RegistrationError: If the directory cannot be watched
        """
        self.config = config or WatcherConfig()
        self._source = source if source is not None else WatchdogNotificationSource(self.config)

        self._directories = DirectoryRegistry(self._source)
        self._listeners = ListenerRegistry()

        self._stop_event = threading.Event()
        self._halt_event = threading.Event()
        self._dispatcher = Dispatcher(
            self._listeners,
            on_filter_error=on_filter_error,
            halt_event=self._halt_event,
        )
        self._loop = EventLoop(
            self._source,
            self._directories,
            self._dispatcher,
            self._stop_event,
            self._halt_event,
            settle_delay_s=self.config.settle_delay_s,
        )

        self._thread: Optional[threading.Thread] = None
        self._stopped = False
        self._lock = threading.Lock()

        try:
            self._directories.register(directory)
        except WatcherError:
            self._source.close()
            raise

    @classmethod
    def create(cls, directory: PathLike, **kwargs: Any) -> "Watcher":
        """Create a watcher; see __init__ for arguments and errors."""
        return cls(directory, **kwargs)

    # Directories

    def add_directory(self, path: PathLike) -> bool:
        """
        Add a directory to watch.

        Args:
            path: Directory to watch

        Returns:
            True if added, False if the path is not a directory or cannot
            be watched
        """
        return self._directories.add_directory(path)

    def add_directories(self, paths: Iterable[PathLike]) -> int:
        """
        Add several directories; each one is attempted independently.

        Returns:
            Number of directories added
        """
        return self._directories.add_directories(paths)

    def remove_directory(self, path: PathLike) -> int:
        """
        Stop watching a directory.

        Returns:
            Number of registrations removed
        """
        return self._directories.remove_directory(path)

    def list_directories(self, active_only: bool = False) -> Tuple[WatchedDirectory, ...]:
        """Get a snapshot of the watched directories in registration order."""
        return self._directories.list_directories(active_only=active_only)

    # Listeners

    def register(self, listener: Any) -> Optional[Listener]:
        """
        Register a listener.

        Args:
            listener: A Listener, or any object with some of on_created,
                on_deleted, on_modified and optionally target_path

        Returns:
            The registered Listener, or None if it handles no kind
        """
        return self._listeners.register(listener)

    def subscribe(
        self,
        kinds: Iterable[EventKind],
        handler: Handler,
        target: Optional[PathLike] = None,
    ) -> Optional[Listener]:
        """
        Register a handler for some kinds, optionally for one file only.

        Returns:
            The registered Listener, or None if kinds is empty
        """
        return self._listeners.subscribe(kinds, handler, target=target)

    def unregister(self, listener: Any) -> int:
        """
        Remove a listener.

        Returns:
            Number of per-kind registrations removed
        """
        return self._listeners.unregister(listener)

    # Lifecycle

    def start(self, delay_seconds: float = 0) -> None:
        """
        Start the event loop in the background and return immediately.

        Args:
            delay_seconds: Delay before the loop begins waiting for events

        Raises:
            WatcherAlreadyRunningError: If already started
            WatcherStoppedError: If the watcher was stopped
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

        with self._lock:
            if self._stopped:
                raise WatcherStoppedError("Watcher has been stopped")
            if self._thread is not None:
                raise WatcherAlreadyRunningError("Watcher is already running")

            self._thread = threading.Thread(
                target=self._loop.run,
                args=(delay_seconds,),
                name=self.config.thread_name,
            )
            self._thread.daemon = True
            self._thread.start()

        logger.info(f"Watcher started for {len(self._directories)} directory(ies)")

    def stop(self) -> bool:
        """
        Stop the event loop and release the notification source.

        Waits up to config.stop_timeout_s for the loop to finish the batch
        it is processing. If it does not finish in time it is halted: it
        will not call any further listener, and its thread is abandoned.
        When called from a listener it does not wait: no further listener
        is called and the loop exits once the listener returns.
        Calling stop() again is a no-op.

        Returns:
            True if the loop finished in time (or never ran)
        """
        with self._lock:
            if self._stopped:
                return True
            self._stopped = True
            thread = self._thread

        self._stop_event.set()
        self._source.interrupt()

        finished = True
        try:
            if thread is None:
                self._loop.halt()
            elif thread is threading.current_thread():
                # Called from a listener; the loop exits once it returns
                logger.debug("stop() called on the event loop thread")
                self._loop.halt()
            else:
                thread.join(timeout=self.config.stop_timeout_s)
                if thread.is_alive():
                    finished = False
                    logger.error(
                        f"Event loop did not stop within {self.config.stop_timeout_s}s, halting it"
                    )
                    self._loop.halt()
        finally:
            self._source.close()

        logger.info("Watcher stopped")
        return finished

    @property
    def state(self) -> LoopState:
        """Current state of the event loop."""
        return self._loop.state

    @property
    def is_running(self) -> bool:
        """Check if the event loop is running."""
        return self._loop.state is LoopState.RUNNING

    @property
    def stats(self) -> LoopStats:
        return self._loop.stats

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
