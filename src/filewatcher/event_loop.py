"""The background loop: wait, settle, drain, translate, dispatch."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .directory_registry import DirectoryRegistry
from .dispatcher import Dispatcher
from .exceptions import SourceClosedError, WatchInterrupted
from .models import EventRecord, LoopState
from .source import NotificationSource, WatchHandle

logger = logging.getLogger(__name__)


@dataclass
class LoopStats:
    """Counters kept by the event loop."""

    wakeups: int = 0
    events_dispatched: int = 0
    overflows: int = 0
    invalidated: int = 0


class EventLoop:
    """
    Consumes watch handles from a notification source until stopped.

    Each wake-up is followed by a settle delay, so writers that are still
    updating a file have a chance to finish before the events are read.
    This narrows, but does not remove, races with slow writers.
    """

    def __init__(
        self,
        source: NotificationSource,
        directories: DirectoryRegistry,
        dispatcher: Dispatcher,
        stop_event: threading.Event,
        halt_event: threading.Event,
        settle_delay_s: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the loop.

        Args:
            source: Notification source to take handles from
            directories: Registry owning the watched directories
            dispatcher: Dispatcher events are handed to
            stop_event: Set when shutdown is requested
            halt_event: Set when the loop must not dispatch anything more
            settle_delay_s: Pause after each wake-up
            sleep: Function used for the settle delay
        """
        self._source = source
        self._directories = directories
        self._dispatcher = dispatcher
        self._stop_event = stop_event
        self._halt_event = halt_event
        self._settle_delay_s = settle_delay_s
        self._sleep = sleep
        self._state = LoopState.IDLE
        self._state_lock = threading.Lock()
        self.stats = LoopStats()

    @property
    def state(self) -> LoopState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: LoopState) -> None:
        with self._state_lock:
            if self._state is LoopState.STOPPED:
                return
            self._state = state

    def run(self, delay_s: float = 0.0) -> None:
        """Run until shutdown is requested. Used as the worker thread target."""
        if delay_s > 0:
            logger.debug(f"Event loop starting in {delay_s}s")
            if self._stop_event.wait(delay_s):
                self._set_state(LoopState.STOPPED)
                logger.info("Event loop stopped before it started")
                return

        self._set_state(LoopState.RUNNING)
        logger.info("Event loop started")

        try:
            while not self._stop_event.is_set():
                try:
                    handle = self._source.take()
                except WatchInterrupted:
                    if self._stop_event.is_set():
                        break
                    logger.debug("Wait interrupted without shutdown, waiting again")
                    continue
                except SourceClosedError:
                    logger.debug("Notification source closed")
                    break

                try:
                    self._process(handle)
                except Exception as e:
                    logger.error(f"Error processing events for {handle}: {e}", exc_info=True)
        finally:
            self._set_state(LoopState.DRAINING)
            self._set_state(LoopState.STOPPED)
            logger.info(
                f"Event loop stopped after {self.stats.wakeups} wake-ups, "
                f"{self.stats.events_dispatched} events"
            )

    def _process(self, handle: WatchHandle) -> None:
        """Settle, drain and dispatch one signalled handle."""
        self.stats.wakeups += 1
        if self._settle_delay_s > 0:
            self._sleep(self._settle_delay_s)

        if self._stop_event.is_set():
            self._set_state(LoopState.DRAINING)

        directory = self._directories.find_by_handle(handle)
        if directory is None:
            # Removed while the handle was queued
            handle.poll_events()
            handle.reset()
            return

        events = handle.poll_events()
        for raw in events:
            if raw.is_overflow:
                self.stats.overflows += 1
                logger.warning(f"Events were lost in {directory.path} (overflow)")
                continue

            record = EventRecord.from_raw(raw, directory)
            if record is None:
                continue
            if self._halt_event.is_set():
                return

            logger.debug(f"{record.kind.value}: {record.path}")
            self._dispatcher.dispatch_record(record)
            self.stats.events_dispatched += 1

        if not handle.reset() and self._directories.deactivate(handle) is not None:
            self.stats.invalidated += 1

    def halt(self) -> None:
        """Forbid any further dispatch, for a worker that could not be joined."""
        self._halt_event.set()
        self._set_state(LoopState.STOPPED)
