"""Routing of translated events to registered listeners."""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from .listeners import Listener, ListenerRegistry
from .models import EventKind, EventRecord, canonicalize

logger = logging.getLogger(__name__)

FilterErrorCallback = Callable[[Listener, Path, Exception], None]


class Dispatcher:
    """
    Delivers events to the listeners registered for their kind.

    Listeners are called synchronously, in registration order, on the
    caller's thread. A slow listener delays every listener and event
    after it.
    """

    def __init__(
        self,
        listeners: ListenerRegistry,
        on_filter_error: Optional[FilterErrorCallback] = None,
        halt_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            listeners: Registry to resolve listeners from
            on_filter_error: Called when a target filter cannot be
                evaluated; the listener is skipped for that event
            halt_event: Once set, no further listener is invoked
        """
        self.listeners = listeners
        self.on_filter_error = on_filter_error
        self.halt_event = halt_event

    def dispatch(self, kind: EventKind, path: Path) -> int:
        """
        Deliver one event.

        Listeners with a target only receive events whose path
        canonically equals the target. If either path cannot be
        canonicalized the listener is skipped.

        Args:
            kind: Kind of the event
            path: Absolute path of the affected entry

        Returns:
            Number of listeners invoked
        """
        invoked = 0
        for listener in self.listeners.listeners_for(kind):
            if self.halt_event is not None and self.halt_event.is_set():
                break
            if listener.target is not None and not self._matches_target(listener, path):
                continue

            handler = listener.handler_for(kind)
            if handler is None:
                continue

            try:
                handler(path)
            except Exception as e:
                logger.error(
                    f"Listener {listener!r} failed on {kind.value} {path}: {e}",
                    exc_info=True,
                )
            invoked += 1

        if invoked:
            logger.debug(f"Dispatched {kind.value} {path} to {invoked} listener(s)")
        return invoked

    def dispatch_record(self, record: EventRecord) -> int:
        """Deliver a translated event record."""
        return self.dispatch(record.kind, record.path)

    def _matches_target(self, listener: Listener, path: Path) -> bool:
        try:
            return canonicalize(path) == canonicalize(listener.target)
        except OSError as e:
            logger.warning(f"Cannot compare {path} with target of {listener!r}: {e}")
            if self.on_filter_error is not None:
                try:
                    self.on_filter_error(listener, path, e)
                except Exception as e:
                    logger.error(f"Filter error callback failed: {e}", exc_info=True)
            return False
