"""Listener capabilities and the per-kind listener registry."""

import logging
import threading
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from .models import EventKind

logger = logging.getLogger(__name__)

Handler = Callable[[Path], None]


@runtime_checkable
class HandlesCreated(Protocol):
    """Capability: wants to hear about created entries."""

    def on_created(self, path: Path) -> None:
        ...


@runtime_checkable
class HandlesDeleted(Protocol):
    """Capability: wants to hear about deleted entries."""

    def on_deleted(self, path: Path) -> None:
        ...


@runtime_checkable
class HandlesModified(Protocol):
    """Capability: wants to hear about modified entries."""

    def on_modified(self, path: Path) -> None:
        ...


@runtime_checkable
class SpecificTarget(Protocol):
    """Capability: only wants events for one file."""

    target_path: Union[str, Path]


# Capability method for each kind, in dispatch-table order
CAPABILITY_METHODS: Tuple[Tuple[EventKind, str], ...] = (
    (EventKind.CREATED, "on_created"),
    (EventKind.DELETED, "on_deleted"),
    (EventKind.MODIFIED, "on_modified"),
)


class Listener:
    """
    An explicit subscription: one handler per event kind plus an
    optional target file.

    Attributes:
        handlers: Handler to call for each kind of interest
        target: If set, only events for this path are delivered
        source: The object the listener was derived from, if any
    """

    def __init__(
        self,
        handlers: Mapping[EventKind, Handler],
        target: Optional[Union[str, Path]] = None,
        source: Any = None,
    ):
        for kind, handler in handlers.items():
            if not isinstance(kind, EventKind):
                raise TypeError(f"Unknown event kind: {kind!r}")
            if not callable(handler):
                raise TypeError(f"Handler for {kind.value} is not callable")
        self.handlers: Dict[EventKind, Handler] = dict(handlers)
        self.target: Optional[Path] = Path(target) if target is not None else None
        self.source = source

    @classmethod
    def from_object(cls, obj: Any) -> "Listener":
        """
        Build a listener from the capabilities an object exposes.

        Args:
            obj: Object implementing any of on_created, on_deleted,
                on_modified and optionally target_path

        Returns:
            The listener (with no handlers if obj has no capability)
        """
        handlers = {}
        for kind, method_name in CAPABILITY_METHODS:
            method = getattr(obj, method_name, None)
            if callable(method):
                handlers[kind] = method

        target = None
        if isinstance(obj, SpecificTarget):
            target = obj.target_path

        return cls(handlers, target=target, source=obj)

    @property
    def kinds(self) -> frozenset:
        return frozenset(self.handlers)

    def handler_for(self, kind: EventKind) -> Optional[Handler]:
        return self.handlers.get(kind)

    def __repr__(self) -> str:
        kinds = ",".join(k.value for k in EventKind if k in self.handlers)
        name = type(self.source).__name__ if self.source is not None else "Listener"
        if self.target is not None:
            return f"<{name} kinds={kinds} target={self.target}>"
        return f"<{name} kinds={kinds}>"


class ListenerRegistry:
    """
    Thread-safe store of listeners, indexed by event kind.

    Each kind keeps its listeners in registration order. Lists are
    replaced rather than mutated, so listeners_for() returns a snapshot
    that stays consistent while registrations continue.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._listeners: Dict[EventKind, Tuple[Listener, ...]] = {kind: () for kind in EventKind}
        self._lock = threading.Lock()

    def register(self, listener: Any) -> Optional[Listener]:
        """
        Register a listener for every kind it handles.

        No duplicate detection is done: registering the same listener
        twice means it is called twice per matching event.

        Args:
            listener: A Listener, or any object with capability methods

        Returns:
            The registered Listener, or None if it handles no kind
        """
        if not isinstance(listener, Listener):
            listener = Listener.from_object(listener)

        if not listener.handlers:
            logger.debug(f"Ignoring listener without capabilities: {listener!r}")
            return None

        with self._lock:
            for kind in EventKind:
                if kind in listener.handlers:
                    self._listeners[kind] = self._listeners[kind] + (listener,)

        logger.debug(f"Registered listener {listener!r}")
        return listener

    def subscribe(
        self,
        kinds: Iterable[EventKind],
        handler: Handler,
        target: Optional[Union[str, Path]] = None,
    ) -> Optional[Listener]:
        """
        Register one handler for a set of kinds.

        The handler is still called once per event, for each kind
        separately.

        Args:
            kinds: Event kinds of interest
            handler: Callable taking the absolute path of the entry
            target: Optional file to restrict delivery to

        Returns:
            The registered Listener, or None if kinds is empty
        """
        return self.register(Listener({kind: handler for kind in kinds}, target=target))

    def unregister(self, listener: Any) -> int:
        """
        Remove every registration of a listener.

        Args:
            listener: A Listener returned by register(), or the object
                originally passed to it

        Returns:
            Number of per-kind registrations removed
        """
        def matches(candidate: Listener) -> bool:
            return candidate is listener or (
                candidate.source is not None and candidate.source is listener
            )

        removed = 0
        with self._lock:
            for kind, current in self._listeners.items():
                kept = tuple(l for l in current if not matches(l))
                removed += len(current) - len(kept)
                self._listeners[kind] = kept

        if removed:
            logger.debug(f"Unregistered listener {listener!r}")
        return removed

    def listeners_for(self, kind: EventKind) -> Tuple[Listener, ...]:
        """
        Get the listeners for a kind, in registration order.

        Args:
            kind: Event kind

        Returns:
            Snapshot tuple of listeners
        """
        with self._lock:
            return self._listeners[kind]

    def clear(self) -> None:
        """Remove all listeners."""
        with self._lock:
            self._listeners = {kind: () for kind in EventKind}

    def __len__(self) -> int:
        """Return the number of distinct registered listeners."""
        with self._lock:
            seen = {id(l) for current in self._listeners.values() for l in current}
            return len(seen)
