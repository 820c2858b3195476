"""Data models for the file watcher package."""

import itertools
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, Optional, Union


class EventKind(Enum):
    """Semantic kinds of file system events delivered to listeners."""
    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"


class RawEventKind(Enum):
    """Kinds reported by a notification source, including overflow."""
    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    OVERFLOW = "overflow"

    def to_event_kind(self) -> Optional[EventKind]:
        """Map to the semantic kind. OVERFLOW has no counterpart."""
        if self is RawEventKind.OVERFLOW:
            return None
        return EventKind(self.value)


class LoopState(Enum):
    """States of the background event loop."""
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


ALL_KINDS: FrozenSet[EventKind] = frozenset(EventKind)

_directory_ids = itertools.count(1)


def canonicalize(path: Union[str, Path]) -> Path:
    """
    Resolve a path to its absolute, symlink-free form.

    Missing trailing components are allowed, so paths of deleted files
    still canonicalize.

    Raises:
        OSError: If resolution fails (e.g. a symlink loop)
    """
    try:
        return Path(path).expanduser().resolve()
    except RuntimeError as e:
        # Older interpreters report symlink loops as RuntimeError
        raise OSError(str(e)) from e


@dataclass(frozen=True)
class RawEvent:
    """
    Event as reported by a notification source.

    Attributes:
        kind: Raw kind of the event
        relative_path: Path relative to the watched directory
            (None for OVERFLOW events)
    """
    kind: RawEventKind
    relative_path: Optional[Path] = None

    @classmethod
    def overflow(cls) -> "RawEvent":
        return cls(RawEventKind.OVERFLOW)

    @property
    def is_overflow(self) -> bool:
        return self.kind is RawEventKind.OVERFLOW


@dataclass(eq=False)
class WatchedDirectory:
    """
    A directory under watch together with its native watch handle.

    Attributes:
        path: Canonical absolute path of the directory
        handle: Opaque handle returned by the notification source
        kinds: Event kinds the directory was registered for
        active: False once the handle was cancelled or became invalid
        directory_id: Unique id; two registrations of the same path differ
    """
    path: Path
    handle: Any
    kinds: FrozenSet[EventKind] = ALL_KINDS
    active: bool = True
    directory_id: int = field(default_factory=lambda: next(_directory_ids))

    def __post_init__(self):
        if not self.path.is_absolute():
            raise ValueError(f"path must be absolute: {self.path}")

    def resolve(self, relative_path: Path) -> Path:
        """Resolve a path reported relative to this directory."""
        return self.path / relative_path


@dataclass(frozen=True)
class EventRecord:
    """
    A translated event, consumed immediately by the dispatcher.

    Attributes:
        kind: Semantic kind of the event
        path: Absolute path of the affected entry
        directory: The watched directory the event originated from
    """
    kind: EventKind
    path: Path
    directory: WatchedDirectory

    def __post_init__(self):
        if not self.path.is_absolute():
            raise ValueError(f"path must be absolute: {self.path}")

    @classmethod
    def from_raw(cls, raw: RawEvent, directory: WatchedDirectory) -> Optional["EventRecord"]:
        """
        Translate a raw event against its directory.

        Returns:
            The event record, or None for overflow events
        """
        kind = raw.kind.to_event_kind()
        if kind is None or raw.relative_path is None:
            return None
        return cls(kind=kind, path=directory.resolve(raw.relative_path), directory=directory)
