"""Thread-safe management of watched directories."""

import logging
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .exceptions import DirectoryError, DirectoryNotFoundError, SourceError
from .models import ALL_KINDS, EventKind, WatchedDirectory, canonicalize
from .source import NotificationSource

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class DirectoryRegistry:
    """
    Thread-safe registry of directories being watched.

    Registering the same canonical path twice produces two independent
    entries, each with its own handle, so events in that directory are
    dispatched twice.
    """

    def __init__(self, source: NotificationSource):
        """
        Initialize the registry.

        Args:
            source: Notification source used to create watch handles
        """
        self._source = source
        self._directories: List[WatchedDirectory] = []
        self._lock = threading.RLock()

    def register(self, path: PathLike, kinds: Iterable[EventKind] = ALL_KINDS) -> WatchedDirectory:
        """
        Register a directory with the notification source.

        Args:
            path: Directory to watch
            kinds: Event kinds to watch for

        Returns:
            The new watched directory

        Raises:
            DirectoryNotFoundError: If path is not an existing directory
            RegistrationError: If the notification source refuses the path
            SourceClosedError: If the notification source is closed
        """
        try:
            resolved = canonicalize(path)
        except OSError as e:
            raise DirectoryNotFoundError(f"Cannot resolve directory {path}: {e}") from e

        if not resolved.is_dir():
            raise DirectoryNotFoundError(f"Not an existing directory: {resolved}")

        kinds = frozenset(kinds)
        # find_by_handle() blocks until the entry for a new handle exists
        with self._lock:
            handle = self._source.register(resolved, kinds)
            directory = WatchedDirectory(path=resolved, handle=handle, kinds=kinds)
            self._directories.append(directory)

        logger.info(f"Watching directory: {resolved}")
        return directory

    def add_directory(self, path: PathLike) -> bool:
        """
        Add a directory to watch.

        Failures are logged and reported through the return value.

        Args:
            path: Directory to watch

        Returns:
            True if the directory is now watched
        """
        try:
            self.register(path)
            return True
        except (DirectoryError, SourceError) as e:
            logger.error(f"Failed to add directory {path}: {e}")
            return False

    def add_directories(self, paths: Iterable[PathLike]) -> int:
        """
        Add several directories. A failure does not stop the others.

        Args:
            paths: Directories to watch

        Returns:
            Number of directories added
        """
        return sum(1 for path in paths if self.add_directory(path))

    def remove_directory(self, path: PathLike) -> int:
        """
        Stop watching every entry registered for a path.

        Args:
            path: Directory to stop watching

        Returns:
            Number of entries removed
        """
        try:
            resolved = canonicalize(path)
        except OSError:
            return 0

        with self._lock:
            removed = [d for d in self._directories if d.path == resolved]
            self._directories = [d for d in self._directories if d.path != resolved]

        for directory in removed:
            directory.active = False
            self._source.cancel(directory.handle)

        if removed:
            logger.info(f"Stopped watching directory: {resolved}")
        return len(removed)

    def find_by_handle(self, handle: object) -> Optional[WatchedDirectory]:
        """
        Find the directory that owns a watch handle.

        Args:
            handle: Handle returned by the notification source

        Returns:
            The watched directory, or None if it was removed
        """
        with self._lock:
            for directory in self._directories:
                if directory.handle is handle:
                    return directory
            return None

    def deactivate(self, handle: object) -> Optional[WatchedDirectory]:
        """
        Mark the directory owning an invalid handle as inactive.

        The entry is kept so it still shows up in listings.

        Args:
            handle: Handle that is no longer valid

        Returns:
            The deactivated directory, or None if it is unknown or was
            already inactive
        """
        with self._lock:
            directory = self.find_by_handle(handle)
            if directory is None or not directory.active:
                return None
            directory.active = False

        self._source.cancel(handle)
        logger.warning(f"Directory is no longer watched: {directory.path}")
        return directory

    def list_directories(self, active_only: bool = False) -> Tuple[WatchedDirectory, ...]:
        """
        Get a snapshot of the watched directories in registration order.

        Args:
            active_only: Leave out directories whose handle became invalid

        Returns:
            Tuple of watched directories
        """
        with self._lock:
            if active_only:
                return tuple(d for d in self._directories if d.active)
            return tuple(self._directories)

    def __len__(self) -> int:
        """Return the number of registered directories."""
        with self._lock:
            return len(self._directories)

    def __contains__(self, path: PathLike) -> bool:
        """Check if a path has at least one registration."""
        try:
            resolved = canonicalize(path)
        except OSError:
            return False
        with self._lock:
            return any(d.path == resolved for d in self._directories)
