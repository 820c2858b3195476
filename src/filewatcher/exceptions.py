"""Custom exceptions for the file watcher package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class DirectoryError(WatcherError):
    """Error related to watched directory management."""
    pass


class DirectoryNotFoundError(DirectoryError):
    """Specified path does not exist or is not a directory."""
    pass


class RegistrationError(DirectoryError):
    """The notification source refused to watch a directory."""
    pass


class SourceError(WatcherError):
    """Error related to the notification source."""
    pass


class SourceClosedError(SourceError):
    """Notification source has been closed."""
    pass


class WatchInterrupted(SourceError):
    """A blocking take() was interrupted before any handle was signalled."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Watcher is already running."""
    pass


class WatcherStoppedError(WatcherError):
    """Watcher has been stopped and cannot be restarted."""
    pass
