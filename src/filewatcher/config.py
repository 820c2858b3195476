"""Configuration for the file watcher package."""

import fnmatch
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


@dataclass
class WatcherConfig:
    """
    Configuration options for the file watcher.

    Attributes:
        settle_delay_ms: Pause after a wake-up before draining events, so
            writers can finish updating content and timestamps
        stop_timeout_s: How long stop() waits for the worker to finish
        max_pending_events: Events buffered per directory before overflow
        use_polling: Use a polling observer instead of OS notifications
        poll_interval_s: Polling interval when use_polling is set
        ignore_patterns: Glob patterns for paths that are never reported
        thread_name: Name of the background worker thread
    """
    settle_delay_ms: int = 100
    stop_timeout_s: float = 60.0
    max_pending_events: int = 512
    use_polling: bool = False
    poll_interval_s: float = 1.0
    ignore_patterns: List[str] = field(default_factory=list)
    thread_name: str = "FileWatcher"

    def __post_init__(self):
        if self.settle_delay_ms < 0:
            raise ValueError("settle_delay_ms must not be negative")
        if self.stop_timeout_s <= 0:
            raise ValueError("stop_timeout_s must be positive")
        if self.max_pending_events < 1:
            raise ValueError("max_pending_events must be at least 1")
        if self.poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be positive")

    @property
    def settle_delay_s(self) -> float:
        return self.settle_delay_ms / 1000.0

    def should_ignore(self, path: Path) -> bool:
        """
        Check if a path should be ignored based on ignore patterns.

        Args:
            path: Path to check

        Returns:
            True if the path should be ignored
        """
        path_str = str(path)
        name = path.name

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path_str, pattern):
                return True
            if fnmatch.fnmatch(path_str, f"*/{pattern}"):
                return True

        return False

    @classmethod
    def from_env(cls, prefix: str = "FILEWATCHER_", env_file: Optional[Path] = None) -> "WatcherConfig":
        """
        Build a config from environment variables.

        A ``.env`` file is loaded first; variables already set in the
        environment win. Each field maps to ``<prefix><FIELD_NAME>``, and
        ``ignore_patterns`` is a comma-separated list.

        Args:
            prefix: Environment variable prefix
            env_file: Explicit .env file to load instead of the default lookup

        Returns:
            The configuration

        Raises:
            ValueError: If a variable cannot be converted
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        overrides = {}
        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            overrides[f.name] = _convert(f.name, raw, f.type)
        return cls(**overrides)


def _convert(name: str, raw: str, type_: object):
    raw = raw.strip()
    if type_ in (bool, "bool"):
        if raw.lower() in ("1", "true", "yes", "on"):
            return True
        if raw.lower() in ("0", "false", "no", "off", ""):
            return False
        raise ValueError(f"{name} must be a boolean, got {raw!r}")
    if type_ in (int, "int"):
        try:
            return int(raw)
        except ValueError as e:
            raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if type_ in (float, "float"):
        try:
            return float(raw)
        except ValueError as e:
            raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if name == "ignore_patterns":
        return [p.strip() for p in raw.split(",") if p.strip()]
    return raw
