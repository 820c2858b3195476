"""Tests for config module."""

import pytest
from pathlib import Path

from src.filewatcher.config import WatcherConfig


class TestWatcherConfig:
    """Tests for WatcherConfig class."""

    def test_default_values(self):
        config = WatcherConfig()
        assert config.settle_delay_ms == 100
        assert config.settle_delay_s == 0.1
        assert config.stop_timeout_s == 60.0
        assert config.max_pending_events == 512
        assert config.use_polling is False
        assert config.poll_interval_s == 1.0
        assert config.ignore_patterns == []
        assert config.thread_name == "FileWatcher"

    def test_custom_values(self):
        config = WatcherConfig(
            settle_delay_ms=0,
            stop_timeout_s=5.0,
            max_pending_events=10,
            use_polling=True,
        )
        assert config.settle_delay_s == 0.0
        assert config.stop_timeout_s == 5.0
        assert config.max_pending_events == 10
        assert config.use_polling is True

    def test_negative_settle_delay_rejected(self):
        with pytest.raises(ValueError):
            WatcherConfig(settle_delay_ms=-1)

    def test_non_positive_stop_timeout_rejected(self):
        with pytest.raises(ValueError):
            WatcherConfig(stop_timeout_s=0)

    def test_zero_pending_events_rejected(self):
        with pytest.raises(ValueError):
            WatcherConfig(max_pending_events=0)

    def test_nothing_ignored_by_default(self):
        config = WatcherConfig()
        assert config.should_ignore(Path("/path/to/file.tmp")) is False
        assert config.should_ignore(Path("/path/to/file.txt")) is False

    def test_custom_ignore_patterns(self):
        config = WatcherConfig(ignore_patterns=["*.log", "*.swp", "node_modules/*"])
        assert config.should_ignore(Path("/path/debug.log")) is True
        assert config.should_ignore(Path("/path/.file.swp")) is True
        assert config.should_ignore(Path("/path/node_modules/package/index.js")) is True
        assert config.should_ignore(Path("/path/file.txt")) is False


class TestWatcherConfigFromEnv:
    """Tests for WatcherConfig.from_env."""

    def test_defaults_without_variables(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        for name in ("SETTLE_DELAY_MS", "STOP_TIMEOUT_S", "USE_POLLING", "IGNORE_PATTERNS"):
            monkeypatch.delenv(f"FILEWATCHER_{name}", raising=False)

        config = WatcherConfig.from_env(env_file=tmp_path / "missing.env")

        assert config == WatcherConfig()

    def test_reads_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FILEWATCHER_SETTLE_DELAY_MS", "250")
        monkeypatch.setenv("FILEWATCHER_STOP_TIMEOUT_S", "2.5")
        monkeypatch.setenv("FILEWATCHER_USE_POLLING", "yes")
        monkeypatch.setenv("FILEWATCHER_IGNORE_PATTERNS", "*.tmp, *.swp")

        config = WatcherConfig.from_env(env_file=tmp_path / "missing.env")

        assert config.settle_delay_ms == 250
        assert config.stop_timeout_s == 2.5
        assert config.use_polling is True
        assert config.ignore_patterns == ["*.tmp", "*.swp"]

    def test_reads_dotenv_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("WATCHTEST_MAX_PENDING_EVENTS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("WATCHTEST_MAX_PENDING_EVENTS=64\n")

        config = WatcherConfig.from_env(prefix="WATCHTEST_", env_file=env_file)

        assert config.max_pending_events == 64

    def test_environment_wins_over_dotenv(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WATCHTEST_SETTLE_DELAY_MS", "5")
        env_file = tmp_path / ".env"
        env_file.write_text("WATCHTEST_SETTLE_DELAY_MS=500\n")

        config = WatcherConfig.from_env(prefix="WATCHTEST_", env_file=env_file)

        assert config.settle_delay_ms == 5

    def test_invalid_number_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WATCHTEST_SETTLE_DELAY_MS", "soon")

        with pytest.raises(ValueError, match="settle_delay_ms"):
            WatcherConfig.from_env(prefix="WATCHTEST_", env_file=tmp_path / "missing.env")

    def test_invalid_boolean_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WATCHTEST_USE_POLLING", "maybe")

        with pytest.raises(ValueError, match="use_polling"):
            WatcherConfig.from_env(prefix="WATCHTEST_", env_file=tmp_path / "missing.env")
