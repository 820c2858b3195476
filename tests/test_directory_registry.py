"""Tests for directory registry module."""

import pytest
import threading
from pathlib import Path

from src.filewatcher.directory_registry import DirectoryRegistry
from src.filewatcher.exceptions import DirectoryNotFoundError, RegistrationError
from src.filewatcher.models import ALL_KINDS, EventKind


class TestDirectoryRegistry:
    """Tests for DirectoryRegistry class."""

    def test_create_empty_registry(self, fake_source):
        registry = DirectoryRegistry(fake_source)
        assert len(registry) == 0
        assert registry.list_directories() == ()

    def test_register(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)

        directory = registry.register(tmp_path)

        assert directory.path == tmp_path.resolve()
        assert directory.kinds == ALL_KINDS
        assert directory.active is True
        assert directory.handle in fake_source.started
        assert len(registry) == 1

    def test_register_with_kinds(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)

        directory = registry.register(tmp_path, kinds=[EventKind.CREATED])

        assert directory.kinds == frozenset({EventKind.CREATED})
        assert directory.handle.kinds == frozenset({EventKind.CREATED})

    def test_register_nonexistent_raises(self, fake_source):
        registry = DirectoryRegistry(fake_source)

        with pytest.raises(DirectoryNotFoundError):
            registry.register(Path("/nonexistent/path/12345"))

    def test_register_file_raises(self, fake_source, tmp_path):
        file_path = tmp_path / "file.txt"
        file_path.write_text("not a directory")
        registry = DirectoryRegistry(fake_source)

        with pytest.raises(DirectoryNotFoundError):
            registry.register(file_path)

    def test_register_refused_raises(self, fake_source, tmp_path):
        fake_source.refused.add(tmp_path.resolve())
        registry = DirectoryRegistry(fake_source)

        with pytest.raises(RegistrationError):
            registry.register(tmp_path)
        assert len(registry) == 0

    def test_add_directory_returns_bool(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)

        assert registry.add_directory(tmp_path) is True
        assert registry.add_directory(tmp_path / "missing") is False

    def test_add_directory_refused_returns_false(self, fake_source, tmp_path):
        fake_source.refused.add(tmp_path.resolve())
        registry = DirectoryRegistry(fake_source)

        assert registry.add_directory(tmp_path) is False

    def test_add_directories_best_effort(self, fake_source, tmp_path):
        root1 = tmp_path / "root1"
        root2 = tmp_path / "root2"
        root1.mkdir()
        root2.mkdir()
        registry = DirectoryRegistry(fake_source)

        added = registry.add_directories([root1, tmp_path / "missing", root2])

        assert added == 2
        assert [d.path for d in registry.list_directories()] == [root1.resolve(), root2.resolve()]

    def test_duplicate_path_gets_two_entries(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)

        first = registry.register(tmp_path)
        second = registry.register(tmp_path / "." / "sub" / "..")

        assert first.path == second.path
        assert first.handle is not second.handle
        assert len(registry) == 2

    def test_list_directories_is_snapshot(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)
        registry.register(tmp_path)

        snapshot = registry.list_directories()
        registry.register(tmp_path)

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1
        assert len(registry.list_directories()) == 2

    def test_list_directories_keeps_order(self, fake_source, tmp_path):
        names = ["c", "a", "b"]
        for name in names:
            (tmp_path / name).mkdir()
        registry = DirectoryRegistry(fake_source)

        for name in names:
            registry.register(tmp_path / name)

        assert [d.path.name for d in registry.list_directories()] == names

    def test_find_by_handle(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)
        directory = registry.register(tmp_path)

        assert registry.find_by_handle(directory.handle) is directory
        assert registry.find_by_handle(object()) is None

    def test_deactivate(self, fake_source, tmp_path):
        root1 = tmp_path / "root1"
        root2 = tmp_path / "root2"
        root1.mkdir()
        root2.mkdir()
        registry = DirectoryRegistry(fake_source)
        first = registry.register(root1)
        second = registry.register(root2)

        result = registry.deactivate(first.handle)

        assert result is first
        assert first.active is False
        assert second.active is True
        assert first.handle in fake_source.stopped
        assert registry.list_directories(active_only=True) == (second,)
        assert len(registry.list_directories()) == 2

    def test_deactivate_twice(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)
        directory = registry.register(tmp_path)

        assert registry.deactivate(directory.handle) is directory
        assert registry.deactivate(directory.handle) is None

        assert fake_source.stopped == [directory.handle]

    def test_remove_directory(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)
        first = registry.register(tmp_path)
        second = registry.register(tmp_path)

        removed = registry.remove_directory(tmp_path)

        assert removed == 2
        assert len(registry) == 0
        assert not first.handle.is_valid
        assert not second.handle.is_valid

    def test_remove_unknown_directory(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)

        assert registry.remove_directory(tmp_path) == 0

    def test_contains(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)
        registry.register(tmp_path)

        assert tmp_path in registry
        assert (tmp_path / "subdir") not in registry

    def test_thread_safety(self, fake_source, tmp_path):
        registry = DirectoryRegistry(fake_source)
        errors = []

        def add_directories():
            try:
                for i in range(10):
                    root = tmp_path / f"root_{threading.current_thread().name}_{i}"
                    root.mkdir(exist_ok=True)
                    registry.register(root)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=add_directories, name=f"t{i}") for i in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 0
        assert len(registry) == 50
