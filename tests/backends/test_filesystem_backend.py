"""Tests for the JSON-file backing store."""

import json
import os
from pathlib import Path

import pytest

from aesprefs.backends import FileSystemBackingStore
from aesprefs.base import BackendUnavailableError


@pytest.fixture
def store(tmp_path):
    return FileSystemBackingStore(base_path=tmp_path, namespace="com.example.app")


class TestFileSystemBackingStore:
    """Tests for FileSystemBackingStore."""

    def test_file_path(self, tmp_path, store):
        """Test one JSON document per namespace."""
        assert store.path == tmp_path / "com.example.app.json"

    def test_unsafe_namespace(self, tmp_path):
        """Test namespaces are made filename-safe."""
        store = FileSystemBackingStore(base_path=tmp_path, namespace="../etc/passwd")
        assert store.path.parent == tmp_path
        assert store.path.name == ".._etc_passwd.json"

    def test_persists_across_instances(self, tmp_path, store):
        """Test records survive a new instance."""
        store.put("text", "hello")
        store.put_int("number", 42)
        again = FileSystemBackingStore(base_path=tmp_path, namespace="com.example.app")
        assert again.get("text") == "hello"
        assert again.get_int("number") == 42

    def test_document_format(self, store):
        """Test the file holds a JSON object of records."""
        store.put("a", "x")
        store.put_int("b", 7)
        with open(store.path, encoding="utf-8") as f:
            assert json.load(f) == {"a": "x", "b": 7}

    def test_pretty_print(self, tmp_path):
        """Test pretty_print indents the document."""
        store = FileSystemBackingStore(base_path=tmp_path, namespace="p", pretty_print=True)
        store.put("a", "x")
        assert "\n" in store.path.read_text(encoding="utf-8")

    def test_creates_directories(self, tmp_path):
        """Test missing base directories are created."""
        store = FileSystemBackingStore(base_path=tmp_path / "deep" / "dir", namespace="n")
        store.put("a", "x")
        assert store.path.exists()

    def test_no_temp_files_left(self, tmp_path, store):
        """Test atomic writes leave only the document."""
        for i in range(5):
            store.put(f"k{i}", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["com.example.app.json"]

    def test_remove(self, tmp_path, store):
        """Test removal is persisted."""
        store.put("a", "x")
        assert store.remove("a")
        again = FileSystemBackingStore(base_path=tmp_path, namespace="com.example.app")
        assert again.get("a") is None

    def test_clear_deletes_file(self, store):
        """Test clear removes the document."""
        store.put("a", "x")
        store.clear()
        assert not store.path.exists()
        assert store.keys() == []

    def test_reload(self, tmp_path, store):
        """Test reload picks up changes from another instance."""
        store.put("a", "x")
        other = FileSystemBackingStore(base_path=tmp_path, namespace="com.example.app")
        other.put("b", "y")
        assert store.get("b") is None
        store.reload()
        assert store.get("b") == "y"

    def test_corrupt_document(self, store):
        """Test an unreadable document raises BackendUnavailableError."""
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(BackendUnavailableError):
            store.keys()

    def test_non_object_document(self, store):
        """Test a JSON document that is not an object is rejected."""
        store.path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(BackendUnavailableError, match="JSON object"):
            store.initialize()

    def test_write_failure(self, store, monkeypatch):
        """Test a failing rename surfaces as BackendUnavailableError."""

        def fail(src, dst):
            raise OSError("disk full")

        store.initialize()
        monkeypatch.setattr(os, "replace", fail)
        with pytest.raises(BackendUnavailableError, match="disk full"):
            store.put("a", "x")
        assert store.get("a") is None


class TestFailureLeavesCacheIntact:
    """Tests that a failed mutation does not change what the store reports."""

    @staticmethod
    def _fail_replace(monkeypatch):
        def fail(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail)

    def test_failed_overwrite_keeps_old_value(self, store, monkeypatch):
        """Test an overwrite that cannot be flushed keeps the previous value."""
        store.put("a", "old")
        self._fail_replace(monkeypatch)
        with pytest.raises(BackendUnavailableError):
            store.put("a", "new")
        assert store.get("a") == "old"

    def test_failed_delete_keeps_record(self, store, monkeypatch):
        """Test a removal that cannot be flushed keeps the record."""
        store.put("a", "x")
        self._fail_replace(monkeypatch)
        with pytest.raises(BackendUnavailableError):
            store.remove("a")
        assert store.get("a") == "x"

    def test_failed_clear_keeps_records(self, store, monkeypatch):
        """Test a clear whose unlink fails keeps cache and file in step."""
        store.put("a", "x")
        store.put_int("b", 2)

        def fail(self, missing_ok=False):
            raise OSError("read-only file system")

        monkeypatch.setattr(Path, "unlink", fail)
        with pytest.raises(BackendUnavailableError, match="read-only"):
            store.clear()
        assert sorted(store.keys()) == ["a", "b"]
        assert store.path.exists()
        assert store.get("a") == "x"
