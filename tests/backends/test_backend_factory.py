"""Tests for the backing store registry."""

import pytest

from aesprefs.backends import (
    FileSystemBackingStore,
    MemoryBackingStore,
    get_backend,
    list_available_backends,
    register_backend,
)
from aesprefs.backends import _backend_registry
from aesprefs.base import BackendError


class TestGetBackend:
    """Tests for get_backend."""

    def test_default_is_memory(self):
        """Test the default backend."""
        assert isinstance(get_backend(), MemoryBackingStore)

    def test_filesystem(self, tmp_path):
        """Test options are forwarded."""
        store = get_backend("filesystem", base_path=tmp_path, namespace="ns")
        assert isinstance(store, FileSystemBackingStore)
        assert store.path == tmp_path / "ns.json"

    @pytest.mark.parametrize("alias", ["fs", "file", "FileSystem"])
    def test_aliases(self, alias, tmp_path):
        """Test aliases and case-insensitive names."""
        assert isinstance(get_backend(alias, base_path=tmp_path), FileSystemBackingStore)

    def test_unknown(self):
        """Test unknown backends raise BackendError."""
        with pytest.raises(BackendError, match="Available backends"):
            get_backend("redis")


class TestRegisterBackend:
    """Tests for register_backend."""

    def test_register(self):
        """Test a registered backend can be created by name."""

        @register_backend("custom")
        class CustomStore(MemoryBackingStore):
            name = "custom"

        try:
            assert "custom" in list_available_backends()
            assert isinstance(get_backend("custom", namespace="x"), CustomStore)
        finally:
            _backend_registry.pop("custom", None)

    def test_builtin_list(self):
        """Test built-in backends are listed."""
        assert list_available_backends() == ["filesystem", "memory"]
