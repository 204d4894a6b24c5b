"""Filesystem backing store.

Each namespace is one JSON document, ``<base_path>/<namespace>.json``,
mapping record names to text or integer values. The document is read once
on initialization and rewritten atomically (temp file + rename) after every
mutation, so a crash never leaves a half-written file behind.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aesprefs.backends.base import MISSING, BackendConfig, BackingStore
from aesprefs.base import BackendUnavailableError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class FileSystemConfig(BackendConfig):
    """Configuration for the filesystem backend.

    Attributes:
        base_path: Directory holding one JSON file per namespace.
        create_dirs: Create ``base_path`` if it does not exist.
        pretty_print: Indent the JSON document.
    """

    base_path: str = ".aesprefs"
    create_dirs: bool = True
    pretty_print: bool = False

    def get_file_path(self) -> Path:
        """Path of the namespace document (namespace made filename-safe)."""
        filename = _UNSAFE_CHARS.sub("_", self.namespace) or "default"
        return Path(self.base_path).expanduser() / f"{filename}.json"


class FileSystemBackingStore(BackingStore[FileSystemConfig]):
    """JSON-file store persisting one namespace per file.

    Example:
        >>> store = FileSystemBackingStore(base_path="/tmp/prefs", namespace="app")
        >>> store.put("greeting", "hello")
        >>> FileSystemBackingStore(base_path="/tmp/prefs", namespace="app").get("greeting")
        'hello'
    """

    name = "filesystem"

    def __init__(
        self,
        base_path: str | Path = ".aesprefs",
        namespace: str = "default",
        **kwargs: Any,
    ) -> None:
        config = FileSystemConfig(
            base_path=str(base_path),
            namespace=namespace,
            **{k: v for k, v in kwargs.items() if hasattr(FileSystemConfig, k)},
        )
        super().__init__(config)
        self._data: dict[str, Any] = {}
        self._path = config.get_file_path()

    @classmethod
    def _default_config(cls) -> FileSystemConfig:
        return FileSystemConfig()

    @property
    def path(self) -> Path:
        return self._path

    def _do_initialize(self) -> None:
        if self._config.create_dirs:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BackendUnavailableError(self.name, f"Cannot create {self._path.parent}: {e}") from e

        if not self._path.exists():
            self._data = {}
            return

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BackendUnavailableError(self.name, f"Cannot read {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise BackendUnavailableError(self.name, f"{self._path} does not hold a JSON object")
        self._data = data
        logger.debug(f"Loaded {len(self._data)} records from {self._path}")

    def _flush(self) -> None:
        """Atomically rewrite the namespace document."""
        indent = 2 if self._config.pretty_print else None
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, indent=indent, sort_keys=True)
                os.replace(temp_path, self._path)
            except BaseException:
                Path(temp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise BackendUnavailableError(self.name, f"Cannot write {self._path}: {e}") from e

    def _read(self, name: str) -> Any:
        return self._data.get(name, MISSING)

    def _write(self, name: str, value: str | int) -> None:
        previous = self._data.get(name, MISSING)
        self._data[name] = value
        try:
            self._flush()
        except BackendUnavailableError:
            if previous is MISSING:
                del self._data[name]
            else:
                self._data[name] = previous
            raise

    def _delete(self, name: str) -> bool:
        if name not in self._data:
            return False
        previous = self._data.pop(name)
        try:
            self._flush()
        except BackendUnavailableError:
            self._data[name] = previous
            raise
        return True

    def _names(self) -> list[str]:
        return list(self._data)

    def _clear(self) -> None:
        # The cache only changes once the document is gone.
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise BackendUnavailableError(self.name, f"Cannot remove {self._path}: {e}") from e
        self._data = {}

    def reload(self) -> None:
        """Discard cached records and read the document again."""
        self._initialized = False
        self.initialize()
