"""Configuration for aesprefs stores.

Settings are resolved from, in increasing priority:

    1. Defaults of :class:`PrefsConfig`
    2. A TOML, YAML or JSON file with an ``aesprefs`` table
    3. ``AESPREFS_*`` environment variables

Example:
    >>> # ~/.config/myapp/aesprefs.toml
    >>> # [aesprefs]
    >>> # namespace = "com.example.myapp"
    >>> # backend = "filesystem"
    >>> # base_path = "~/.config/myapp"
    >>> # log_mode = "default"
    >>>
    >>> config = load_config("~/.config/myapp/aesprefs.toml")
    >>> prefs = AesPrefs.from_config(config)

The password is never read from files; supply it through
``AESPREFS_PASSWORD`` or directly in code.
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from aesprefs.base import ConfigError, LogMode

ENV_PREFIX = "AESPREFS_"

_ENV_FIELDS = {
    "NAMESPACE": "namespace",
    "PASSWORD": "password",
    "LOG_MODE": "log_mode",
    "BACKEND": "backend",
    "PATH": "base_path",
    "IV_SOURCE": "iv_source",
}


@dataclass
class PrefsConfig:
    """Settings needed to open an encrypted preference store.

    Attributes:
        namespace: Identity scope of the records (application/package).
        password: Secret the AES key is derived from.
        log_mode: Which operations emit diagnostics.
        backend: Backing store name ("memory", "filesystem", ...).
        base_path: Directory of the filesystem backend.
        iv_source: Entry IV source ("time" or "random").
        backend_options: Extra keyword arguments for the backend.
    """

    namespace: str = "default"
    password: str | None = field(default=None, repr=False)
    log_mode: LogMode = LogMode.DEFAULT
    backend: str = "memory"
    base_path: str = ".aesprefs"
    iv_source: str = "time"
    backend_options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.log_mode, str) and not isinstance(self.log_mode, LogMode):
            try:
                self.log_mode = LogMode.from_string(self.log_mode)
            except ValueError as e:
                raise ConfigError(str(e)) from e

    def validate(self, require_password: bool = True) -> None:
        """Check the configuration is usable.

        Raises:
            ConfigError: On the first invalid setting.
        """
        if not self.namespace or not self.namespace.strip():
            raise ConfigError("namespace must not be empty")
        if require_password and not self.password:
            raise ConfigError(
                f"password is required (set {ENV_PREFIX}PASSWORD or pass it explicitly)"
            )
        if self.iv_source not in ("time", "random"):
            raise ConfigError(f"iv_source must be 'time' or 'random', got '{self.iv_source}'")
        if not self.backend:
            raise ConfigError("backend must not be empty")

    def merge(self, overrides: Mapping[str, Any]) -> "PrefsConfig":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "log_mode" in changes and not isinstance(changes["log_mode"], LogMode):
            try:
                changes["log_mode"] = LogMode.from_string(str(changes["log_mode"]))
            except ValueError as e:
                raise ConfigError(str(e)) from e
        return replace(self, **changes)

    def backend_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for :func:`aesprefs.backends.get_backend`."""
        kwargs: dict[str, Any] = {"namespace": self.namespace}
        if self.backend in ("filesystem", "fs", "file"):
            kwargs["base_path"] = self.base_path
        kwargs.update(self.backend_options)
        return kwargs

    def to_dict(self) -> dict[str, Any]:
        """Dictionary view with the password redacted."""
        return {
            "namespace": self.namespace,
            "password": "***" if self.password else None,
            "log_mode": self.log_mode.value,
            "backend": self.backend,
            "base_path": self.base_path,
            "iv_source": self.iv_source,
            "backend_options": dict(self.backend_options),
        }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PrefsConfig":
        """Build a configuration from ``AESPREFS_*`` variables only."""
        return cls().merge(_read_env(environ))

    @classmethod
    def from_file(cls, path: str | Path) -> "PrefsConfig":
        """Build a configuration from the ``aesprefs`` table of a config file."""
        return cls().merge(_read_file(path))


def _read_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    result: dict[str, Any] = {}
    for suffix, name in _ENV_FIELDS.items():
        value = env.get(ENV_PREFIX + suffix)
        if value:
            result[name] = value
    return result


def _parse_document(file_path: Path, content: str) -> Any:
    suffix = file_path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        try:
            return yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}") from e
    if suffix == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {file_path}: {e}") from e
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {file_path}: {e}") from e


def _read_file(path: str | Path) -> dict[str, Any]:
    """Read the ``aesprefs`` section of a TOML, YAML or JSON file.

    The format follows the suffix; anything other than ``.yaml``, ``.yml``
    or ``.json`` is read as TOML.
    """
    file_path = Path(path).expanduser()
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {file_path}: {e}") from e

    data = _parse_document(file_path, content)
    if not isinstance(data, dict):
        raise ConfigError(f"{file_path} must hold a mapping")

    section = data.get("aesprefs", data)
    if not isinstance(section, dict):
        raise ConfigError(f"[aesprefs] in {file_path} must be a table")
    if "password" in section:
        raise ConfigError(
            f"{file_path} must not contain a password; use {ENV_PREFIX}PASSWORD"
        )
    return dict(section)


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    defaults: Mapping[str, Any] | None = None,
    **overrides: Any,
) -> PrefsConfig:
    """Resolve a configuration from file, environment and explicit overrides.

    Args:
        path: Optional TOML, YAML or JSON file.
        environ: Environment mapping (defaults to ``os.environ``).
        defaults: Lowest-priority values replacing the :class:`PrefsConfig`
            defaults, e.g. a persistent backend for command-line use.
        **overrides: Highest-priority values; ``None`` values are ignored.
    """
    config = PrefsConfig().merge(defaults or {})
    if path is not None:
        config = config.merge(_read_file(path))
    config = config.merge(_read_env(environ))
    return config.merge(overrides)
