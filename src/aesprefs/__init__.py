"""aesprefs - encrypted key/value preferences on top of plain backing stores.

Both setting names and values are AES-256-CBC encrypted before they reach
the backing store, so inspecting the raw store reveals no application data.

Usage:
    >>> from aesprefs import AesPrefs, LogMode
    >>> prefs = AesPrefs(backend="filesystem", base_path="~/.config/myapp")
    >>> prefs.init_complete_config("com.example.myapp", "s3cret", LogMode.DEFAULT)
    >>> prefs.put_boolean("dark_mode", True)
    >>> prefs.get_boolean("dark_mode", False)
    True
    >>> prefs.get_launch_counter()
    0
"""

from aesprefs.backends import (
    BackingStore,
    FileSystemBackingStore,
    MemoryBackingStore,
    get_backend,
    register_backend,
)
from aesprefs.base import (
    APP_LAUNCHES_KEY,
    INSTALLATION_DATE_KEY,
    MASTER_IV_KEY,
    BackendError,
    BackendUnavailableError,
    ConfigError,
    DecodeResult,
    DecryptionError,
    EncryptionError,
    LogMode,
    NotInitializedError,
    PrefsError,
)
from aesprefs.codec import ValueType
from aesprefs.config import PrefsConfig, load_config
from aesprefs.store import AesPrefs, get_prefs, set_prefs
from aesprefs.timing import ExecutionTimer

# Version: single source of truth from pyproject.toml
try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("aesprefs")
except PackageNotFoundError:
    # Package not installed (development mode)
    __version__ = "0.0.0.dev"

LIBRARY_NAME = "aesprefs"


def get_version_info() -> str:
    """Library name and version, e.g. ``aesprefs-1.0.0``."""
    return f"{LIBRARY_NAME}-{__version__}"


__all__ = [
    # Store
    "AesPrefs",
    "get_prefs",
    "set_prefs",
    # Configuration
    "PrefsConfig",
    "load_config",
    "LogMode",
    "ValueType",
    # Backends
    "BackingStore",
    "MemoryBackingStore",
    "FileSystemBackingStore",
    "get_backend",
    "register_backend",
    # Results and instrumentation
    "DecodeResult",
    "ExecutionTimer",
    # Exceptions
    "PrefsError",
    "EncryptionError",
    "DecryptionError",
    "BackendError",
    "BackendUnavailableError",
    "NotInitializedError",
    "ConfigError",
    # Reserved keys
    "MASTER_IV_KEY",
    "APP_LAUNCHES_KEY",
    "INSTALLATION_DATE_KEY",
    "get_version_info",
    "__version__",
]
