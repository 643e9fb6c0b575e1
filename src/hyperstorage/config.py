"""Backend configuration for hyperstorage."""

from __future__ import annotations

import dataclasses
import functools
import logging
import os
from pathlib import Path
from typing import Any

from hyperstorage.backends import FileBackend, MemoryBackend, SqliteBackend, StorageBackend
from hyperstorage.backends.sqlite import DEFAULT_TABLE
from hyperstorage.exceptions import ConfigError

_logger = logging.getLogger(__name__)

BACKEND_KINDS: frozenset[str] = frozenset({"memory", "file", "sqlite"})


@dataclasses.dataclass(frozen=True)
class StorageConfig:
    """Which durable backend ``local_storage()`` provides.

    Parameters
    ----------
    backend : str
        ``"memory"``, ``"file"`` or ``"sqlite"``.
    path : Path or None
        Storage file for the ``file`` and ``sqlite`` backends.
    table : str
        Table name for the ``sqlite`` backend.
    """

    backend: str = "memory"
    path: Path | None = None
    table: str = DEFAULT_TABLE

    def __post_init__(self) -> None:
        if self.backend not in BACKEND_KINDS:
            kinds = ", ".join(sorted(BACKEND_KINDS))
            raise ConfigError(f"Unknown backend {self.backend!r} (expected one of: {kinds})")
        if self.path is not None and not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))
        if self.backend != "memory" and self.path is None:
            raise ConfigError(f"The {self.backend} backend requires a path")

    @classmethod
    def from_env(cls, **overrides: Any) -> StorageConfig:
        """Create configuration from environment variables.

        Reads ``HYPERSTORAGE_BACKEND``, ``HYPERSTORAGE_PATH`` and
        ``HYPERSTORAGE_TABLE``. Explicit keyword arguments override
        environment values.  When only a path is configured the backend
        defaults to ``file``.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "HYPERSTORAGE_BACKEND": "backend",
            "HYPERSTORAGE_PATH": "path",
            "HYPERSTORAGE_TABLE": "table",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key, "").strip()
            if val:
                config_kwargs[field_name] = val

        if "path" in config_kwargs:
            config_kwargs["path"] = Path(config_kwargs["path"]).expanduser()
            config_kwargs.setdefault("backend", "file")
        if "backend" in config_kwargs:
            config_kwargs["backend"] = config_kwargs["backend"].lower()

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

    def create_backend(self) -> StorageBackend:
        """Build a fresh backend instance for this configuration."""
        if self.backend == "file":
            assert self.path is not None
            return FileBackend(self.path)
        if self.backend == "sqlite":
            assert self.path is not None
            return SqliteBackend(self.path, table=self.table)
        return MemoryBackend()


@functools.lru_cache(maxsize=None)
def _shared_backend(config: StorageConfig) -> StorageBackend:
    _logger.debug("Creating process-wide %s backend (path=%s)", config.backend, config.path)
    return config.create_backend()


def local_storage(config: StorageConfig | None = None) -> StorageBackend:
    """Return the process-wide durable backend for *config*.

    The Python counterpart of a browser's ``localStorage``: every call
    with an equal configuration returns the same backend object.  With
    no argument the configuration comes from :meth:`StorageConfig.from_env`.
    Stores never look this up on their own; pass the result explicitly::

        store = HyperStorage("settings", {"theme": "light"}, backend=local_storage())
    """
    return _shared_backend(config if config is not None else StorageConfig.from_env())
