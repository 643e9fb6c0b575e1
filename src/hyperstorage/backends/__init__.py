"""String-keyed persistence backends."""

from __future__ import annotations

from hyperstorage.backends._base import StorageBackend, satisfies_backend
from hyperstorage.backends.file import FileBackend
from hyperstorage.backends.memory import MemoryBackend
from hyperstorage.backends.sqlite import SqliteBackend

__all__ = [
    "FileBackend",
    "MemoryBackend",
    "SqliteBackend",
    "StorageBackend",
    "satisfies_backend",
]
