"""hyperstorage - Typed, cached values over string key/value storage."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hyperstorage")
except PackageNotFoundError:
    __version__ = "0+local"
from hyperstorage.backends import FileBackend, MemoryBackend, SqliteBackend, StorageBackend
from hyperstorage.codecs import (
    Codec,
    EncryptedCodec,
    JsonCodec,
    ModelCodec,
    SuperJsonCodec,
    Untrusted,
    generate_key,
)
from hyperstorage.config import StorageConfig, local_storage
from hyperstorage.exceptions import (
    BackendError,
    CodecError,
    ConfigError,
    DecodeError,
    EncodeError,
    HyperStorageError,
    InvalidArgumentError,
)
from hyperstorage.storage import HyperStorage, SyncResult, SyncStatus

__all__ = [
    "__version__",
    "BackendError",
    "Codec",
    "CodecError",
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "EncryptedCodec",
    "FileBackend",
    "HyperStorage",
    "HyperStorageError",
    "InvalidArgumentError",
    "JsonCodec",
    "MemoryBackend",
    "ModelCodec",
    "SqliteBackend",
    "StorageBackend",
    "StorageConfig",
    "SuperJsonCodec",
    "SyncResult",
    "SyncStatus",
    "Untrusted",
    "generate_key",
    "local_storage",
]
