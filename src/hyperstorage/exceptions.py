"""Custom exception hierarchy for hyperstorage."""

from __future__ import annotations


class HyperStorageError(Exception):
    """Base exception for all hyperstorage errors."""


class ConfigError(HyperStorageError):
    """Invalid or missing configuration."""


class InvalidArgumentError(HyperStorageError, TypeError):
    """An argument does not satisfy its contract.

    Raised while constructing a store (bad key, non-callable codec
    functions, backend without ``get_item``/``set_item``) and when the
    keyed form of :meth:`HyperStorage.set` is used on a value that is
    not record-like.  Subclasses :class:`TypeError` so callers catching
    the builtin keep working.
    """


class BackendError(HyperStorageError):
    """A backend could not read or write its durable medium."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class CodecError(HyperStorageError):
    """Base for serialization failures."""

    def __init__(self, message: str, *, tag: str | None = None) -> None:
        self.tag = tag
        super().__init__(message)


class EncodeError(CodecError):
    """A value could not be serialized.

    A failed write leaves both the cached value and the backend entry
    untouched.
    """


class DecodeError(CodecError):
    """A stored string could not be parsed back into a value.

    :meth:`HyperStorage.sync` recovers from this by resetting to the
    default value and reporting the error in its
    :class:`~hyperstorage.storage.SyncResult` instead of raising.
    """
