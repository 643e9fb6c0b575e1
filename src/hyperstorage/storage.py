"""Typed, cached accessor over a string key/value backend.

:class:`HyperStorage` keeps one value of type ``T`` in memory and mirrors
it to a single backend entry:

* reads return the cached value and never touch the backend;
* writes encode first, then update the backend and the cache together;
* :meth:`HyperStorage.sync` re-reads the backend, for when the entry may
  have been changed by someone else.
"""

from __future__ import annotations

import copy
import dataclasses
import inspect
import logging
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, ClassVar, Generic, TypeVar, cast, overload

from pydantic import BaseModel

from hyperstorage._equality import same_value
from hyperstorage._redact import redact_entry
from hyperstorage.backends import StorageBackend, satisfies_backend
from hyperstorage.codecs import Codec, DecodeFn, EncodeFn, SuperJsonCodec
from hyperstorage.exceptions import DecodeError, EncodeError, InvalidArgumentError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET: Any = object()


class SyncStatus(StrEnum):
    LOADED = "loaded"
    MISSING = "missing"
    CORRUPT = "corrupt"


@dataclasses.dataclass(frozen=True)
class SyncResult(Generic[T]):
    """Outcome of :meth:`HyperStorage.sync`.

    ``value`` is always the cached value after the call: the decoded entry
    for ``LOADED``, the default for ``MISSING`` and ``CORRUPT``.  Only
    ``CORRUPT`` carries an ``error``.
    """

    status: SyncStatus
    value: T
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.status is not SyncStatus.CORRUPT


def _takes_one_argument(fn: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        # Some builtins expose no signature; trust them.
        return True
    try:
        signature.bind(None)
    except TypeError:
        return False
    return True


def _check_unary(fn: Any, name: str) -> Any:
    if not callable(fn):
        raise InvalidArgumentError(f"{name} is defined but is not callable")
    if not _takes_one_argument(fn):
        raise InvalidArgumentError(f"{name} must accept exactly one positional argument")
    return fn


def _replace_field(current: Any, field: Any, field_value: Any) -> Any:
    """Return a shallow copy of *current* with *field* set to *field_value*."""
    if isinstance(current, dict):
        updated = copy.copy(current)
        updated[field] = field_value
        return updated
    if isinstance(current, Mapping):
        return {**current, field: field_value}
    if isinstance(current, BaseModel):
        if field not in type(current).model_fields:
            raise InvalidArgumentError(f"{type(current).__name__} has no field {field!r}")
        return current.model_copy(update={field: field_value})
    if dataclasses.is_dataclass(current) and not isinstance(current, type):
        if field not in {f.name for f in dataclasses.fields(current)}:
            raise InvalidArgumentError(f"{type(current).__name__} has no field {field!r}")
        try:
            return dataclasses.replace(current, **{field: field_value})
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"Cannot replace field {field!r}: {exc}") from exc
    raise InvalidArgumentError(f"set(field, value) requires a record-like value, not {type(current).__name__}")


class HyperStorage(Generic[T]):
    """A cached, typed value persisted under one backend key.

    Parameters
    ----------
    key : str
        Name of the backend entry.  Must be a non-empty string.
    default_value : T
        Value used when the entry is absent or undecodable, and by
        :meth:`reset`.
    backend : StorageBackend
        Anything with ``get_item(key)`` and ``set_item(key, value)``,
        e.g. :class:`~hyperstorage.backends.MemoryBackend` or
        :func:`~hyperstorage.config.local_storage`.
    encode, decode : callable, optional
        Override one or both halves of the codec.
    codec : Codec, optional
        Object providing ``encode``/``decode``.  Defaults to the shared
        :attr:`superjson` codec.

    Raises
    ------
    InvalidArgumentError
        If any argument fails validation.
    EncodeError
        If the default value has to be written and cannot be encoded.
    """

    #: Codec used when neither ``codec`` nor ``encode``/``decode`` are given.
    #: Custom types registered here apply to every such store.
    superjson: ClassVar[SuperJsonCodec] = SuperJsonCodec()

    def __init__(
        self,
        key: str,
        default_value: T,
        *,
        backend: StorageBackend,
        encode: EncodeFn | None = None,
        decode: DecodeFn | None = None,
        codec: Codec | None = None,
    ) -> None:
        if not isinstance(key, str):
            raise InvalidArgumentError("key is not a string")
        if not key:
            raise InvalidArgumentError("key must not be empty")
        self._key = key

        self._default_value = default_value

        if codec is not None:
            if not (callable(getattr(codec, "encode", None)) and callable(getattr(codec, "decode", None))):
                raise InvalidArgumentError("codec must provide encode() and decode()")
        base_codec: Codec = codec if codec is not None else HyperStorage.superjson
        self._encode: EncodeFn = _check_unary(encode, "encode") if encode is not None else base_codec.encode
        self._decode: DecodeFn = _check_unary(decode, "decode") if decode is not None else base_codec.decode

        if not satisfies_backend(backend):
            raise InvalidArgumentError("backend must implement get_item() and set_item()")
        self._backend = backend

        self._value: T
        self.sync()

    @property
    def key(self) -> str:
        return self._key

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def value(self) -> T:
        """The cached value. Never reads the backend."""
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self._write(value)

    def _write(self, value: T) -> T:
        try:
            encoded = self._encode(value)
        except EncodeError:
            raise
        except Exception as exc:
            raise EncodeError(f"Could not encode value for {self._key!r}: {exc}") from exc
        if not isinstance(encoded, str):
            raise EncodeError(f"encode returned {type(encoded).__name__}, expected str")
        self._backend.set_item(self._key, encoded)
        self._value = value
        _logger.debug("Stored %r (%d chars)", self._key, len(encoded))
        return value

    @overload
    def set(self, updater: Callable[[T], T], /) -> T: ...

    @overload
    def set(self, field: Any, field_value: Any, /) -> T: ...

    def set(self, key_or_updater: Any, value: Any = _UNSET, /) -> T:
        """Write a new value derived from the current one.

        ``set(fn)`` writes ``fn(current)``.  ``set(field, value)`` writes a
        shallow copy of the current record with one field replaced; the
        record may be a mapping, a dataclass or a pydantic model.
        Returns the written value.
        """
        if callable(key_or_updater):
            if value is not _UNSET:
                raise InvalidArgumentError("set(updater) takes no value argument")
            return self._write(key_or_updater(self._value))
        if value is _UNSET:
            raise InvalidArgumentError("set(field, value) requires a value")
        return self._write(_replace_field(self._value, key_or_updater, value))

    def sync(self, decode: DecodeFn | None = None) -> SyncResult[T]:
        """Reload the cached value from the backend.

        Only needed when the entry may have been modified externally.
        The decoded value is not validated against ``T``; use a validating
        codec or check ``result.value`` before trusting it.

        An absent entry resets to the default (``MISSING``).  An entry that
        fails to decode also resets, and is reported as ``CORRUPT`` with
        the :class:`DecodeError`.  When *decode* differs from the store's
        own decoder the decoded value is written back with the store's
        encoder.
        """
        decoder = self._decode if decode is None else _check_unary(decode, "decode")
        raw = self._backend.get_item(self._key)

        if not isinstance(raw, str):
            _logger.debug("No stored value for %r; writing default", self._key)
            return SyncResult(SyncStatus.MISSING, self.reset())

        try:
            decoded = decoder(raw)
        except Exception as exc:
            if isinstance(exc, DecodeError):
                error = exc
            else:
                error = DecodeError(f"Could not decode value for {self._key!r}: {exc}")
                error.__cause__ = exc
            _logger.warning(
                "Stored value for %r is undecodable, resetting to default: %s (raw=%s)",
                self._key,
                error,
                redact_entry(self._key, raw),
            )
            self.reset()
            return SyncResult(SyncStatus.CORRUPT, self._value, error)

        value = cast(T, decoded)
        if decode is not None and decode != self._decode:
            self._write(value)
        else:
            self._value = value
        _logger.debug("Loaded %r from backend", self._key)
        return SyncResult(SyncStatus.LOADED, value)

    def reset(self) -> T:
        """Write the default value and return it."""
        return self._write(self._default_value)

    def is_default(self) -> bool:
        """Whether the cached value is the default.

        Immutable scalars compare by value, anything else by identity.
        """
        return same_value(self._value, self._default_value)

    def __repr__(self) -> str:
        return f"HyperStorage(key={self._key!r}, backend={self._backend!r})"
