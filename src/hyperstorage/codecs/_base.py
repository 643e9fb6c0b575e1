"""Codec protocol shared by the store and the concrete codecs."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, TypeAlias, runtime_checkable

#: Output of a decoder. Backends only hold strings, so nothing decoded from
#: them can be trusted as the store's value type until the caller (or a
#: validating codec such as :class:`~hyperstorage.codecs.ModelCodec`)
#: has checked it.
Untrusted: TypeAlias = object

EncodeFn: TypeAlias = Callable[[Any], str]
DecodeFn: TypeAlias = Callable[[str], Untrusted]


@runtime_checkable
class Codec(Protocol):
    """Protocol for converting values to and from their stored string form."""

    def encode(self, value: Any) -> str: ...

    def decode(self, raw: str) -> Untrusted: ...
