"""Backend protocol: a string-keyed store of string values."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

#: Methods a backend must expose for :class:`~hyperstorage.HyperStorage`.
REQUIRED_METHODS: tuple[str, ...] = ("get_item", "set_item")


@runtime_checkable
class StorageBackend(Protocol):
    """The Web Storage API in snake case.

    The store itself only calls :meth:`get_item` and :meth:`set_item`;
    the remaining methods are for applications managing the backend
    directly.
    """

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def keys(self) -> Iterator[str]: ...

    def __len__(self) -> int: ...


def satisfies_backend(candidate: object) -> bool:
    """Return ``True`` if *candidate* exposes callable ``get_item``/``set_item``."""
    return all(callable(getattr(candidate, name, None)) for name in REQUIRED_METHODS)
