"""In-memory backend."""

from __future__ import annotations

from collections.abc import Iterator, Mapping


class MemoryBackend:
    """Dict-backed backend living as long as the object does.

    Suitable for tests and for stores that need the caching contract
    without durability.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MemoryBackend(keys={len(self._items)})"
