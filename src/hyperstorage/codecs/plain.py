"""Plain JSON codec."""

from __future__ import annotations

import json
from typing import Any

from hyperstorage.codecs._base import Untrusted
from hyperstorage.exceptions import DecodeError, EncodeError


class JsonCodec:
    """Store values as bare JSON.

    Only JSON-native values survive a round trip: tuples come back as
    lists and anything else fails to encode.
    """

    def __init__(self, *, sort_keys: bool = False) -> None:
        self._sort_keys = sort_keys

    def encode(self, value: Any) -> str:
        try:
            return json.dumps(
                value,
                ensure_ascii=False,
                separators=(",", ":"),
                sort_keys=self._sort_keys,
                allow_nan=False,
            )
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"Value is not JSON serializable: {exc}") from exc

    def decode(self, raw: str) -> Untrusted:
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"Stored value is not valid JSON: {exc}") from exc
