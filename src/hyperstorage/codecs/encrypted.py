"""Encryption at rest for any other codec."""

from __future__ import annotations

from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from hyperstorage.codecs._base import Codec, Untrusted
from hyperstorage.exceptions import DecodeError, InvalidArgumentError


def generate_key() -> str:
    """Return a new url-safe base64 key for :class:`EncryptedCodec`."""
    return Fernet.generate_key().decode("ascii")


class EncryptedCodec:
    """Wrap *inner* so the backend only ever sees Fernet tokens.

    Parameters
    ----------
    inner : Codec
        Codec producing the plaintext string form.
    key : str or bytes
        32-byte url-safe base64 key, e.g. from :func:`generate_key`.
    ttl : int or None
        Maximum token age in seconds accepted by :meth:`decode`.
        Older entries are reported as undecodable.
    """

    def __init__(self, inner: Codec, key: str | bytes, *, ttl: int | None = None) -> None:
        if not (callable(getattr(inner, "encode", None)) and callable(getattr(inner, "decode", None))):
            raise InvalidArgumentError("inner must provide encode() and decode()")
        try:
            self._fernet = Fernet(key)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"Invalid encryption key: {exc}") from exc
        self.inner = inner
        self._ttl = ttl

    def encode(self, value: Any) -> str:
        plaintext = self.inner.encode(value)
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decode(self, raw: str) -> Untrusted:
        try:
            plaintext = self._fernet.decrypt(raw, ttl=self._ttl)
        except (InvalidToken, TypeError) as exc:
            raise DecodeError("Stored value could not be decrypted") from exc
        try:
            text = plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("Decrypted value is not UTF-8") from exc
        return self.inner.decode(text)
