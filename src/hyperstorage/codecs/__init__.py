"""Codecs converting stored values to and from strings."""

from __future__ import annotations

from hyperstorage.codecs._base import Codec, DecodeFn, EncodeFn, Untrusted
from hyperstorage.codecs.encrypted import EncryptedCodec, generate_key
from hyperstorage.codecs.model import ModelCodec
from hyperstorage.codecs.plain import JsonCodec
from hyperstorage.codecs.superjson import CustomType, SuperJsonCodec

__all__ = [
    "Codec",
    "CustomType",
    "DecodeFn",
    "EncodeFn",
    "EncryptedCodec",
    "JsonCodec",
    "ModelCodec",
    "SuperJsonCodec",
    "Untrusted",
    "generate_key",
]
