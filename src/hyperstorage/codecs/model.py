"""Validating codec for pydantic models."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from hyperstorage.exceptions import DecodeError, EncodeError, InvalidArgumentError

ModelT = TypeVar("ModelT", bound=BaseModel)


class ModelCodec(Generic[ModelT]):
    """Encode a pydantic model as JSON and validate it on the way back.

    Unlike the structural codecs, :meth:`decode` only ever returns a
    validated ``ModelT``; stored data that does not match the schema is
    reported as a :class:`~hyperstorage.exceptions.DecodeError`, which
    makes :meth:`HyperStorage.sync` fall back to the default value.
    """

    def __init__(self, model_cls: type[ModelT], *, exclude_defaults: bool = False) -> None:
        if not (isinstance(model_cls, type) and issubclass(model_cls, BaseModel)):
            raise InvalidArgumentError("model_cls must be a pydantic BaseModel subclass")
        self.model_cls = model_cls
        self._exclude_defaults = exclude_defaults

    def encode(self, value: Any) -> str:
        if not isinstance(value, self.model_cls):
            raise EncodeError(f"Expected {self.model_cls.__name__}, got {type(value).__name__}")
        return value.model_dump_json(exclude_defaults=self._exclude_defaults)

    def decode(self, raw: str) -> ModelT:
        try:
            return self.model_cls.model_validate_json(raw)
        except ValidationError as exc:
            raise DecodeError(
                f"Stored value does not match {self.model_cls.__name__}: {exc.error_count()} error(s)",
            ) from exc
