"""Tagged structural JSON codec.

Plain JSON only knows objects with string keys, arrays, strings, finite
numbers, booleans and ``null``.  :class:`SuperJsonCodec` stores every
other supported value as its nearest plain form and records how to
revive it in a side table::

    {"json": {"when": "2026-01-01T00:00:00+00:00", "tags": ["a", "b"]},
     "meta": {"values": [[["when"], "datetime"], [["tags"], "set"]]}}

Each ``meta.values`` entry is ``[path, tag]`` where *path* is a list of
object keys (``str``) and array indexes (``int``) leading from the root
to the tagged value; ``[]`` tags the root itself.  ``meta`` is omitted
when nothing needs a tag, so plain JSON values produce
``{"json": ...}``.

Shared references are written as independent copies; reference cycles
raise :class:`~hyperstorage.exceptions.EncodeError`.
"""

from __future__ import annotations

import base64
import builtins
import dataclasses
import enum
import json
import logging
import math
import re
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, TypeAlias

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, ValidationError

from hyperstorage.codecs._base import Untrusted
from hyperstorage.exceptions import DecodeError, EncodeError, InvalidArgumentError

_logger = logging.getLogger(__name__)

ValuePath: TypeAlias = tuple[str | int, ...]

#: Largest integer a JavaScript ``Number`` holds exactly. Larger magnitudes
#: are written as strings so other superjson-style readers keep precision.
MAX_SAFE_INTEGER = 2**53 - 1

CUSTOM_TAG_PREFIX = "custom:"

_REGEX_FLAG_LETTERS: dict[str, re.RegexFlag] = {
    "a": re.ASCII,
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

_MAPPED_REGEX_FLAGS = re.ASCII | re.IGNORECASE | re.MULTILINE | re.DOTALL | re.VERBOSE

_NON_FINITE: dict[str, float] = {
    "NaN": math.nan,
    "Infinity": math.inf,
    "-Infinity": -math.inf,
}

_BIGINT_RE = re.compile(r"-?\d+")


class _Meta(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    values: list[tuple[list[str | int], str]] = Field(default_factory=list)


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    payload: Any = Field(alias="json")
    meta: _Meta | None = None


@dataclasses.dataclass(frozen=True)
class CustomType:
    """A user-registered type and its plain-JSON conversion."""

    cls: type
    name: str
    serialize: Callable[[Any], Any]
    deserialize: Callable[[Any], Any]

    @property
    def tag(self) -> str:
        return f"{CUSTOM_TAG_PREFIX}{self.name}"


def _expect(value: Any, expected: type | tuple[type, ...], tag: str) -> Any:
    if not isinstance(value, expected) or isinstance(value, bool):
        raise DecodeError(f"{tag} value has unexpected type {type(value).__name__}", tag=tag)
    return value


def _pattern_to_plain(pattern: re.Pattern[Any]) -> str:
    if not isinstance(pattern.pattern, str):
        raise EncodeError("Only str regular expressions can be serialized", tag="regexp")
    unmapped = pattern.flags & ~(_MAPPED_REGEX_FLAGS | re.UNICODE)
    if unmapped:
        raise EncodeError(f"Regular expression flags {re.RegexFlag(unmapped)!r} cannot be serialized", tag="regexp")
    letters = "".join(letter for letter, flag in _REGEX_FLAG_LETTERS.items() if pattern.flags & flag)
    return f"/{pattern.pattern}/{letters}"


def _revive_regexp(value: Any) -> re.Pattern[str]:
    text = _expect(value, str, "regexp")
    end = text.rfind("/")
    if not text.startswith("/") or end < 1:
        raise DecodeError(f"Malformed regexp literal {text!r}", tag="regexp")
    flags = 0
    for letter in text[end + 1 :]:
        try:
            flags |= _REGEX_FLAG_LETTERS[letter]
        except KeyError:
            raise DecodeError(f"Unknown regexp flag {letter!r}", tag="regexp") from None
    return re.compile(text[1:end], flags)


def _revive_bigint(value: Any) -> int:
    text = _expect(value, str, "bigint")
    if not _BIGINT_RE.fullmatch(text):
        raise DecodeError(f"Malformed bigint {text!r}", tag="bigint")
    return int(text)


def _revive_number(value: Any) -> float:
    try:
        return _NON_FINITE[_expect(value, str, "number")]
    except KeyError:
        raise DecodeError(f"Unknown non-finite number {value!r}", tag="number") from None


def _revive_timedelta(value: Any) -> timedelta:
    parts = _expect(value, list, "timedelta")
    if len(parts) != 3:
        raise DecodeError("timedelta must be [days, seconds, microseconds]", tag="timedelta")
    days, seconds, microseconds = (_expect(part, int, "timedelta") for part in parts)
    return timedelta(days=days, seconds=seconds, microseconds=microseconds)


def _revive_map(value: Any) -> dict[Any, Any]:
    result: dict[Any, Any] = {}
    for pair in _expect(value, list, "map"):
        if not isinstance(pair, list) or len(pair) != 2:
            raise DecodeError("map entries must be [key, value] pairs", tag="map")
        result[pair[0]] = pair[1]
    return result


def _revive_error(value: Any) -> BaseException:
    fields = _expect(value, dict, "error")
    name = _expect(fields.get("name"), str, "error")
    message = _expect(fields.get("message"), str, "error")
    args = fields.get("args")
    args = (message,) if args is None else tuple(_expect(args, list, "error"))
    cls = getattr(builtins, name, None)
    if not (isinstance(cls, type) and issubclass(cls, BaseException)):
        return Exception(*args)
    try:
        return cls(*args)
    except Exception:
        # Constructor rejects the stored args, e.g. a subclass shadowing a builtin name.
        return Exception(*args)


_REVIVERS: dict[str, Callable[[Any], Any]] = {
    "datetime": lambda v: datetime.fromisoformat(_expect(v, str, "datetime")),
    "date": lambda v: date.fromisoformat(_expect(v, str, "date")),
    "time": lambda v: time.fromisoformat(_expect(v, str, "time")),
    "timedelta": _revive_timedelta,
    "decimal": lambda v: Decimal(_expect(v, str, "decimal")),
    "uuid": lambda v: uuid.UUID(_expect(v, str, "uuid")),
    "bytes": lambda v: base64.b64decode(_expect(v, str, "bytes"), validate=True),
    "regexp": _revive_regexp,
    "set": lambda v: set(_expect(v, list, "set")),
    "frozenset": lambda v: frozenset(_expect(v, list, "frozenset")),
    "tuple": lambda v: tuple(_expect(v, list, "tuple")),
    "map": _revive_map,
    "error": _revive_error,
    "url": lambda v: AnyUrl(_expect(v, str, "url")),
    "bigint": _revive_bigint,
    "number": _revive_number,
}


class SuperJsonCodec:
    """Round-trip JSON values plus dates, sets, maps, regexps and more.

    Instances carry their own registry of custom types, see
    :meth:`register_custom` and :meth:`register_model`.
    """

    def __init__(self) -> None:
        self._custom: dict[str, CustomType] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_custom(
        self,
        cls: type,
        name: str,
        serialize: Callable[[Any], Any],
        deserialize: Callable[[Any], Any],
    ) -> CustomType:
        """Teach the codec a new type.

        *serialize* must return plain JSON (dicts with string keys, lists,
        strings, finite numbers, booleans, ``None``); *deserialize* receives
        that plain value back.
        """
        if not isinstance(cls, type):
            raise InvalidArgumentError("cls must be a type")
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError("name must be a non-empty string")
        if name in self._custom:
            raise InvalidArgumentError(f"A custom type named {name!r} is already registered")
        if not callable(serialize) or not callable(deserialize):
            raise InvalidArgumentError("serialize and deserialize must be callable")
        custom = CustomType(cls=cls, name=name, serialize=serialize, deserialize=deserialize)
        self._custom[name] = custom
        _logger.debug("Registered custom type %s as %s", cls.__qualname__, custom.tag)
        return custom

    def register_model(self, model_cls: type[BaseModel], name: str | None = None) -> CustomType:
        """Register a pydantic model, stored through its JSON-mode dump."""
        if not (isinstance(model_cls, type) and issubclass(model_cls, BaseModel)):
            raise InvalidArgumentError("model_cls must be a pydantic BaseModel subclass")
        return self.register_custom(
            model_cls,
            name or model_cls.__name__,
            lambda model: model.model_dump(mode="json"),
            model_cls.model_validate,
        )

    def register_enum(self, enum_cls: type[enum.Enum], name: str | None = None) -> CustomType:
        """Register an enum, stored through its member values.

        Member values must themselves be plain JSON.
        """
        if not (isinstance(enum_cls, type) and issubclass(enum_cls, enum.Enum)):
            raise InvalidArgumentError("enum_cls must be an Enum subclass")
        return self.register_custom(enum_cls, name or enum_cls.__name__, lambda member: member.value, enum_cls)

    def _custom_for(self, value: Any) -> CustomType | None:
        for custom in self._custom.values():
            if isinstance(value, custom.cls):
                return custom
        return None

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, value: Any) -> str:
        annotations: list[tuple[ValuePath, str]] = []
        plain = self._to_plain(value, (), annotations, set())
        envelope: dict[str, Any] = {"json": plain}
        if annotations:
            envelope["meta"] = {"values": [[list(path), tag] for path, tag in annotations]}
        try:
            return json.dumps(envelope, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"Serialized form is not plain JSON: {exc}") from exc

    def _to_plain(
        self,
        value: Any,
        path: ValuePath,
        annotations: list[tuple[ValuePath, str]],
        active: set[int],
    ) -> Any:
        if value is None:
            return None

        custom = self._custom_for(value)
        if custom is not None:
            annotations.append((path, custom.tag))
            try:
                return custom.serialize(value)
            except Exception as exc:
                raise EncodeError(f"Custom serializer {custom.name!r} failed: {exc}", tag=custom.tag) from exc

        # Checked before the bool/str/int fast paths, which would drop the enum type.
        if isinstance(value, enum.Enum):
            raise EncodeError(f"Enum {type(value).__name__} is not registered; use register_enum()")
        if isinstance(value, (bool, str)):
            return value

        if isinstance(value, int):
            if abs(value) > MAX_SAFE_INTEGER:
                annotations.append((path, "bigint"))
                return str(value)
            return int(value)
        if isinstance(value, float):
            if math.isfinite(value):
                return value
            annotations.append((path, "number"))
            if math.isnan(value):
                return "NaN"
            return "Infinity" if value > 0 else "-Infinity"

        scalar = self._scalar_to_plain(value)
        if scalar is not None:
            tag, plain = scalar
            annotations.append((path, tag))
            return plain

        if isinstance(value, BaseException):
            if id(value) in active:
                raise EncodeError(f"Circular reference at path {list(path)!r}")
            active.add(id(value))
            try:
                return self._error_to_plain(value, path, annotations, active)
            finally:
                active.discard(id(value))

        if isinstance(value, (dict, list, tuple, set, frozenset)):
            if id(value) in active:
                raise EncodeError(f"Circular reference at path {list(path)!r}")
            active.add(id(value))
            try:
                return self._container_to_plain(value, path, annotations, active)
            finally:
                active.discard(id(value))

        if isinstance(value, BaseModel):
            raise EncodeError(
                f"Pydantic model {type(value).__name__} is not registered; use register_model()",
            )
        raise EncodeError(f"Cannot serialize value of type {type(value).__name__}")

    @staticmethod
    def _scalar_to_plain(value: Any) -> tuple[str, Any] | None:
        # datetime before date: datetime subclasses date.
        if isinstance(value, datetime):
            return "datetime", value.isoformat()
        if isinstance(value, date):
            return "date", value.isoformat()
        if isinstance(value, time):
            return "time", value.isoformat()
        if isinstance(value, timedelta):
            return "timedelta", [value.days, value.seconds, value.microseconds]
        if isinstance(value, Decimal):
            return "decimal", str(value)
        if isinstance(value, uuid.UUID):
            return "uuid", str(value)
        if isinstance(value, (bytes, bytearray)):
            return "bytes", base64.b64encode(value).decode("ascii")
        if isinstance(value, re.Pattern):
            return "regexp", _pattern_to_plain(value)
        if isinstance(value, AnyUrl):
            return "url", str(value)
        return None

    def _error_to_plain(
        self,
        value: BaseException,
        path: ValuePath,
        annotations: list[tuple[ValuePath, str]],
        active: set[int],
    ) -> dict[str, Any]:
        annotations.append((path, "error"))
        args = [
            self._to_plain(arg, (*path, "args", index), annotations, active) for index, arg in enumerate(value.args)
        ]
        return {"name": type(value).__name__, "message": str(value), "args": args}

    def _container_to_plain(
        self,
        value: dict[Any, Any] | list[Any] | tuple[Any, ...] | set[Any] | frozenset[Any],
        path: ValuePath,
        annotations: list[tuple[ValuePath, str]],
        active: set[int],
    ) -> Any:
        if isinstance(value, dict):
            if all(isinstance(key, str) for key in value):
                return {key: self._to_plain(item, (*path, key), annotations, active) for key, item in value.items()}
            annotations.append((path, "map"))
            return [
                [
                    self._to_plain(key, (*path, index, 0), annotations, active),
                    self._to_plain(item, (*path, index, 1), annotations, active),
                ]
                for index, (key, item) in enumerate(value.items())
            ]

        if isinstance(value, tuple):
            annotations.append((path, "tuple"))
        elif isinstance(value, frozenset):
            annotations.append((path, "frozenset"))
        elif isinstance(value, set):
            annotations.append((path, "set"))
        return [self._to_plain(item, (*path, index), annotations, active) for index, item in enumerate(value)]

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, raw: str) -> Untrusted:
        try:
            document = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"Stored value is not valid JSON: {exc}") from exc
        try:
            envelope = _Envelope.model_validate(document)
        except ValidationError as exc:
            raise DecodeError(f"Stored value is not a tagged envelope: {exc.error_count()} error(s)") from exc

        root = envelope.payload
        if envelope.meta is None:
            return root
        # Deepest paths first so members are revived before their containers.
        ordered = sorted(envelope.meta.values, key=lambda entry: len(entry[0]), reverse=True)
        for path, tag in ordered:
            root = self._apply(root, tuple(path), tag)
        return root

    def _apply(self, root: Any, path: ValuePath, tag: str) -> Any:
        if not path:
            return self._revive(root, tag)
        parent = root
        for segment in path[:-1]:
            parent = self._child(parent, segment, path)
        last = path[-1]
        parent[last] = self._revive(self._child(parent, last, path), tag)
        return root

    @staticmethod
    def _child(container: Any, segment: str | int, path: ValuePath) -> Any:
        if isinstance(container, dict) and isinstance(segment, str) and segment in container:
            return container[segment]
        if isinstance(container, list) and isinstance(segment, int) and 0 <= segment < len(container):
            return container[segment]
        raise DecodeError(f"Annotation path {list(path)!r} does not exist in the stored value")

    def _revive(self, value: Any, tag: str) -> Any:
        if tag.startswith(CUSTOM_TAG_PREFIX):
            custom = self._custom.get(tag[len(CUSTOM_TAG_PREFIX) :])
            if custom is None:
                raise DecodeError(f"Custom type {tag!r} is not registered", tag=tag)
            reviver = custom.deserialize
        else:
            try:
                reviver = _REVIVERS[tag]
            except KeyError:
                raise DecodeError(f"Unknown type tag {tag!r}", tag=tag) from None
        try:
            return reviver(value)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"Could not revive {tag} value: {exc}", tag=tag) from exc
