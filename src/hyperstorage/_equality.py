"""Equality strategy used by :meth:`HyperStorage.is_default`.

Immutable scalars compare by value; everything else (dicts, lists,
dataclasses, models, sets, tuples) compares by identity, so a
structurally equal copy of the default is *not* the default.
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, time, timedelta
from decimal import Decimal
from fractions import Fraction
from typing import Any

VALUE_TYPES: tuple[type, ...] = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    Decimal,
    Fraction,
    uuid.UUID,
    date,
    time,
    timedelta,
    enum.Enum,
)


def compares_by_value(value: Any) -> bool:
    return isinstance(value, VALUE_TYPES)


def same_value(current: Any, default: Any) -> bool:
    if current is default:
        return True
    if not (compares_by_value(current) and compares_by_value(default)):
        return False
    # bool is an int subclass; True must not match a default of 1.
    if isinstance(current, bool) != isinstance(default, bool):
        return False
    return bool(current == default)
