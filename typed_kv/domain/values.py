"""Logical value categories, list-vs-hash shape inference and string codecs.

The store only holds strings at the leaves, so every scalar is encoded to a
string on write and parsed back on read. Collections are classified at write
time: a mapping whose keys run ``0, 1, ..., n-1`` in traversal order is a list,
anything else is a hash.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Set
from enum import Enum
from typing import Any, Iterable, Iterator, Tuple

from .errors import InvalidArgumentError, InvalidFormatError

# Same grammar as a "numeric string": optional surrounding whitespace, sign,
# digits with an optional fraction, optional exponent.
_NUMERIC_RE = re.compile(
    r"[ \t\n\r\v\f]*[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?[ \t\n\r\v\f]*"
)

TRUE_STRING = "1"
FALSE_STRING = "0"


class ValueKind(Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    COLLECTION = "collection"


def classify_value(value: Any) -> ValueKind:
    # bool is a subclass of int, so it has to be checked first.
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.FLOAT
    if is_collection(value):
        return ValueKind.COLLECTION
    raise InvalidArgumentError(f"Unexpected type: '{type(value).__name__}'", value)


def is_collection(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple, Set))


def is_integer_key(key: Any) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)


def is_sequence_like(keys: Iterable[Any]) -> bool:
    """True when ``keys`` are exactly ``0, 1, 2, ...`` in traversal order."""
    expected = 0
    for key in keys:
        if not is_integer_key(key) or key != expected:
            return False
        expected += 1
    return True


def iter_items(value: Any) -> Iterator[Tuple[Any, Any]]:
    """Yield ``(key, element)`` pairs; sequences are keyed by position."""
    if isinstance(value, Mapping):
        return iter(value.items())
    if isinstance(value, (list, tuple)):
        return enumerate(value)
    raise InvalidArgumentError(
        f"Expected a mapping or a sequence, got '{type(value).__name__}'", value
    )


def iter_elements(value: Any) -> Iterator[Any]:
    """Yield elements of a collection, discarding mapping keys."""
    if isinstance(value, Set):
        return iter(value)
    return (element for _, element in iter_items(value))


def encode_leaf(value: Any) -> str:
    if isinstance(value, bool):
        return TRUE_STRING if value else FALSE_STRING
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError as exc:
            # over the interpreter's int-to-str digit limit
            raise InvalidArgumentError(f"Integer too large to store: {exc}", value) from exc
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidArgumentError(f"Cannot store non-finite float {value!r}", value)
        return repr(value)
    raise InvalidArgumentError(
        f"Unsupported element type: '{type(value).__name__}'", value
    )


def to_float(value: Any) -> float:
    try:
        return float(value)
    except OverflowError as exc:
        raise InvalidArgumentError(f"Number out of float range: {exc}", value) from exc


def is_numeric(value: str) -> bool:
    return _NUMERIC_RE.fullmatch(value) is not None


def parse_int(key: str, value: str) -> int:
    if not is_numeric(value):
        raise InvalidFormatError(key, value, "the value is not a number")
    try:
        number = int(value)
    except ValueError as exc:
        raise InvalidFormatError(key, value, "the value is not an integer") from exc
    if str(number) != value:
        raise InvalidFormatError(key, value, "the value is not an integer")
    return number


def parse_float(key: str, value: str) -> float:
    if not is_numeric(value):
        raise InvalidFormatError(key, value, "the value is not a number")
    return float(value)


def parse_bool(value: str) -> bool:
    return value not in ("", FALSE_STRING)
