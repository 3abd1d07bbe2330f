"""Tagged scalar values accepted by the classifier.

JSON only knows numbers, strings, booleans and ``null``.  The classifier
distinguishes integer widths and float precision, so the width is carried in
the Python type: :class:`Byte`, :class:`Short` and :class:`Long` are ``int``
subclasses that check their range on construction, :class:`Float` tags a
single-precision value and :class:`Char` a one-character string.  Plain
``int`` is the 32-bit integer and plain ``float`` the double.

:func:`coerce_scalar` turns a decoded JSON value into one of these types,
either by inference (integers widen to :class:`Long` and then
:class:`BigInteger` as they outgrow 32 and 64 bits) or following an explicit
tag supplied by the caller.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Callable, Dict

from lib.utils.validation import ensure


INT32_MIN, INT32_MAX = -(1 << 31), (1 << 31) - 1
INT64_MIN, INT64_MAX = -(1 << 63), (1 << 63) - 1
FLOAT32_MAX = 3.4028234663852886e38

DECIMAL_TEXT_RE = re.compile(r"[+-]?[0-9]+")
_DIGITS_PER_CHUNK = 1000


class _BoundedInt(int):
    bits: int = 64

    def __new__(cls, value: Any = 0) -> "_BoundedInt":
        number = int.__new__(cls, value)
        low, high = -(1 << (cls.bits - 1)), (1 << (cls.bits - 1)) - 1
        ensure(low <= number <= high, f"{cls.__name__} out of range [{low}, {high}]")
        return number


class Byte(_BoundedInt):
    bits = 8


class Short(_BoundedInt):
    bits = 16


class Long(_BoundedInt):
    bits = 64


class BigInteger(int):
    """Integer that does not fit in 64 bits."""


class Float(float):
    """Single precision float.  Only the range is checked; the value keeps
    its double precision digits so it prints the way it was sent."""

    def __new__(cls, value: Any = 0.0) -> "Float":
        number = float.__new__(cls, value)
        ensure(
            math.isnan(number) or math.isinf(number) or abs(number) <= FLOAT32_MAX,
            f"Float out of range: {value}",
        )
        return number


class Char(str):
    def __new__(cls, value: Any = "\0") -> "Char":
        text = str.__new__(cls, value)
        ensure(len(text) == 1, f"Char needs exactly one character, got {value!r}")
        return text


def parse_decimal(text: str) -> int:
    """Parse an optionally signed run of decimal digits of any length.

    Whitespace, separators and other bases are rejected with
    :class:`ValueError`.  Long inputs are read in chunks so they are not
    subject to the interpreter's digit limit for ``int(str)``.
    """

    if not DECIMAL_TEXT_RE.fullmatch(text):
        raise ValueError(f"not a decimal integer: {text[:32]!r}")
    negative = text[0] == "-"
    digits = text.lstrip("+-")
    number = 0
    for start in range(0, len(digits), _DIGITS_PER_CHUNK):
        chunk = digits[start : start + _DIGITS_PER_CHUNK]
        number = number * 10 ** len(chunk) + int(chunk)
    return -number if negative else number


class ScalarTag(str, Enum):
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    CHAR = "char"
    BOOLEAN = "boolean"
    STRING = "string"


def _integral(value: Any) -> int:
    match value:
        case bool():
            raise ValueError(f"boolean is not an integer: {value}")
        case int():
            return int(value)
        case float() if value.is_integer():
            return int(value)
        case str():
            return parse_decimal(value)
        case _:
            raise ValueError(f"cannot read an integer from {type(value).__name__}")


def _int32(value: Any) -> int:
    number = _integral(value)
    ensure(INT32_MIN <= number <= INT32_MAX, f"int out of range [{INT32_MIN}, {INT32_MAX}]")
    return number


def _floating(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"boolean is not a number: {value}")
    return float(value)


def _boolean(value: Any) -> bool:
    match value:
        case bool():
            return value
        case "true" | "false":
            return value == "true"
        case _:
            raise ValueError(f"not a boolean: {value!r}")


def _char(value: Any) -> Char:
    if not isinstance(value, str):
        raise ValueError(f"char must be sent as a string, got {type(value).__name__}")
    return Char(value)


def _string(value: Any) -> str:
    match value:
        case bool():
            return "true" if value else "false"
        case str():
            return value
        case _:
            return str(value)


_CONVERTERS: Dict[ScalarTag, Callable[[Any], Any]] = {
    ScalarTag.BYTE: lambda v: Byte(_integral(v)),
    ScalarTag.SHORT: lambda v: Short(_integral(v)),
    ScalarTag.INT: _int32,
    ScalarTag.LONG: lambda v: Long(_integral(v)),
    ScalarTag.FLOAT: lambda v: Float(_floating(v)),
    ScalarTag.DOUBLE: _floating,
    ScalarTag.CHAR: _char,
    ScalarTag.BOOLEAN: _boolean,
    ScalarTag.STRING: _string,
}


def infer_scalar(value: Any) -> Any:
    """Pick the narrowest integer type for JSON integers; pass the rest through."""

    match value:
        case bool() | None:
            return value
        case int() if INT32_MIN <= value <= INT32_MAX:
            return value
        case int() if INT64_MIN <= value <= INT64_MAX:
            return Long(value)
        case int():
            return BigInteger(value)
        case _:
            return value


def coerce_scalar(value: Any, tag: ScalarTag | str | None = None) -> Any:
    """Return ``value`` as a tagged scalar.

    ``None`` stays ``None`` whatever the tag.  Raises :class:`ValueError` when
    the value cannot be represented by the requested tag.
    """

    if tag is None:
        return infer_scalar(value)
    if value is None:
        return None
    return _CONVERTERS[ScalarTag(tag)](value)


__all__ = [
    "BigInteger",
    "Byte",
    "Char",
    "Float",
    "Long",
    "ScalarTag",
    "Short",
    "coerce_scalar",
    "infer_scalar",
    "parse_decimal",
]
