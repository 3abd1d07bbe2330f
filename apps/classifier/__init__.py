"""Classification service.

:class:`ValueClassifier` showcases structural pattern matching over the
tagged scalars from :mod:`lib.contracts.scalars`.  Every method is a single
``match`` statement whose cases are tried top to bottom; the width tagged
integer subclasses are listed before plain ``int`` because a class pattern
also matches subclasses.

``None`` is an ordinary input with its own label.  The only error raised here
is :class:`~lib.utils.validation.NumberFormatError` from :meth:`convert`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from lib.contracts.scalars import (
    INT32_MAX,
    INT32_MIN,
    BigInteger,
    Byte,
    Char,
    Float,
    Long,
    Short,
    parse_decimal,
)
from lib.telemetry.logger import get_logger
from lib.utils.validation import NumberFormatError


logger = get_logger(__name__)

UNRECOGNISED = "No es un primitivo reconocido"
SMALL_LIMIT = 100


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _wrap_int32(number: int) -> int:
    return ((number - INT32_MIN) & 0xFFFFFFFF) + INT32_MIN


def _truncate_int32(number: float) -> int:
    if math.isnan(number):
        return 0
    if number >= INT32_MAX:
        return INT32_MAX
    if number <= INT32_MIN:
        return INT32_MIN
    return int(number)


def parse_int32(text: str) -> int:
    """Parse a signed decimal 32-bit integer; no whitespace, no separators."""

    try:
        number = parse_decimal(text)
    except ValueError:
        raise NumberFormatError.for_input(text) from None
    if not INT32_MIN <= number <= INT32_MAX:
        raise NumberFormatError.for_input(text)
    return number


@dataclass
class ValueClassifier:
    """Label, check, convert and validate tagged scalar values."""

    small_limit: int = SMALL_LIMIT

    def process(self, value: Any) -> str:
        match value:
            case bool(flag):
                label = f"Boolean: {_render(flag)}"
            case Byte():
                label = f"Byte: {value}"
            case Short():
                label = f"Short: {value}"
            case Long():
                label = f"Long: {value}"
            case BigInteger():
                label = f"Tipo desconocido: {type(value).__name__}"
            case int(number) if number > self.small_limit:
                label = f"Integer grande: {number}"
            case int(number):
                label = f"Integer pequeño: {number}"
            case Float():
                label = f"Float: {value}"
            case float(number):
                label = f"Double: {number}"
            case Char():
                label = f"Char: {value}"
            case str(text):
                label = f"String: {text}"
            case None:
                label = "Null value"
            case _:
                label = f"Tipo desconocido: {type(value).__name__}"
        logger.debug("classifier.process", value_type=type(value).__name__, label=label)
        return label

    def check_type(self, value: Any) -> str:
        match value:
            case bool(flag):
                return f"Es un boolean con valor: {_render(flag)}"
            case Byte() | Short() | Long() | BigInteger() | Float():
                return UNRECOGNISED
            case int(number):
                return f"Es un int con valor: {number}"
            case float(number):
                return f"Es un double con valor: {number}"
            case _:
                return UNRECOGNISED

    def convert(self, value: Any) -> int:
        """Return ``value`` as a 32-bit integer.

        Narrow integers widen, :class:`Long` keeps its low 32 bits, floats
        truncate toward zero and saturate, text is parsed strictly and
        ``None`` becomes 0.  Any other type also converts to 0.
        """

        match value:
            case None | bool() | BigInteger():
                return 0
            case Long():
                return _wrap_int32(int(value))
            case int(number):
                return int(number)
            case float(number):
                return _truncate_int32(number)
            case Char():
                return 0
            case str(text):
                try:
                    return parse_int32(text)
                except NumberFormatError:
                    logger.warning("classifier.convert.unparseable", text=text)
                    raise
            case _:
                return 0

    def validate(self, value: Any) -> str:
        match value:
            case None:
                return "Valor nulo"
            case bool() | Byte() | Short() | Long() | BigInteger():
                return "No es un entero"
            case int(number) if number < 0:
                return "Número negativo"
            case int(number) if number == 0:
                return "Cero"
            case int(number) if number <= self.small_limit:
                return "Número positivo pequeño"
            case int():
                return "Número positivo grande"
            case _:
                return "No es un entero"


__all__ = ["ValueClassifier", "parse_int32"]
