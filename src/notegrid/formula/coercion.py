"""Number and string coercion rules for formula values.

Coercion is permissive: text that does not parse as a number counts as 0,
and it never raises.
"""

import math
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class NumberValue:
    value: float


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class FieldValue:
    """A field's raw value, left untyped until an operator consumes it."""

    raw: Any


StackValue = Union[NumberValue, StringValue, FieldValue]


# Integral values at or above this magnitude are written in exponent form
_EXPONENT_THRESHOLD = 1e21


def format_number(value: float) -> str:
    """
    Render a number in canonical form.

    Integral values have no decimal point; others are rounded to six
    fractional digits with trailing zeros removed. Very large integral
    values use exponent form.

    Examples:
        >>> format_number(2.0)
        '2'
        >>> format_number(1.5)
        '1.5'
        >>> format_number(1e307)
        '1e+307'
    """
    if isinstance(value, int):
        if abs(value) < _EXPONENT_THRESHOLD:
            return str(value)
        value = float(value)
    if value.is_integer():
        if abs(value) >= _EXPONENT_THRESHOLD:
            return repr(value)
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


def coerce_number(value: Any) -> float:
    """Convert an arbitrary raw value to a finite float, defaulting to 0."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
        return number if math.isfinite(number) else 0.0

    text = str(value).strip()
    if not text:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_number(item: StackValue) -> float:
    """Numeric form of a stack value."""
    if isinstance(item, NumberValue):
        return item.value
    if isinstance(item, StringValue):
        return coerce_number(item.value)
    return coerce_number(item.raw)


def to_string(item: StackValue) -> str:
    """Textual form of a stack value."""
    if isinstance(item, StringValue):
        return item.value
    if isinstance(item, NumberValue):
        return format_number(item.value)
    return field_to_string(item.raw)


def field_to_string(raw: Any) -> str:
    """Textual form of a raw field value; missing values are empty."""
    if raw is None:
        return ""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return format_number(raw)
    return str(raw)


def raw_to_string(raw: Any) -> str:
    """
    Text of a raw field value shown as-is.

    Unlike field_to_string, fractional numbers keep every digit.
    """
    if raw is None:
        return ""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return str(raw) if abs(raw) < _EXPONENT_THRESHOLD else repr(float(raw))
    if isinstance(raw, float):
        if raw.is_integer() and abs(raw) < _EXPONENT_THRESHOLD:
            return str(int(raw))
        return repr(raw)
    return str(raw)
