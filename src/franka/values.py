"""
Runtime value model for Franka.

A value is one of:
    - string
    - number (int or float, never bool)
    - boolean
    - null (None)

Output records are plain mappings of field name to value.

The helpers here define the language's conversions in one place so the
evaluator, the output validator and the spec runner agree on them.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Union

Value = Union[str, int, float, bool, None]

# Declared type names accepted by input and output declarations
OUTPUT_TYPES = ("string", "number", "boolean")


def is_number(value: Any) -> bool:
    """True for int/float values. Booleans are not numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_value(value: Any) -> bool:
    return value is None or isinstance(value, (str, bool)) or is_number(value)


def is_truthy(value: Value) -> bool:
    """
    Franka truthiness.

    Only false and null are falsy. Zero, the empty string and the
    string "false" are all truthy.
    """
    return value is not None and value is not False


def _js_number(value: float) -> str:
    """Shortest round-trip rendering with JavaScript's fixed/exponent switch points."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    mantissa, _, exponent = repr(abs(value)).partition("e")
    whole, _, fraction = mantissa.partition(".")
    raw = whole + fraction
    digits = raw.lstrip("0")
    # Decimal point position relative to the first significant digit
    point = len(whole) + int(exponent or 0) - (len(raw) - len(digits))
    digits = digits.rstrip("0")
    if len(digits) <= point <= 21:
        return sign + digits + "0" * (point - len(digits))
    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits
    power = point - 1
    power_text = f"e+{power}" if power >= 0 else f"e{power}"
    if len(digits) == 1:
        return sign + digits + power_text
    return sign + digits[0] + "." + digits[1:] + power_text


def to_string(value: Value) -> str:
    """
    String representation used by the string operations.

    Numbers render as JavaScript would: 1.0 is "1", 1e21 is "1e+21",
    1e-7 is "1e-7" and NaN is "NaN".
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value) if abs(value) < 10 ** 21 else _js_number(float(value))
    if isinstance(value, float):
        return _js_number(value)
    return str(value)


def utf16_length(text: str) -> int:
    """Length in UTF-16 code units; characters outside the BMP count twice."""
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def utf16_slice(text: str, start: int, end: int) -> str:
    """Slice by UTF-16 code units. A cut through a surrogate pair keeps the lone half."""
    units = text.encode("utf-16-le", "surrogatepass")[2 * start:2 * end]
    return units.decode("utf-16-le", "surrogatepass")


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "record"
    return type(value).__name__


def matches_type(value: Any, declared: str) -> bool:
    """Check a value against a declared type name."""
    return type_name(value) == declared


def values_equal(left: Value, right: Value) -> bool:
    """Strict equality: no coercion between kinds, but 1 == 1.0."""
    if type_name(left) != type_name(right):
        return False
    return left == right


def outputs_equal(expected: Any, actual: Any) -> bool:
    """Deep structural equality over values and output records."""
    if isinstance(expected, Mapping) or isinstance(actual, Mapping):
        if not (isinstance(expected, Mapping) and isinstance(actual, Mapping)):
            return False
        if set(expected.keys()) != set(actual.keys()):
            return False
        return all(outputs_equal(expected[key], actual[key]) for key in expected)
    return values_equal(expected, actual)
