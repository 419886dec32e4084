"""
Numeric -- Lenient coercion of operator-entered numbers.

Responsibility:
    Every quantity, cost, markup and percent field that reaches the
    engines passes through these helpers. Operators type values such as
    ``"1.200.000"``, ``"12,5"`` or ``""``; the helpers turn them into
    Decimal and clamp them into range.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Coercion helpers (``to_decimal``, ``non_negative``, ``to_quantity``,
      ``clamp_percent``, ``markup_multiplier``, ``optional_amount``) never
      raise. Invalid input becomes the nearest valid value.
    - Only ``parse_decimal`` raises (InvalidNumericInputError); it is the
      strict primitive the lenient helpers are built on.
    - Results are always finite Decimal values.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any

from pricing_kernel.exceptions import InvalidNumericInputError

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def _normalize_separators(text: str) -> str:
    # The right-most separator is the decimal mark when both appear.
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if text.count(",") > 1:
        return text.replace(",", "")
    if text.count(".") > 1:
        return text.replace(".", "")
    return text.replace(",", ".")


def parse_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Strictly parse a numeric input into a finite Decimal.

    Accepts Decimal, int, float (converted through ``str``) and text with
    optional thousands separators and either decimal mark.

    Raises:
        InvalidNumericInputError: for None, booleans, blank or
            non-numeric text, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        raise InvalidNumericInputError(field, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(" ", "").replace("\u00a0", "").replace("_", "")
        if not text:
            raise InvalidNumericInputError(field, value)
        try:
            result = Decimal(_normalize_separators(text))
        except InvalidOperation as e:
            raise InvalidNumericInputError(field, value) from e
    else:
        raise InvalidNumericInputError(field, value)
    if not result.is_finite():
        raise InvalidNumericInputError(field, value)
    return result


def to_decimal(value: Any, default: Decimal = ZERO, field: str = "value") -> Decimal:
    """Parse ``value``; return ``default`` when it is not a number."""
    try:
        return parse_decimal(value, field)
    except InvalidNumericInputError:
        return default


def non_negative(value: Any, default: Decimal = ZERO, field: str = "value") -> Decimal:
    """Parse and clamp to ``>= 0``."""
    result = to_decimal(value, default, field)
    return result if result > ZERO else ZERO


def to_quantity(value: Any, field: str = "quantity") -> int:
    """Parse a row quantity: floored to an integer, never negative."""
    result = non_negative(value, ZERO, field)
    return int(result.to_integral_value(rounding=ROUND_FLOOR))


def clamp_percent(value: Any, field: str = "percent") -> Decimal:
    """Parse a percentage number and clamp it into ``[0, 100]``."""
    result = non_negative(value, ZERO, field)
    return result if result < HUNDRED else HUNDRED


def markup_multiplier(value: Any, default: Decimal = ONE, field: str = "markup_x") -> Decimal:
    """Parse a markup multiplier; missing input gives ``default``, ``<= 0`` gives 1."""
    if value is None or (isinstance(value, str) and not value.strip()):
        value = default
    result = to_decimal(value, ONE, field)
    return result if result > ZERO else ONE


def optional_amount(value: Any, field: str = "value") -> Decimal | None:
    """
    Parse an optional override field.

    None and blank text mean "not set" and return None. Anything else is
    parsed leniently and clamped to ``>= 0``.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return non_negative(value, ZERO, field)
