"""
Unit tests for operator numeric input handling.

The lenient helpers never raise; only parse_decimal does.
"""

from decimal import Decimal

import pytest

from pricing_kernel.domain.numeric import (
    clamp_percent,
    markup_multiplier,
    non_negative,
    optional_amount,
    parse_decimal,
    to_decimal,
    to_quantity,
)
from pricing_kernel.exceptions import InvalidNumericInputError


class TestParseDecimal:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1200000", Decimal("1200000")),
            ("1.200.000", Decimal("1200000")),
            ("1,200,000", Decimal("1200000")),
            ("12,5", Decimal("12.5")),
            ("1.234,56", Decimal("1234.56")),
            ("1,234.56", Decimal("1234.56")),
            (" 1 500 000 ", Decimal("1500000")),
            ("1_000", Decimal("1000")),
            (7, Decimal("7")),
            (Decimal("3.25"), Decimal("3.25")),
        ],
    )
    def test_accepts_operator_formats(self, raw, expected):
        assert parse_decimal(raw) == expected

    def test_float_goes_through_str(self):
        assert parse_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "NaN", "inf", True, [1]])
    def test_rejects_garbage(self, raw):
        with pytest.raises(InvalidNumericInputError) as exc_info:
            parse_decimal(raw, field="quantity")
        assert exc_info.value.code == "INVALID_NUMERIC_INPUT"
        assert exc_info.value.field == "quantity"


class TestLenientHelpers:
    def test_to_decimal_default_on_garbage(self):
        assert to_decimal("abc") == Decimal("0")
        assert to_decimal("abc", default=Decimal("5")) == Decimal("5")

    def test_non_negative_clamps(self):
        assert non_negative("-10") == Decimal("0")
        assert non_negative("10") == Decimal("10")

    def test_to_quantity_floors(self):
        assert to_quantity("3.9") == 3
        assert to_quantity(-2) == 0
        assert to_quantity("x") == 0

    def test_clamp_percent(self):
        assert clamp_percent("150") == Decimal("100")
        assert clamp_percent("-5") == Decimal("0")
        assert clamp_percent("12,5") == Decimal("12.5")

    def test_markup_multiplier(self):
        assert markup_multiplier(None) == Decimal("1")
        assert markup_multiplier("", default=Decimal("1.5")) == Decimal("1.5")
        assert markup_multiplier("0") == Decimal("1")
        assert markup_multiplier("-2") == Decimal("1")
        assert markup_multiplier("abc") == Decimal("1")
        assert markup_multiplier("1.25") == Decimal("1.25")

    def test_optional_amount(self):
        assert optional_amount(None) is None
        assert optional_amount("  ") is None
        assert optional_amount("0") == Decimal("0")
        assert optional_amount("-3") == Decimal("0")
