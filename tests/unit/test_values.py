"""Tests for Decimal coercion and rounding helpers."""

from decimal import Decimal

import pytest

from tax_kernel.values import (
    percent_to_fraction,
    round_money,
    round_price,
    to_decimal,
    within_tolerance,
)


class TestToDecimal:
    def test_decimal_passthrough(self):
        value = Decimal("1.23")
        assert to_decimal(value) is value

    def test_int_and_string(self):
        assert to_decimal(5) == Decimal("5")
        assert to_decimal(" 2.50 ") == Decimal("2.50")

    @pytest.mark.parametrize("value", [1.5, True, None, [1]])
    def test_unsupported_types_rejected(self, value):
        with pytest.raises(TypeError):
            to_decimal(value, "price")

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity"])
    def test_invalid_strings_rejected(self, value):
        with pytest.raises(ValueError):
            to_decimal(value, "price")

    def test_error_names_field(self):
        with pytest.raises(TypeError, match="unit_price"):
            to_decimal(2.0, "unit_price")


class TestRounding:
    def test_round_money_half_up(self):
        assert round_money(Decimal("0.005")) == Decimal("0.01")
        assert round_money(Decimal("2.675")) == Decimal("2.68")
        assert round_money(Decimal("-0.005")) == Decimal("-0.01")

    def test_round_price_six_places(self):
        assert round_price(Decimal("84.7457627118")) == Decimal("84.745763")

    def test_percent_to_fraction(self):
        assert percent_to_fraction(Decimal("18")) == Decimal("0.18")

    def test_within_tolerance(self):
        assert within_tolerance(Decimal("10.00"), Decimal("10.01"))
        assert not within_tolerance(Decimal("10.00"), Decimal("10.02"))
