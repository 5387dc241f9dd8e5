"""Tests for splitting single amounts into net / tax / total."""

from decimal import Decimal

import pytest

from tax_engines.amounts import recalculate_on_toggle, split_amount, sum_splits
from tax_engines.rates import TaxMode
from tax_kernel.exceptions import NegativeAmountError


class TestSplitAmount:
    """Exclusive and inclusive splits."""

    def test_exclusive(self):
        split = split_amount(Decimal("1000"), Decimal("18"), TaxMode.EXCLUSIVE)

        assert split.net == Decimal("1000.00")
        assert split.tax == Decimal("180.00")
        assert split.total == Decimal("1180.00")
        assert split.effective_rate == Decimal("0.18")

    def test_inclusive(self):
        split = split_amount(Decimal("10000000"), Decimal("18"), TaxMode.INCLUSIVE)

        assert split.net == Decimal("8474576.27")
        assert split.tax == Decimal("1525423.73")
        assert split.total == Decimal("10000000.00")

    @pytest.mark.parametrize("mode", [TaxMode.EXCLUSIVE, TaxMode.INCLUSIVE])
    def test_net_plus_tax_is_total(self, mode):
        split = split_amount(Decimal("99.99"), Decimal("17.5"), mode)
        assert split.net + split.tax == split.total

    def test_zero_rate(self):
        split = split_amount(Decimal("50"), Decimal("0"), TaxMode.INCLUSIVE)
        assert split.tax == Decimal("0.00")
        assert split.net == Decimal("50.00")

    def test_zero_net_effective_rate(self):
        split = split_amount(Decimal("0"), Decimal("18"), TaxMode.EXCLUSIVE)
        assert split.effective_rate == Decimal("0")

    def test_negative_amount_rejected(self):
        with pytest.raises(NegativeAmountError):
            split_amount(Decimal("-1"), Decimal("18"), TaxMode.EXCLUSIVE)


class TestToggle:
    """Re-splitting a finished total after a mode toggle."""

    def test_toggle_to_inclusive_keeps_total(self):
        split = recalculate_on_toggle(Decimal("1180"), Decimal("18"), TaxMode.INCLUSIVE)

        assert split.total == Decimal("1180.00")
        assert split.net == Decimal("1000.00")
        assert split.tax == Decimal("180.00")

    def test_toggle_to_exclusive_rebuilds_total(self):
        split = recalculate_on_toggle(Decimal("1180"), Decimal("18"), TaxMode.EXCLUSIVE)

        assert split.mode == TaxMode.EXCLUSIVE
        assert split.net == Decimal("1000.00")
        assert split.total == Decimal("1180.00")


class TestSumSplits:
    def test_sums(self):
        totals = sum_splits([
            split_amount(Decimal("100"), Decimal("18"), TaxMode.EXCLUSIVE),
            split_amount(Decimal("118"), Decimal("18"), TaxMode.INCLUSIVE),
        ])

        assert totals.subtotal == Decimal("200.00")
        assert totals.total_tax == Decimal("36.00")
        assert totals.total == Decimal("236.00")
