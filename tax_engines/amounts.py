"""
Amount Splitter - split a single amount into net, tax and total.

Used where an amount is entered without quantities (expense lines, sales
receipts, tax-mode toggles on a finished total).  Guarantees
``net + tax == total`` exactly after rounding: the rounded side that is
not the input absorbs the penny difference.

Usage:
    from tax_engines.amounts import split_amount
    from tax_engines.rates import TaxMode

    split = split_amount(Decimal("10000000"), Decimal("18"), TaxMode.INCLUSIVE)
    print(split.net, split.tax)  # 8474576.27 1525423.73
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from tax_engines.line import require_non_negative
from tax_engines.rates import TaxMode
from tax_kernel.logging_config import get_logger
from tax_kernel.values import ONE, ZERO, percent_to_fraction, round_money

logger = get_logger("engines.amounts")


@dataclass(frozen=True)
class TaxSplit:
    """Net / tax / total of one amount."""

    net: Decimal
    tax: Decimal
    total: Decimal
    rate_percent: Decimal
    mode: TaxMode

    @property
    def effective_rate(self) -> Decimal:
        """Tax / net as a fraction."""
        if self.net == ZERO:
            return ZERO
        return self.tax / self.net


@dataclass(frozen=True)
class SplitTotals:
    subtotal: Decimal
    total_tax: Decimal
    total: Decimal


def split_amount(
    amount: Decimal | int | str,
    rate_percent: Decimal | int | str,
    tax_mode: TaxMode,
) -> TaxSplit:
    """
    Split ``amount`` at ``rate_percent``.

    EXCLUSIVE: amount is the net; tax is added on top.
    INCLUSIVE: amount is the total; net = total / (1 + rate).
    """
    value = require_non_negative("amount", amount)
    percent = require_non_negative("rate_percent", rate_percent)
    mode = TaxMode(tax_mode)
    rate = percent_to_fraction(percent)

    if mode == TaxMode.INCLUSIVE:
        total = round_money(value)
        net = round_money(total / (ONE + rate))
        tax = total - net
    else:
        net = round_money(value)
        tax = round_money(net * rate)
        total = net + tax

    return TaxSplit(net=net, tax=tax, total=total, rate_percent=percent, mode=mode)


def recalculate_on_toggle(
    current_total: Decimal | int | str,
    rate_percent: Decimal | int | str,
    new_mode: TaxMode,
) -> TaxSplit:
    """
    Re-split a finished total after the document tax mode is toggled.

    Switching to INCLUSIVE keeps the total and extracts the tax from it.
    Switching to EXCLUSIVE back-calculates the net that produces the total
    and adds tax on top of it.
    """
    mode = TaxMode(new_mode)
    logger.debug("tax_mode_toggled", extra={
        "current_total": str(current_total),
        "rate_percent": str(rate_percent),
        "new_mode": mode.value,
    })
    if mode == TaxMode.INCLUSIVE:
        return split_amount(current_total, rate_percent, TaxMode.INCLUSIVE)

    total = require_non_negative("current_total", current_total)
    percent = require_non_negative("rate_percent", rate_percent)
    net = round_money(total / (ONE + percent_to_fraction(percent)))
    return split_amount(net, percent, TaxMode.EXCLUSIVE)


def sum_splits(splits: Iterable[TaxSplit]) -> SplitTotals:
    """Invoice totals over several splits."""
    subtotal = total_tax = total = ZERO
    for s in splits:
        subtotal += s.net
        total_tax += s.tax
        total += s.total
    return SplitTotals(subtotal=subtotal, total_tax=total_tax, total=total)
