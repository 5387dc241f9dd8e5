"""
tax_engines.line -- Line-item subtotal, discount and tax calculation.

Responsibility:
    Given quantity, a tax-exclusive unit price, a resolved tax rate, the
    document tax mode and a discount, produce the subtotal / tax / total
    of one invoice line.  Also maintains the presentation-facing display
    rate (tax-inclusive price when the document is INCLUSIVE) and its
    exact inverse.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on the ``ResolvedRate`` produced by tax_engines.rates, never on
    the resolver itself.

Invariants enforced:
    - ``unit_price`` is always the tax-exclusive base.  ``compute_line``
      never re-applies the inclusive conversion, so a line computed from
      the same net price yields identical tax in both modes.
    - Validation happens before any arithmetic: negative quantity, price
      or discount and percentage discounts above 100 are rejected.
    - The only coercion is the discount clamp: a discount larger than the
      gross line amount is capped at that amount.
    - Each derived amount is rounded once (2 dp, half-up) from unrounded
      intermediates; ``total == subtotal + tax_amount`` exactly.
    - A FIXED_AMOUNT rate is a flat per-line charge.  It is never scaled
      by quantity and never reduced by a discount of either type.

Failure modes:
    - NegativeAmountError, DiscountPercentExceededError from
      ``compute_line``.
    - DisplayPriceBelowFixedTaxError from ``from_display_rate`` when an
      inclusive price cannot cover its fixed tax share.
    - TypeError if a rate is not a ResolvedRate.

Usage:
    from tax_engines.line import LineCalculator, DiscountType
    from tax_engines.rates import PercentageRate, TaxMode

    calculator = LineCalculator()
    result = calculator.compute_line(
        quantity=Decimal("10"),
        unit_price=Decimal("100"),
        rate=PercentageRate(Decimal("18")),
        tax_mode=TaxMode.EXCLUSIVE,
    )
    print(result.total)  # 1180.00
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from tax_engines.rates import FixedAmountRate, PercentageRate, ResolvedRate, TaxMode
from tax_engines.tracer import traced_engine
from tax_kernel.exceptions import (
    DiscountPercentExceededError,
    DisplayPriceBelowFixedTaxError,
    NegativeAmountError,
)
from tax_kernel.logging_config import get_logger
from tax_kernel.values import (
    HUNDRED,
    ONE,
    ZERO,
    percent_to_fraction,
    round_money,
    round_price,
    to_decimal,
)

logger = get_logger("engines.line")


class DiscountType(str, Enum):
    """How a line discount is expressed."""

    AMOUNT = "AMOUNT"
    PERCENTAGE = "PERCENTAGE"


@dataclass(frozen=True)
class LineResult:
    """
    Calculated amounts for one line.

    ``subtotal`` is quantity x unit price minus discount (net of tax).
    """

    gross_amount: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal

    @property
    def net_after_discount(self) -> Decimal:
        return self.subtotal


@dataclass(frozen=True)
class DocumentTotals:
    """Line results summed over a document."""

    gross_amount: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    line_count: int

    @classmethod
    def empty(cls) -> DocumentTotals:
        return cls(ZERO, ZERO, ZERO, ZERO, ZERO, 0)

    @property
    def effective_rate(self) -> Decimal:
        """Tax as a percentage of the net subtotal, 2 dp; zero without a net."""
        if self.subtotal <= ZERO:
            return ZERO
        return round_money(self.tax_amount / self.subtotal * HUNDRED)


@dataclass(frozen=True)
class TaxBreakdownRow:
    """Line results sharing one resolved rate (``None`` for untaxed lines)."""

    rate: ResolvedRate | None
    net_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    line_count: int


def require_non_negative(field: str, value: Decimal | int | str) -> Decimal:
    """Coerce ``value`` and reject it when negative."""
    amount = to_decimal(value, field)
    if amount < ZERO:
        logger.warning("line_validation_failed", extra={
            "field": field,
            "value": str(amount),
            "reason": "negative",
        })
        raise NegativeAmountError(field, amount)
    return amount


def _fixed_share(amount: Decimal, quantity: Decimal) -> Decimal:
    """Fixed tax spread per unit; zero when there is nothing to spread over."""
    if quantity == ZERO:
        return ZERO
    return amount / quantity


class LineCalculator:
    """
    Pure calculator for a single invoice line.

    Contract:
        No I/O, no hidden state.  The tax mode is always an explicit
        argument.
    Guarantees:
        - ``compute_line``: gross = qty x price; discount clamped to gross;
          tax = net x percent / 100, or the flat fixed amount, or zero.
        - ``to_display_rate`` / ``from_display_rate`` round-trip within 0.01.
    Non-goals:
        - Does not resolve tax rate ids (see RateResolver).
        - Does not convert currencies.
    """

    @traced_engine(
        "line",
        "1.0",
        fingerprint_fields=(
            "quantity", "unit_price", "rate", "tax_mode", "discount", "discount_type",
        ),
    )
    def compute_line(
        self,
        quantity: Decimal | int | str,
        unit_price: Decimal | int | str,
        rate: ResolvedRate | None,
        tax_mode: TaxMode,
        discount: Decimal | int | str = ZERO,
        discount_type: DiscountType = DiscountType.AMOUNT,
    ) -> LineResult:
        """
        Calculate subtotal, tax and total for one line.

        Args:
            quantity: Units sold (>= 0).
            unit_price: Tax-exclusive price per unit (>= 0).  In INCLUSIVE
                documents the caller extracts it with ``from_display_rate``
                first.
            rate: Resolved tax rate, or None for no tax.
            tax_mode: Document tax mode.  Recorded only; the price is
                already tax-exclusive.
            discount: Discount amount or percentage (>= 0).
            discount_type: AMOUNT or PERCENTAGE.

        Returns:
            LineResult rounded to 2 decimal places.

        Raises:
            NegativeAmountError: negative quantity, price or discount.
            DiscountPercentExceededError: percentage discount above 100.
        """
        tax_mode = TaxMode(tax_mode)
        discount_type = DiscountType(discount_type)
        qty = require_non_negative("quantity", quantity)
        price = require_non_negative("unit_price", unit_price)
        disc = require_non_negative("discount", discount)
        if discount_type == DiscountType.PERCENTAGE and disc > HUNDRED:
            logger.warning("line_validation_failed", extra={
                "field": "discount",
                "value": str(disc),
                "reason": "percent_above_100",
            })
            raise DiscountPercentExceededError(disc)

        gross = qty * price

        if discount_type == DiscountType.PERCENTAGE:
            discount_amount = gross * percent_to_fraction(disc)
        else:
            discount_amount = disc

        if discount_amount > gross:
            logger.debug("discount_clamped", extra={
                "discount": str(discount_amount),
                "gross_amount": str(gross),
            })
            discount_amount = gross

        net = gross - discount_amount
        tax = self._tax_on(net, rate)

        subtotal = round_money(net)
        tax_amount = round_money(tax)
        result = LineResult(
            gross_amount=round_money(gross),
            discount_amount=round_money(discount_amount),
            subtotal=subtotal,
            tax_amount=tax_amount,
            total=subtotal + tax_amount,
        )

        logger.debug("line_computed", extra={
            "quantity": str(qty),
            "unit_price": str(price),
            "tax_mode": tax_mode.value,
            "rate_kind": type(rate).__name__ if rate is not None else None,
            "subtotal": str(result.subtotal),
            "tax_amount": str(result.tax_amount),
            "total": str(result.total),
        })
        return result

    def to_display_rate(
        self,
        unit_price: Decimal | int | str,
        rate: ResolvedRate | None,
        tax_mode: TaxMode,
        quantity: Decimal | int | str = ONE,
    ) -> Decimal:
        """
        Project a tax-exclusive unit price to the price shown to the user.

        EXCLUSIVE mode or no rate: identity.  INCLUSIVE mode: adds the
        percentage tax, or the fixed tax spread over the quantity.
        """
        price = require_non_negative("unit_price", unit_price)
        qty = require_non_negative("quantity", quantity)
        if TaxMode(tax_mode) == TaxMode.EXCLUSIVE or rate is None:
            return round_money(price)

        match rate:
            case PercentageRate():
                display = price * (ONE + rate.fraction)
            case FixedAmountRate():
                display = price + _fixed_share(rate.amount, qty)
            case _:
                raise TypeError(f"Unsupported rate: {rate!r}")
        return round_money(display)

    def from_display_rate(
        self,
        display_rate: Decimal | int | str,
        rate: ResolvedRate | None,
        tax_mode: TaxMode,
        quantity: Decimal | int | str = ONE,
    ) -> Decimal:
        """
        Extract the tax-exclusive unit price from an entered display price.

        Exact inverse of ``to_display_rate``.  The result is a price base
        kept at 6 decimal places; monetary rounding happens on the amounts
        derived from it.

        Raises:
            DisplayPriceBelowFixedTaxError: when a fixed tax share is larger
                than the entered inclusive price.
        """
        display = require_non_negative("display_rate", display_rate)
        qty = require_non_negative("quantity", quantity)
        if TaxMode(tax_mode) == TaxMode.EXCLUSIVE or rate is None:
            return round_price(display)

        match rate:
            case PercentageRate():
                price = display / (ONE + rate.fraction)
            case FixedAmountRate():
                share = _fixed_share(rate.amount, qty)
                price = display - share
                if price < ZERO:
                    logger.warning("display_rate_below_fixed_tax", extra={
                        "display_rate": str(display),
                        "fixed_per_unit": str(share),
                    })
                    raise DisplayPriceBelowFixedTaxError(display, round_price(share))
            case _:
                raise TypeError(f"Unsupported rate: {rate!r}")
        return round_price(price)

    def compute_document_totals(self, results: Iterable[LineResult]) -> DocumentTotals:
        """Sum line results into document totals."""
        totals = DocumentTotals.empty()
        for r in results:
            totals = DocumentTotals(
                gross_amount=totals.gross_amount + r.gross_amount,
                discount_amount=totals.discount_amount + r.discount_amount,
                subtotal=totals.subtotal + r.subtotal,
                tax_amount=totals.tax_amount + r.tax_amount,
                total=totals.total + r.total,
                line_count=totals.line_count + 1,
            )
        return totals

    def tax_breakdown(
        self,
        lines: Iterable[tuple[ResolvedRate | None, LineResult]],
    ) -> tuple[TaxBreakdownRow, ...]:
        """
        Group (rate, result) pairs by rate, in order of first appearance.

        Rates compare by value, so two lines at 18% share a row whichever
        tax rate id they were resolved from.
        """
        rows: dict[ResolvedRate | None, TaxBreakdownRow] = {}
        for rate, r in lines:
            row = rows.get(rate)
            if row is None:
                rows[rate] = TaxBreakdownRow(rate, r.subtotal, r.tax_amount, r.total, 1)
            else:
                rows[rate] = TaxBreakdownRow(
                    rate=rate,
                    net_amount=row.net_amount + r.subtotal,
                    tax_amount=row.tax_amount + r.tax_amount,
                    total=row.total + r.total,
                    line_count=row.line_count + 1,
                )
        return tuple(rows.values())

    def _tax_on(self, net: Decimal, rate: ResolvedRate | None) -> Decimal:
        """Unrounded tax for a net line amount."""
        match rate:
            case None:
                return ZERO
            case PercentageRate():
                return net * rate.fraction
            case FixedAmountRate():
                return rate.amount
            case _:
                logger.error("line_unknown_rate_kind", extra={"rate": repr(rate)})
                raise TypeError(f"Unsupported rate: {rate!r}")


# Convenience functions


def compute_line(
    quantity: Decimal | int | str,
    unit_price: Decimal | int | str,
    rate: ResolvedRate | None,
    tax_mode: TaxMode,
    discount: Decimal | int | str = ZERO,
    discount_type: DiscountType = DiscountType.AMOUNT,
) -> LineResult:
    """Module-level shortcut for ``LineCalculator().compute_line``."""
    return LineCalculator().compute_line(
        quantity=quantity,
        unit_price=unit_price,
        rate=rate,
        tax_mode=tax_mode,
        discount=discount,
        discount_type=discount_type,
    )


def to_display_rate(
    unit_price: Decimal | int | str,
    rate: ResolvedRate | None,
    tax_mode: TaxMode,
    quantity: Decimal | int | str = ONE,
) -> Decimal:
    return LineCalculator().to_display_rate(unit_price, rate, tax_mode, quantity)


def from_display_rate(
    display_rate: Decimal | int | str,
    rate: ResolvedRate | None,
    tax_mode: TaxMode,
    quantity: Decimal | int | str = ONE,
) -> Decimal:
    return LineCalculator().from_display_rate(display_rate, rate, tax_mode, quantity)
