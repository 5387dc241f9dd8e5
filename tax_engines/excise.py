"""
tax_engines.excise -- Net / excise / VAT decomposition of gross prices.

Responsibility:
    Decompose a tax-inclusive, excise-inclusive selling price into its net
    base, specific (per-unit) excise duty, and VAT layers, per unit and per
    line, and aggregate the layers over a document for compliance
    reporting.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Runs beside the line calculator on the same raw inputs; it does not
    consume LineResult values.

Invariants enforced:
    - Excise is dutiable before VAT: VAT is charged on (net + excise).
    - ``net_total + excise_total + vat_total == line_total`` exactly.  The
      net total absorbs the rounding residual, and the identity is
      re-checked after every computation.
    - Lines without an excise rate skip the excise layer entirely.

Failure modes:
    - NegativeAmountError for negative price, quantity, VAT or excise.
    - ExciseReconciliationError if the layers ever fail to add back up to
      the line total (a logic defect, never silently corrected).

Usage:
    from tax_engines.excise import ExciseBreakdownCalculator

    line = ExciseBreakdownCalculator().compute_excise(
        gross_per_unit=Decimal("1000"),
        quantity=Decimal("2"),
        vat_percent=Decimal("18"),
        excise_rate_per_unit=Decimal("100"),
    )
    print(line.net_per_unit, line.vat_per_unit)  # 747.46 152.54
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from tax_engines.line import require_non_negative
from tax_engines.tracer import traced_engine
from tax_kernel.exceptions import ExciseReconciliationError
from tax_kernel.logging_config import get_logger
from tax_kernel.values import (
    ONE,
    ROUNDING_TOLERANCE,
    ZERO,
    percent_to_fraction,
    round_money,
    within_tolerance,
)

logger = get_logger("engines.excise")


@dataclass(frozen=True)
class ExciseLine:
    """Per-unit and per-line layers of one gross price."""

    has_excise: bool
    quantity: Decimal
    gross_per_unit: Decimal
    before_vat_per_unit: Decimal
    net_per_unit: Decimal
    excise_per_unit: Decimal
    vat_per_unit: Decimal
    net_total: Decimal
    excise_total: Decimal
    vat_total: Decimal
    line_total: Decimal
    excise_duty_code: str | None = None

    @property
    def component_total(self) -> Decimal:
        return self.net_total + self.excise_total + self.vat_total


@dataclass(frozen=True)
class ExciseSummary:
    """Document-level sums of excise layers."""

    net_total: Decimal
    excise_total: Decimal
    vat_total: Decimal
    grand_total: Decimal
    line_count: int
    excise_line_count: int

    @property
    def has_excise(self) -> bool:
        return self.excise_line_count > 0


class ExciseBreakdownCalculator:
    """
    Decompose excise-inclusive gross prices.

    Contract:
        before_vat = gross / (1 + vat)   (gross when vat is zero)
        net        = before_vat - excise
        vat        = before_vat * vat
    """

    def __init__(self, tolerance: Decimal = ROUNDING_TOLERANCE):
        self._tolerance = tolerance

    @traced_engine(
        "excise",
        "1.0",
        fingerprint_fields=(
            "gross_per_unit", "quantity", "vat_percent", "excise_rate_per_unit",
        ),
    )
    def compute_excise(
        self,
        gross_per_unit: Decimal | int | str,
        quantity: Decimal | int | str,
        vat_percent: Decimal | int | str,
        excise_rate_per_unit: Decimal | int | str | None = None,
        excise_duty_code: str | None = None,
    ) -> ExciseLine:
        """
        Break one line into net, excise and VAT layers.

        Args:
            gross_per_unit: Selling price per unit including VAT and excise.
            quantity: Units on the line.
            vat_percent: VAT percentage (18 for 18%).
            excise_rate_per_unit: Specific excise duty per unit, or None
                when the line carries no excise.
            excise_duty_code: Excise duty code, carried through for reporting.

        Returns:
            ExciseLine with 2 dp per-unit values and reconciled totals.
        """
        gross = require_non_negative("gross_per_unit", gross_per_unit)
        qty = require_non_negative("quantity", quantity)
        vat_rate = percent_to_fraction(require_non_negative("vat_percent", vat_percent))
        has_excise = excise_rate_per_unit is not None
        excise = (
            require_non_negative("excise_rate_per_unit", excise_rate_per_unit)
            if has_excise
            else ZERO
        )

        before_vat = gross / (ONE + vat_rate) if vat_rate > ZERO else gross
        net = before_vat - excise
        vat = before_vat * vat_rate

        if net < ZERO:
            logger.warning("excise_exceeds_pre_vat_price", extra={
                "gross_per_unit": str(gross),
                "before_vat_per_unit": str(round_money(before_vat)),
                "excise_per_unit": str(excise),
                "excise_duty_code": excise_duty_code,
            })

        line_total = round_money(gross * qty)
        excise_total = round_money(excise * qty)
        vat_total = round_money(vat * qty)
        # Residual keeps the layers summing exactly to the line total
        net_total = line_total - excise_total - vat_total

        line = ExciseLine(
            has_excise=has_excise,
            quantity=qty,
            gross_per_unit=gross,
            before_vat_per_unit=round_money(before_vat),
            net_per_unit=round_money(net),
            excise_per_unit=round_money(excise),
            vat_per_unit=round_money(vat),
            net_total=net_total,
            excise_total=excise_total,
            vat_total=vat_total,
            line_total=line_total,
            excise_duty_code=excise_duty_code if has_excise else None,
        )
        self._reconcile(line.line_total, line.component_total)

        logger.debug("excise_computed", extra={
            "has_excise": has_excise,
            "quantity": str(qty),
            "net_total": str(net_total),
            "excise_total": str(excise_total),
            "vat_total": str(vat_total),
            "line_total": str(line_total),
        })
        return line

    def summarize(self, lines: Iterable[ExciseLine]) -> ExciseSummary:
        """Aggregate excise layers over a document."""
        net_total = excise_total = vat_total = grand_total = ZERO
        line_count = excise_line_count = 0
        for line in lines:
            net_total += line.net_total
            excise_total += line.excise_total
            vat_total += line.vat_total
            grand_total += line.line_total
            line_count += 1
            if line.has_excise:
                excise_line_count += 1

        self._reconcile(grand_total, net_total + excise_total + vat_total)

        return ExciseSummary(
            net_total=net_total,
            excise_total=excise_total,
            vat_total=vat_total,
            grand_total=grand_total,
            line_count=line_count,
            excise_line_count=excise_line_count,
        )

    def _reconcile(self, line_total: Decimal, component_total: Decimal) -> None:
        if not within_tolerance(line_total, component_total, self._tolerance):
            logger.error("excise_reconciliation_failed", extra={
                "line_total": str(line_total),
                "component_total": str(component_total),
                "tolerance": str(self._tolerance),
            })
            raise ExciseReconciliationError(line_total, component_total, self._tolerance)


def compute_excise(
    gross_per_unit: Decimal | int | str,
    quantity: Decimal | int | str,
    vat_percent: Decimal | int | str,
    excise_rate_per_unit: Decimal | int | str | None = None,
) -> ExciseLine:
    """Module-level shortcut for ``ExciseBreakdownCalculator().compute_excise``."""
    return ExciseBreakdownCalculator().compute_excise(
        gross_per_unit=gross_per_unit,
        quantity=quantity,
        vat_percent=vat_percent,
        excise_rate_per_unit=excise_rate_per_unit,
    )
