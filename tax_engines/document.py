"""
tax_engines.document -- Whole-document calculation pipeline.

Responsibility:
    Run every line of an invoice (or estimate, receipt) through one
    deterministic pipeline:

        resolve rate -> tax-exclusive unit price -> LineResult -> display rate

    plus the excise breakdown over the same raw inputs, and aggregate the
    results into document totals.  Also provides the pre-submission
    validation pass that reports errors and warnings per line.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Orchestrates tax_engines.rates, tax_engines.line and tax_engines.excise.

Invariants enforced:
    - The tax mode is an argument of every call; nothing is remembered
      between calls.
    - ``unit_price`` is the source of truth; the display rate is derived
      from it and is only ever read back through ``line_from_display_rate``.
    - A validation error on one line is recorded on that line's outcome
      and the line is left out of the totals; the other lines still
      compute.
    - Unknown tax rate ids compute as "no tax".

Failure modes:
    - ExciseReconciliationError propagates (logic defect, never recovered).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from tax_engines.excise import ExciseBreakdownCalculator, ExciseLine, ExciseSummary
from tax_engines.line import (
    DiscountType,
    DocumentTotals,
    LineCalculator,
    LineResult,
    TaxBreakdownRow,
)
from tax_engines.rates import (
    FixedAmountRate,
    PercentageRate,
    RateResolver,
    ResolvedRate,
    TaxMode,
    TaxRateDefinition,
)
from tax_engines.tracer import traced_engine
from tax_kernel.exceptions import ValidationError
from tax_kernel.logging_config import LogContext, get_logger
from tax_kernel.values import HUNDRED, ZERO, to_decimal

logger = get_logger("engines.document")

KnownRates = Mapping[str, TaxRateDefinition] | Iterable[TaxRateDefinition]


@dataclass(frozen=True)
class LineInput:
    """
    One editable document line.

    ``unit_price`` is always the tax-exclusive price.
    """

    quantity: Decimal
    unit_price: Decimal
    discount: Decimal = ZERO
    discount_type: DiscountType = DiscountType.AMOUNT
    tax_rate_id: str | None = None
    description: str = ""
    line_id: str | None = None

    # Excise duty (optional)
    excise_duty_code: str | None = None
    excise_rate: Decimal | None = None  # currency per unit
    excise_unit: str | None = None

    available_stock: Decimal | None = None


@dataclass(frozen=True)
class LineOutcome:
    """Pipeline output for one line: either a result or a validation error."""

    line: LineInput
    rate: ResolvedRate | None
    result: LineResult | None = None
    display_rate: Decimal | None = None
    excise: ExciseLine | None = None
    error: ValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DocumentResult:
    tax_mode: TaxMode
    outcomes: tuple[LineOutcome, ...]
    totals: DocumentTotals
    excise: ExciseSummary

    @property
    def has_errors(self) -> bool:
        return any(not o.ok for o in self.outcomes)

    @property
    def errors(self) -> tuple[tuple[int, ValidationError], ...]:
        """(0-based line index, error) for every failed line."""
        return tuple(
            (idx, o.error) for idx, o in enumerate(self.outcomes) if o.error is not None
        )

    @property
    def tax_breakdown(self) -> tuple[TaxBreakdownRow, ...]:
        """Computed lines grouped by resolved rate."""
        return LineCalculator().tax_breakdown(
            (o.rate, o.result) for o in self.outcomes if o.result is not None
        )


@dataclass(frozen=True)
class DocumentValidation:
    valid: bool
    errors: tuple[str, ...]
    warnings: tuple[str, ...]


class DocumentCalculator:
    """
    Compute every line of a document with per-line error isolation.

    Contract:
        ``compute`` never raises a ValidationError; it reports them on the
        affected LineOutcome.  All reference data is passed in.
    """

    def __init__(
        self,
        resolver: RateResolver | None = None,
        line_calculator: LineCalculator | None = None,
        excise_calculator: ExciseBreakdownCalculator | None = None,
    ):
        self._resolver = resolver or RateResolver()
        self._lines = line_calculator or LineCalculator()
        self._excise = excise_calculator or ExciseBreakdownCalculator()

    @traced_engine("document", "1.0", fingerprint_fields=("lines", "tax_mode"))
    def compute(
        self,
        lines: Sequence[LineInput],
        tax_mode: TaxMode,
        known_rates: KnownRates,
        document_id: str | None = None,
    ) -> DocumentResult:
        """Compute all lines, document totals and the excise summary."""
        tax_mode = TaxMode(tax_mode)
        if not isinstance(known_rates, Mapping):
            known_rates = {r.id: r for r in known_rates}

        with LogContext.bind(document_id=document_id):
            outcomes = tuple(
                self._compute_one(line, tax_mode, known_rates) for line in lines
            )
            totals = self._lines.compute_document_totals(
                o.result for o in outcomes if o.result is not None
            )
            excise = self._excise.summarize(
                o.excise for o in outcomes if o.excise is not None
            )

            failed = sum(1 for o in outcomes if not o.ok)
            logger.info("document_computed", extra={
                "tax_mode": tax_mode.value,
                "line_count": len(outcomes),
                "failed_line_count": failed,
                "subtotal": str(totals.subtotal),
                "tax_amount": str(totals.tax_amount),
                "total": str(totals.total),
            })

        return DocumentResult(
            tax_mode=tax_mode,
            outcomes=outcomes,
            totals=totals,
            excise=excise,
        )

    def line_from_display_rate(
        self,
        display_rate: Decimal | int | str,
        quantity: Decimal | int | str,
        tax_rate_id: str | None,
        tax_mode: TaxMode,
        known_rates: KnownRates,
        **fields: object,
    ) -> LineInput:
        """
        Build a LineInput from a price typed by the user.

        The entered price is converted to the tax-exclusive unit price
        once, here; the line stores only that price.
        """
        rate = self._resolver.resolve(tax_rate_id, known_rates)
        unit_price = self._lines.from_display_rate(display_rate, rate, tax_mode, quantity)
        return LineInput(
            quantity=to_decimal(quantity, "quantity"),
            unit_price=unit_price,
            tax_rate_id=tax_rate_id,
            **fields,
        )

    def validate(
        self,
        lines: Sequence[LineInput],
        tax_mode: TaxMode,
        known_rates: KnownRates,
    ) -> DocumentValidation:
        """
        Pre-submission checks.

        Errors block submission; warnings do not.  Messages are prefixed
        with the 1-based line number.
        """
        errors: list[str] = []
        warnings: list[str] = []
        if not lines:
            errors.append("At least one line item is required")

        for idx, line in enumerate(lines, start=1):
            prefix = f"Line {idx}"
            quantity = to_decimal(line.quantity, "quantity")
            price = to_decimal(line.unit_price, "unit_price")
            discount = to_decimal(line.discount, "discount")

            if quantity <= ZERO:
                errors.append(f"{prefix}: Quantity must be greater than zero")
            if price < ZERO:
                errors.append(f"{prefix}: Price cannot be negative")
            elif price == ZERO:
                warnings.append(f"{prefix}: Price is zero")

            if line.available_stock is not None and quantity > line.available_stock:
                warnings.append(
                    f"{prefix}: Quantity ({quantity}) exceeds available stock "
                    f"({line.available_stock})"
                )

            if discount < ZERO:
                errors.append(f"{prefix}: Discount cannot be negative")
            elif line.discount_type == DiscountType.PERCENTAGE:
                if discount > HUNDRED:
                    errors.append(f"{prefix}: Percentage discount cannot exceed 100%")
            elif price >= ZERO and discount > quantity * price:
                warnings.append(
                    f"{prefix}: Discount exceeds line amount and will be capped"
                )

            if line.tax_rate_id and self._resolver.resolve(line.tax_rate_id, known_rates) is None:
                warnings.append(
                    f"{prefix}: Tax rate {line.tax_rate_id} not found; no tax applied"
                )

        logger.debug("document_validated", extra={
            "tax_mode": TaxMode(tax_mode).value,
            "line_count": len(lines),
            "error_count": len(errors),
            "warning_count": len(warnings),
        })
        return DocumentValidation(
            valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    def _compute_one(
        self,
        line: LineInput,
        tax_mode: TaxMode,
        known_rates: Mapping[str, TaxRateDefinition],
    ) -> LineOutcome:
        rate = self._resolver.resolve(line.tax_rate_id, known_rates)
        with LogContext.bind(line_id=line.line_id):
            try:
                result = self._lines.compute_line(
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    rate=rate,
                    tax_mode=tax_mode,
                    discount=line.discount,
                    discount_type=line.discount_type,
                )
                display_rate = self._lines.to_display_rate(
                    line.unit_price, rate, tax_mode, line.quantity
                )
                excise = self._excise_view(line, rate)
            except ValidationError as e:
                logger.info("line_rejected", extra={
                    "error_code": e.code,
                    "field": e.field,
                    "reason": e.reason,
                })
                return LineOutcome(line=line, rate=rate, error=e)

        return LineOutcome(
            line=line,
            rate=rate,
            result=result,
            display_rate=display_rate,
            excise=excise,
        )

    def _excise_view(self, line: LineInput, rate: ResolvedRate | None) -> ExciseLine:
        """
        Excise breakdown of the gross (tax-inclusive) selling price.

        A fixed-amount tax carries no VAT percentage; its per-unit share
        stays in the gross and the VAT layer is zero.
        """
        match rate:
            case PercentageRate():
                vat_percent = rate.percent
            case FixedAmountRate() | None:
                vat_percent = ZERO
            case _:
                raise TypeError(f"Unsupported rate: {rate!r}")

        gross = self._lines.to_display_rate(
            line.unit_price, rate, TaxMode.INCLUSIVE, line.quantity
        )
        return self._excise.compute_excise(
            gross_per_unit=gross,
            quantity=line.quantity,
            vat_percent=vat_percent,
            excise_rate_per_unit=line.excise_rate,
            excise_duty_code=line.excise_duty_code,
        )
