"""
tax_engines.credit -- Credit note line proration.

Responsibility:
    Derive credit note lines from the lines of an existing invoice,
    bounded by the invoiced quantity, and compute them through the line
    calculator.  Also covers manual (unlinked) credit lines, the "credit
    entire invoice" shortcut, restock / warehouse assignment and the
    pre-submission checks of a credit note.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on tax_engines.line for all amounts.

Invariants enforced:
    - Linked lines: 0 < credit_qty <= original_qty.
    - Manual lines carry original_qty == 0 and have no upper bound.
    - Unit price, tax rate, tax rate id and tax mode are inherited from the
      invoice verbatim; the tax rate is never re-resolved at credit time.
    - Restock only applies to product-backed lines.
    - Credit lines are immutable; edits return new instances.

Failure modes:
    - NonPositiveCreditQuantityError, CreditQuantityExceededError from
      ``build_credit_line`` / ``update_line``.
    - NegativeAmountError for a negative edited unit price.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from tax_engines.line import DocumentTotals, LineCalculator, LineResult, require_non_negative
from tax_engines.rates import ResolvedRate, TaxMode
from tax_engines.tracer import traced_engine
from tax_kernel.exceptions import (
    CreditQuantityExceededError,
    NegativeAmountError,
    NonPositiveCreditQuantityError,
    ValidationError,
)
from tax_kernel.logging_config import get_logger
from tax_kernel.values import ONE, ZERO, to_decimal

logger = get_logger("engines.credit")


@dataclass(frozen=True)
class InvoiceLine:
    """A line of the invoice being credited, as supplied by the caller."""

    line_id: str
    quantity: Decimal
    unit_price: Decimal  # tax-exclusive
    tax_mode: TaxMode
    rate: ResolvedRate | None = None
    tax_rate_id: str | None = None
    description: str = ""
    product_id: str | None = None
    warehouse_id: str | None = None


@dataclass(frozen=True)
class CreditLineInput:
    """Editable credit note line prior to submission."""

    description: str
    original_qty: Decimal
    credit_qty: Decimal
    unit_price: Decimal
    rate: ResolvedRate | None
    tax_rate_id: str | None
    tax_mode: TaxMode
    restock: bool = False
    warehouse_id: str | None = None
    product_id: str | None = None
    original_line_id: str | None = None

    @property
    def is_linked(self) -> bool:
        """True when the line reverses an invoice line."""
        return self.original_qty > ZERO


_EDITABLE_FIELDS = frozenset({
    "credit_qty", "unit_price", "rate", "tax_rate_id",
    "description", "restock", "warehouse_id",
})


class CreditProrator:
    """
    Build and compute credit note lines.

    Contract:
        Pure functions over caller-supplied invoice lines.
    Guarantees:
        - ``build_credit_line`` never returns a line whose credit quantity
          breaks the bound of its invoice line.
        - ``compute_credit_line`` is ``LineCalculator.compute_line`` with
          the credit quantity in place of the invoiced quantity.
    Non-goals:
        - Does not post ledger entries or move stock.
    """

    def __init__(self, line_calculator: LineCalculator | None = None):
        self._lines = line_calculator or LineCalculator()

    def validate_credit_qty(
        self,
        requested_qty: Decimal | int | str,
        original_qty: Decimal | int | str,
    ) -> ValidationError | None:
        """
        Check a requested credit quantity against the invoiced quantity.

        Returns the validation error instead of raising it, so callers can
        report it against the line.  ``original_qty == 0`` marks a manual
        line with no upper bound.
        """
        requested = to_decimal(requested_qty, "credit_qty")
        original = to_decimal(original_qty, "original_qty")
        if original < ZERO:
            return NegativeAmountError("original_qty", original)
        if requested <= ZERO:
            return NonPositiveCreditQuantityError(requested)
        if original > ZERO and requested > original:
            return CreditQuantityExceededError(requested, original)
        return None

    @traced_engine(
        "credit",
        "1.0",
        fingerprint_fields=("original_line", "requested_qty"),
    )
    def build_credit_line(
        self,
        original_line: InvoiceLine,
        requested_qty: Decimal | int | str,
        *,
        warehouse_id: str | None = None,
    ) -> CreditLineInput:
        """
        Derive a credit line for ``requested_qty`` units of an invoice line.

        Raises:
            NonPositiveCreditQuantityError: requested quantity <= 0.
            CreditQuantityExceededError: requested above the invoiced quantity.
        """
        original_qty = require_non_negative("original_qty", original_line.quantity)
        error = self.validate_credit_qty(requested_qty, original_qty)
        if error is not None:
            logger.warning("credit_qty_rejected", extra={
                "original_line_id": original_line.line_id,
                "requested_qty": str(requested_qty),
                "original_qty": str(original_qty),
                "error_code": error.code,
            })
            raise error

        return CreditLineInput(
            description=original_line.description,
            original_qty=original_qty,
            credit_qty=to_decimal(requested_qty, "credit_qty"),
            unit_price=to_decimal(original_line.unit_price, "unit_price"),
            rate=original_line.rate,
            tax_rate_id=original_line.tax_rate_id,
            tax_mode=TaxMode(original_line.tax_mode),
            restock=original_line.product_id is not None,
            warehouse_id=original_line.warehouse_id or warehouse_id,
            product_id=original_line.product_id,
            original_line_id=original_line.line_id,
        )

    def credit_entire_invoice(
        self,
        lines: Iterable[InvoiceLine],
        *,
        default_warehouse_id: str | None = None,
    ) -> tuple[CreditLineInput, ...]:
        """Credit every invoice line in full."""
        credit_lines = tuple(
            self.build_credit_line(
                line, line.quantity, warehouse_id=default_warehouse_id
            )
            for line in lines
        )
        logger.info("credit_entire_invoice", extra={
            "line_count": len(credit_lines),
        })
        return credit_lines

    def manual_credit_line(
        self,
        tax_mode: TaxMode,
        *,
        description: str = "",
        credit_qty: Decimal | int | str = ONE,
        unit_price: Decimal | int | str = ZERO,
        rate: ResolvedRate | None = None,
        tax_rate_id: str | None = None,
        warehouse_id: str | None = None,
    ) -> CreditLineInput:
        """A credit line not linked to any invoice line."""
        return CreditLineInput(
            description=description,
            original_qty=ZERO,
            credit_qty=to_decimal(credit_qty, "credit_qty"),
            unit_price=require_non_negative("unit_price", unit_price),
            rate=rate,
            tax_rate_id=tax_rate_id,
            tax_mode=TaxMode(tax_mode),
            restock=False,
            warehouse_id=warehouse_id,
        )

    def update_line(self, line: CreditLineInput, **changes: object) -> CreditLineInput:
        """
        Apply user edits to a credit line.

        Only credit quantity, unit price, rate, description, restock and
        warehouse are editable.  The edited quantity is re-validated
        against the original quantity.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Credit line fields are not editable: {sorted(unknown)}")

        if "credit_qty" in changes:
            qty = to_decimal(changes["credit_qty"], "credit_qty")
            error = self.validate_credit_qty(qty, line.original_qty)
            if error is not None:
                raise error
            changes["credit_qty"] = qty
        if "unit_price" in changes:
            changes["unit_price"] = require_non_negative("unit_price", changes["unit_price"])
        if changes.get("restock") and line.product_id is None:
            changes["restock"] = False

        return dataclasses.replace(line, **changes)

    def compute_credit_line(self, line: CreditLineInput) -> LineResult:
        """Amounts of a credit line, using the credit quantity."""
        return self._lines.compute_line(
            quantity=line.credit_qty,
            unit_price=line.unit_price,
            rate=line.rate,
            tax_mode=line.tax_mode,
        )

    def display_rate(self, line: CreditLineInput) -> Decimal:
        """Unit price as shown for the credit line's tax mode."""
        return self._lines.to_display_rate(
            line.unit_price, line.rate, line.tax_mode, line.credit_qty
        )

    def compute_credit_totals(self, lines: Iterable[CreditLineInput]) -> DocumentTotals:
        """Document totals of a credit note."""
        return self._lines.compute_document_totals(
            self.compute_credit_line(line) for line in lines
        )

    def apply_restock(
        self, lines: Sequence[CreditLineInput], restock: bool
    ) -> tuple[CreditLineInput, ...]:
        """Toggle restocking on every product-backed line."""
        return tuple(
            dataclasses.replace(line, restock=restock and line.product_id is not None)
            for line in lines
        )

    def apply_warehouse(
        self, lines: Sequence[CreditLineInput], warehouse_id: str
    ) -> tuple[CreditLineInput, ...]:
        """Send every restocking line to ``warehouse_id``."""
        return tuple(
            dataclasses.replace(line, warehouse_id=warehouse_id) if line.restock else line
            for line in lines
        )

    def validate_credit_note(
        self,
        lines: Sequence[CreditLineInput],
        *,
        warehouses_available: bool = True,
    ) -> list[str]:
        """
        Pre-submission checks, one message per problem.

        Messages are prefixed with the 1-based line number.
        """
        errors: list[str] = []
        if not lines:
            errors.append("At least one line item is required")
        for idx, line in enumerate(lines, start=1):
            if not line.description.strip():
                errors.append(f"Line {idx}: Description is required")
            if line.credit_qty <= ZERO:
                errors.append(f"Line {idx}: Quantity must be greater than 0")
            if line.unit_price <= ZERO:
                errors.append(f"Line {idx}: Unit price must be greater than 0")
            if line.is_linked and line.credit_qty > line.original_qty:
                errors.append(
                    f"Line {idx}: Credit qty ({line.credit_qty}) exceeds "
                    f"original qty ({line.original_qty})"
                )
            if line.restock and not line.warehouse_id and warehouses_available:
                errors.append(f"Line {idx}: Select a warehouse for restocking")

        if errors:
            logger.info("credit_note_validation_failed", extra={
                "error_count": len(errors),
                "line_count": len(lines),
            })
        return errors


def validate_credit_qty(
    requested_qty: Decimal | int | str,
    original_qty: Decimal | int | str,
) -> ValidationError | None:
    return CreditProrator().validate_credit_qty(requested_qty, original_qty)


def build_credit_line(
    original_line: InvoiceLine,
    requested_qty: Decimal | int | str,
) -> CreditLineInput:
    return CreditProrator().build_credit_line(
        original_line=original_line,
        requested_qty=requested_qty,
    )
