"""
Typed Exception Hierarchy for the tax engines.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from TaxEngineError:

    TaxEngineError (base)
    |
    +-- ValidationError
    |   +-- NegativeAmountError
    |   +-- DiscountPercentExceededError
    |   +-- NonPositiveCreditQuantityError
    |   +-- CreditQuantityExceededError
    |   +-- DisplayPriceBelowFixedTaxError
    |
    +-- ArithmeticInvariantViolation
        +-- ExciseReconciliationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                          | When Raised
------------|-------------------------------|-----------------------------------------
Validation  | VALIDATION_ERROR              | Input outside the calculation domain
            | NEGATIVE_AMOUNT               | Negative quantity, price or discount
            | DISCOUNT_PERCENT_EXCEEDED     | Percentage discount above 100%
            | CREDIT_QTY_NOT_POSITIVE       | Credit quantity zero or negative
            | CREDIT_QTY_EXCEEDS_ORIGINAL   | Credit quantity above invoiced quantity
            | DISPLAY_PRICE_BELOW_FIXED_TAX | Inclusive price smaller than fixed tax share
------------|-------------------------------|-----------------------------------------
Invariant   | ARITHMETIC_INVARIANT_VIOLATION| Derived totals disagree (logic defect)
            | EXCISE_RECONCILIATION_FAILED  | net + excise + VAT != line total

===============================================================================
HANDLING PATTERNS
===============================================================================

Validation errors are recovered per line: the document calculator records
the error against the offending line and keeps computing the others.

    try:
        result = calculator.compute_line(...)
    except DiscountPercentExceededError as e:
        show_line_error(line_id, e.code, e.reason)

Invariant violations indicate a defect in the engine and are never
converted into a (wrong) total.

Unknown tax rate ids are NOT errors: they resolve to "no tax".
"""

from __future__ import annotations

from decimal import Decimal


class TaxEngineError(Exception):
    """
    Base exception for all tax engine errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TAX_ENGINE_ERROR"


# Validation exceptions


class ValidationError(TaxEngineError):
    """Input is outside the domain of the calculation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(reason)


class NegativeAmountError(ValidationError):
    """Quantity, price, or discount below zero."""

    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, field: str, value: Decimal):
        super().__init__(field, value, f"{field} cannot be negative: {value}")


class DiscountPercentExceededError(ValidationError):
    """Percentage discount above 100%."""

    code: str = "DISCOUNT_PERCENT_EXCEEDED"

    def __init__(self, value: Decimal):
        super().__init__(
            "discount", value, f"Percentage discount cannot exceed 100%: {value}"
        )


class NonPositiveCreditQuantityError(ValidationError):
    """Credit quantity must be greater than zero."""

    code: str = "CREDIT_QTY_NOT_POSITIVE"

    def __init__(self, requested_qty: Decimal):
        self.requested_qty = requested_qty
        super().__init__(
            "credit_qty",
            requested_qty,
            f"Credit qty must be greater than 0: {requested_qty}",
        )


class CreditQuantityExceededError(ValidationError):
    """Credit quantity larger than the quantity on the original invoice line."""

    code: str = "CREDIT_QTY_EXCEEDS_ORIGINAL"

    def __init__(self, requested_qty: Decimal, original_qty: Decimal):
        self.requested_qty = requested_qty
        self.original_qty = original_qty
        super().__init__(
            "credit_qty",
            requested_qty,
            f"Credit qty ({requested_qty}) exceeds original qty ({original_qty})",
        )


class DisplayPriceBelowFixedTaxError(ValidationError):
    """
    Tax-inclusive price is smaller than the fixed tax spread over the quantity.

    Extracting the base price would produce a negative unit price.
    """

    code: str = "DISPLAY_PRICE_BELOW_FIXED_TAX"

    def __init__(self, display_rate: Decimal, fixed_per_unit: Decimal):
        self.display_rate = display_rate
        self.fixed_per_unit = fixed_per_unit
        super().__init__(
            "display_rate",
            display_rate,
            f"Display price {display_rate} is below the fixed tax per unit "
            f"{fixed_per_unit}",
        )


# Arithmetic invariant exceptions


class ArithmeticInvariantViolation(TaxEngineError):
    """Derived amounts disagree beyond rounding tolerance."""

    code: str = "ARITHMETIC_INVARIANT_VIOLATION"


class ExciseReconciliationError(ArithmeticInvariantViolation):
    """Excise decomposition totals do not add back up to the gross line total."""

    code: str = "EXCISE_RECONCILIATION_FAILED"

    def __init__(
        self,
        line_total: Decimal,
        component_total: Decimal,
        tolerance: Decimal,
    ):
        self.line_total = line_total
        self.component_total = component_total
        self.tolerance = tolerance
        super().__init__(
            f"Excise breakdown does not reconcile: components {component_total} "
            f"vs line total {line_total} (tolerance {tolerance})"
        )
