"""
Module: tax_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    tax calculation engines.  This is the canonical import surface for
    the invoice, credit note and tax reporting screens.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import tax_kernel (and sibling engine modules).

Invariants enforced:
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.
    - No ambient state: the document tax mode is always passed in.

Usage:
    from tax_engines import LineCalculator, RateResolver, TaxMode
    from tax_engines import ExciseBreakdownCalculator, CreditProrator
"""

from tax_kernel.logging_config import get_logger

logger = get_logger("engines")

from tax_engines.amounts import (
    SplitTotals,
    TaxSplit,
    recalculate_on_toggle,
    split_amount,
    sum_splits,
)
from tax_engines.classification import (
    ExciseRule,
    TaxCategory,
    TaxClassification,
    TaxDetail,
    TaxDetailItem,
    build_tax_details,
    classify,
    format_excise_rate_name,
    tax_category_code,
    tax_category_name,
)
from tax_engines.credit import (
    CreditLineInput,
    CreditProrator,
    InvoiceLine,
    build_credit_line,
    validate_credit_qty,
)
from tax_engines.document import (
    DocumentCalculator,
    DocumentResult,
    DocumentValidation,
    LineInput,
    LineOutcome,
)
from tax_engines.excise import (
    ExciseBreakdownCalculator,
    ExciseLine,
    ExciseSummary,
    compute_excise,
)
from tax_engines.line import (
    DiscountType,
    DocumentTotals,
    LineCalculator,
    LineResult,
    TaxBreakdownRow,
    compute_line,
    from_display_rate,
    to_display_rate,
)
from tax_engines.rates import (
    CalculationType,
    FixedAmountRate,
    PercentageRate,
    RateResolver,
    ResolvedRate,
    TaxMode,
    TaxRateDefinition,
    TaxType,
    resolve_rate,
)

__all__ = [
    # Rates
    "CalculationType",
    "FixedAmountRate",
    "PercentageRate",
    "RateResolver",
    "ResolvedRate",
    "TaxMode",
    "TaxRateDefinition",
    "TaxType",
    "resolve_rate",
    # Line
    "DiscountType",
    "DocumentTotals",
    "LineCalculator",
    "LineResult",
    "TaxBreakdownRow",
    "compute_line",
    "from_display_rate",
    "to_display_rate",
    # Excise
    "ExciseBreakdownCalculator",
    "ExciseLine",
    "ExciseSummary",
    "compute_excise",
    # Credit
    "CreditLineInput",
    "CreditProrator",
    "InvoiceLine",
    "build_credit_line",
    "validate_credit_qty",
    # Document
    "DocumentCalculator",
    "DocumentResult",
    "DocumentValidation",
    "LineInput",
    "LineOutcome",
    # Amounts
    "SplitTotals",
    "TaxSplit",
    "recalculate_on_toggle",
    "split_amount",
    "sum_splits",
    # Classification
    "ExciseRule",
    "TaxCategory",
    "TaxClassification",
    "TaxDetail",
    "TaxDetailItem",
    "build_tax_details",
    "classify",
    "format_excise_rate_name",
    "tax_category_code",
    "tax_category_name",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 8,
    "modules": [
        "tracer", "rates", "line", "excise", "credit",
        "amounts", "classification", "document",
    ],
})
