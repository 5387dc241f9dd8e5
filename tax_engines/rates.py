"""
tax_engines.rates -- Tax rate reference data and rate resolution.

Responsibility:
    Defines the immutable tax rate definition (reference data supplied by
    the caller), the document-level tax mode, and the ``ResolvedRate``
    sum type consumed by every calculation.  ``RateResolver`` turns an
    optional tax rate id into a ``ResolvedRate``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Leaf component: depends
    only on tax_kernel.

Invariants enforced:
    - Exactly one of ``rate`` / ``fixed_amount`` is active, selected by
      ``calculation_type``.
    - ``ResolvedRate`` is closed: ``PercentageRate | FixedAmountRate``.
      Consumers match exhaustively and raise TypeError on anything else.
    - Unknown or missing tax rate ids resolve to ``None`` ("no tax"),
      never to an exception.

Failure modes:
    - ValueError on construction of a definition with a negative active
      value, or FIXED_AMOUNT without a fixed amount.

Usage:
    from tax_engines.rates import RateResolver, TaxRateDefinition, CalculationType

    vat = TaxRateDefinition(
        id="vat-std",
        name="VAT 18%",
        calculation_type=CalculationType.PERCENTAGE,
        rate=Decimal("18"),
    )
    rate = RateResolver().resolve("vat-std", {"vat-std": vat})
    # PercentageRate(percent=Decimal('18'))
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from tax_kernel.logging_config import get_logger
from tax_kernel.values import ZERO, percent_to_fraction, to_decimal

logger = get_logger("engines.rates")


class CalculationType(str, Enum):
    """How a tax rate computes its tax."""

    PERCENTAGE = "PERCENTAGE"  # percent of the net line amount
    FIXED_AMOUNT = "FIXED_AMOUNT"  # flat currency amount per line


class TaxMode(str, Enum):
    """Whether entered/displayed unit prices already contain tax."""

    EXCLUSIVE = "EXCLUSIVE"
    INCLUSIVE = "INCLUSIVE"


class TaxType(str, Enum):
    """Kind of tax, used for fiscal category classification."""

    VAT = "VAT"
    GST = "GST"
    SALES_TAX = "SALES_TAX"
    DEEMED = "DEEMED"
    EXCISE = "EXCISE"
    EXEMPT = "EXEMPT"
    OTHER = "OTHER"


@dataclass(frozen=True)
class PercentageRate:
    """Resolved percentage tax (e.g. percent=18 for 18%)."""

    percent: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "percent", to_decimal(self.percent, "percent"))
        if self.percent < ZERO:
            raise ValueError(f"Tax rate cannot be negative: {self.percent}")

    @property
    def fraction(self) -> Decimal:
        return percent_to_fraction(self.percent)


@dataclass(frozen=True)
class FixedAmountRate:
    """Resolved flat tax charged once per line."""

    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))
        if self.amount < ZERO:
            raise ValueError(f"Fixed tax amount cannot be negative: {self.amount}")


ResolvedRate = PercentageRate | FixedAmountRate


@dataclass(frozen=True)
class TaxRateDefinition:
    """
    Tax rate definition.

    Immutable reference data. ``rate`` is a percentage (18 for 18%) and is
    only meaningful for PERCENTAGE; ``fixed_amount`` only for FIXED_AMOUNT.
    """

    id: str
    name: str
    calculation_type: CalculationType = CalculationType.PERCENTAGE
    rate: Decimal = ZERO
    fixed_amount: Decimal | None = None
    is_inclusive_default: bool = False

    # Classification (fiscal reporting)
    tax_type: TaxType = TaxType.VAT
    category_code: str | None = None

    is_active: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "calculation_type", CalculationType(self.calculation_type))
        object.__setattr__(self, "tax_type", TaxType(self.tax_type))
        object.__setattr__(self, "rate", to_decimal(self.rate, "rate"))
        if self.fixed_amount is not None:
            object.__setattr__(
                self, "fixed_amount", to_decimal(self.fixed_amount, "fixed_amount")
            )

        if self.calculation_type == CalculationType.PERCENTAGE:
            if self.rate < ZERO:
                raise ValueError(f"Tax rate cannot be negative: {self.id}")
        else:
            if self.fixed_amount is None:
                raise ValueError(f"FIXED_AMOUNT tax rate requires fixed_amount: {self.id}")
            if self.fixed_amount < ZERO:
                raise ValueError(f"Fixed tax amount cannot be negative: {self.id}")

    def to_resolved(self) -> ResolvedRate:
        """Tagged form of this definition."""
        if self.calculation_type == CalculationType.FIXED_AMOUNT:
            return FixedAmountRate(amount=self.fixed_amount)
        return PercentageRate(percent=self.rate)

    @property
    def default_mode(self) -> TaxMode:
        return TaxMode.INCLUSIVE if self.is_inclusive_default else TaxMode.EXCLUSIVE


class RateResolver:
    """
    Resolve a tax rate id against caller-supplied reference data.

    Pure lookup: no side effects, no caching, no global rate table.
    """

    def resolve(
        self,
        tax_rate_id: str | None,
        known_rates: Mapping[str, TaxRateDefinition] | Iterable[TaxRateDefinition],
    ) -> ResolvedRate | None:
        """
        Look up the rate for ``tax_rate_id``.

        Returns:
            PercentageRate or FixedAmountRate, or None when the id is
            absent or unknown (callers treat None as "no tax").
        """
        if not tax_rate_id:
            return None

        definition = self.find(tax_rate_id, known_rates)
        if definition is None:
            logger.debug("tax_rate_not_found", extra={"tax_rate_id": tax_rate_id})
            return None
        return definition.to_resolved()

    def find(
        self,
        tax_rate_id: str,
        known_rates: Mapping[str, TaxRateDefinition] | Iterable[TaxRateDefinition],
    ) -> TaxRateDefinition | None:
        """Return the definition for ``tax_rate_id``, or None."""
        if isinstance(known_rates, Mapping):
            return known_rates.get(tax_rate_id)
        for definition in known_rates:
            if definition.id == tax_rate_id:
                return definition
        return None


def resolve_rate(
    tax_rate_id: str | None,
    known_rates: Mapping[str, TaxRateDefinition] | Iterable[TaxRateDefinition],
) -> ResolvedRate | None:
    """Convenience wrapper around ``RateResolver().resolve``."""
    return RateResolver().resolve(tax_rate_id, known_rates)
