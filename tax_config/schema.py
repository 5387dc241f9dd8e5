"""
Rate catalog schema.

Reference data for the tax engines: the tax rates and excise duty codes
a tenant can pick from.  YAML catalogs are parsed into these frozen types
by the loader; the engines only ever see the parsed definitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from tax_engines.classification import ExciseRule, format_excise_rate_name
from tax_engines.rates import TaxRateDefinition


@dataclass(frozen=True)
class ExciseDutyDefinition:
    """
    One excise duty code.

    For PERCENTAGE duties ``rate`` is a fraction (0.30); for QUANTITY
    duties it is currency per ``unit``.
    """

    code: str
    description: str
    rule: ExciseRule
    rate: Decimal
    unit: str | None = None
    currency: str | None = None
    parent_code: str | None = None
    effective_from: date | None = None

    @property
    def is_per_unit(self) -> bool:
        return self.rule == ExciseRule.QUANTITY

    @property
    def rate_name(self) -> str:
        return format_excise_rate_name(self.rate, self.rule, self.unit, self.currency)


@dataclass(frozen=True)
class RateCatalog:
    """A versioned set of tax rates and excise duties."""

    name: str
    version: int
    currency: str
    rates: tuple[TaxRateDefinition, ...] = ()
    excise_duties: tuple[ExciseDutyDefinition, ...] = ()
    checksum: str = ""

    def rate_map(self) -> dict[str, TaxRateDefinition]:
        """Rates keyed by id, the shape RateResolver prefers."""
        return {r.id: r for r in self.rates}

    def active_rates(self) -> tuple[TaxRateDefinition, ...]:
        return tuple(r for r in self.rates if r.is_active)

    def get_rate(self, rate_id: str) -> TaxRateDefinition | None:
        return self.rate_map().get(rate_id)

    def excise_duty(self, code: str) -> ExciseDutyDefinition | None:
        for duty in self.excise_duties:
            if duty.code == code:
                return duty
        return None
