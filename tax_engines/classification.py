"""
tax_engines.classification -- Fiscal tax category classification.

Responsibility:
    Map tax rate definitions onto fiscal tax-category codes, derive the
    per-item classification flags a fiscal export needs, and build the
    grouped tax-details summary (one row per category, with excise duty
    reported as its own category).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes amounts produced by the line and excise engines; it does not
    talk to any fiscal authority.

Invariants enforced:
    - An explicit ``category_code`` on a rate always wins over detection.
    - A line without a tax rate is classified as Exempt.
    - Tax-details rows are ordered Standard first, then by category code.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from tax_engines.rates import TaxRateDefinition, TaxType
from tax_kernel.logging_config import get_logger
from tax_kernel.values import HUNDRED, ZERO, round_money

logger = get_logger("engines.classification")


class TaxCategory(str, Enum):
    """Fiscal tax category codes."""

    STANDARD = "01"
    ZERO_RATED = "02"
    EXEMPT = "03"
    DEEMED = "04"
    EXCISE_DUTY = "05"
    OTT = "06"
    STAMP_DUTY = "07"
    HOTEL_SERVICE = "08"
    UCC_LEVY = "09"
    OTHERS = "10"
    OUT_OF_SCOPE = "11"


CATEGORY_NAMES: dict[str, str] = {
    "01": "Standard",
    "02": "Zero",
    "03": "Exempt",
    "04": "Deemed",
    "05": "Excise Duty",
    "06": "Over the Top Service (OTT)",
    "07": "Stamp Duty",
    "08": "Local Hotel Service Tax",
    "09": "UCC Levy",
    "10": "Others",
    "11": "VAT Out of Scope",
}


class ExciseRule(str, Enum):
    """How an excise duty is levied."""

    PERCENTAGE = "1"  # rate is a fraction of the value
    QUANTITY = "2"  # rate is currency per unit


EXCISE_UNIT_NAMES: dict[str, str] = {
    "101": "per stick",
    "102": "per litre",
    "103": "per kg",
    "104": "per user per day",
    "105": "per minute",
    "106": "per 1,000 sticks",
    "107": "per 50kgs",
    "109": "per 1 g",
}

# Flags use the fiscal convention "1" = yes, "2" = no
_YES = "1"
_NO = "2"


@dataclass(frozen=True)
class TaxClassification:
    category_code: str
    category_name: str
    discount_flag: str
    deemed_flag: str
    excise_flag: str
    vat_applicable_flag: str
    tax_rate: str  # "0.18", "0" for zero-rated, "-" for exempt/deemed


@dataclass(frozen=True)
class TaxDetailItem:
    """Per-line amounts fed into the tax-details summary."""

    net_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    rate: TaxRateDefinition | None = None
    excise_duty_code: str | None = None
    excise_tax: Decimal = ZERO
    excise_rate: Decimal | None = None
    excise_rule: ExciseRule = ExciseRule.PERCENTAGE
    excise_unit: str | None = None
    excise_currency: str | None = None


@dataclass(frozen=True)
class TaxDetail:
    """One row of the tax-details summary."""

    category_code: str
    net_amount: Decimal
    tax_rate: str
    tax_amount: Decimal
    gross_amount: Decimal
    tax_rate_name: str | None = None


def _plain(value: Decimal) -> str:
    """Decimal without exponent or trailing zeros ("0.18", "30")."""
    return format(value.normalize(), "f") if value else "0"


def tax_category_code(definition: TaxRateDefinition) -> str:
    """Detect the fiscal category of a tax rate."""
    if definition.category_code:
        return definition.category_code

    match definition.tax_type:
        case TaxType.VAT | TaxType.GST | TaxType.SALES_TAX:
            if definition.rate == ZERO:
                return TaxCategory.ZERO_RATED.value
            return TaxCategory.STANDARD.value
        case TaxType.DEEMED:
            return TaxCategory.DEEMED.value
        case TaxType.EXCISE:
            return TaxCategory.EXCISE_DUTY.value
        case TaxType.EXEMPT:
            return TaxCategory.EXEMPT.value
        case _:
            return TaxCategory.STANDARD.value


def tax_category_name(code: str) -> str:
    return CATEGORY_NAMES.get(code, "Unknown")


def classify(
    definition: TaxRateDefinition | None,
    has_discount: bool = False,
    excise_duty_code: str | None = None,
) -> TaxClassification:
    """
    Classification flags and rate string for one item.

    A missing definition is reported as Exempt with VAT applicable.
    """
    discount_flag = _YES if has_discount else _NO
    if definition is None:
        return TaxClassification(
            category_code=TaxCategory.EXEMPT.value,
            category_name=tax_category_name(TaxCategory.EXEMPT.value),
            discount_flag=discount_flag,
            deemed_flag=_NO,
            excise_flag=_NO,
            vat_applicable_flag="1",
            tax_rate="-",
        )

    code = tax_category_code(definition)
    has_excise = bool(excise_duty_code) or definition.tax_type == TaxType.EXCISE
    is_deemed = definition.tax_type == TaxType.DEEMED or code == TaxCategory.DEEMED.value
    is_exempt = code == TaxCategory.EXEMPT.value

    if is_exempt or is_deemed:
        rate = "-"
    elif definition.rate == ZERO:
        rate = "0"
    else:
        rate = _plain(definition.rate / HUNDRED)

    return TaxClassification(
        category_code=code,
        category_name=tax_category_name(code),
        discount_flag=discount_flag,
        deemed_flag=_YES if is_deemed else _NO,
        excise_flag=_YES if has_excise else _NO,
        vat_applicable_flag="0" if code == TaxCategory.OUT_OF_SCOPE.value else "1",
        tax_rate=rate,
    )


def format_excise_rate_name(
    excise_rate: Decimal,
    rule: ExciseRule,
    unit: str | None = None,
    currency: str | None = None,
) -> str:
    """
    Display name of an excise rate.

    PERCENTAGE rates are fractions (0.30 -> "30%"); QUANTITY rates are
    currency per unit ("UGX1400 per litre").
    """
    if ExciseRule(rule) == ExciseRule.PERCENTAGE:
        return f"{_plain(excise_rate * HUNDRED)}%"
    unit_name = EXCISE_UNIT_NAMES.get(unit or "", "per unit")
    return f"{currency or 'UGX'}{_plain(excise_rate)} {unit_name}"


def build_tax_details(items: Iterable[TaxDetailItem]) -> tuple[TaxDetail, ...]:
    """
    Group item amounts by tax category.

    Items carrying excise tax add a separate Excise Duty row whose net is
    the item net before excise.
    """
    rows: dict[str, dict] = {}
    item_count = 0

    for item in items:
        item_count += 1
        classification = classify(item.rate, False, item.excise_duty_code)
        row = rows.setdefault(classification.category_code, {
            "tax_rate": classification.tax_rate,
            "tax_rate_name": None,
            "net": ZERO,
            "tax": ZERO,
            "gross": ZERO,
        })
        row["net"] += item.net_amount
        row["tax"] += item.tax_amount
        row["gross"] += item.total

        if item.excise_tax > ZERO:
            base_net = item.net_amount - item.excise_tax
            excise_row = rows.get(TaxCategory.EXCISE_DUTY.value)
            if excise_row is None:
                if item.excise_rate is not None:
                    rate_name = format_excise_rate_name(
                        item.excise_rate, item.excise_rule,
                        item.excise_unit, item.excise_currency,
                    )
                else:
                    rate_name = "Excise Duty"
                if item.excise_rule == ExciseRule.PERCENTAGE and item.excise_rate:
                    excise_rate_str = _plain(item.excise_rate)
                else:
                    excise_rate_str = "0"
                excise_row = rows[TaxCategory.EXCISE_DUTY.value] = {
                    "tax_rate": excise_rate_str,
                    "tax_rate_name": rate_name,
                    "net": ZERO,
                    "tax": ZERO,
                    "gross": ZERO,
                }
            excise_row["net"] += base_net
            excise_row["tax"] += item.excise_tax
            excise_row["gross"] += base_net + item.excise_tax

    details = [
        TaxDetail(
            category_code=code,
            net_amount=round_money(row["net"]),
            tax_rate=row["tax_rate"],
            tax_amount=round_money(row["tax"]),
            gross_amount=round_money(row["gross"]),
            tax_rate_name=row["tax_rate_name"],
        )
        for code, row in rows.items()
    ]
    details.sort(key=lambda d: (d.category_code != TaxCategory.STANDARD.value, d.category_code))

    logger.debug("tax_details_built", extra={
        "item_count": item_count,
        "categories": [d.category_code for d in details],
    })
    return tuple(details)
