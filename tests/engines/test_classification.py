"""
Tests for fiscal tax category classification.

Covers:
- Category detection from tax type, rate and explicit codes
- Classification flags and rate strings
- Excise rate names
- Grouped tax-details summary with separate excise rows
"""

from decimal import Decimal

from tax_engines.classification import (
    ExciseRule,
    TaxCategory,
    TaxDetailItem,
    build_tax_details,
    classify,
    format_excise_rate_name,
    tax_category_code,
    tax_category_name,
)
from tax_engines.rates import TaxRateDefinition, TaxType


def _rate(**overrides) -> TaxRateDefinition:
    values = {"id": "vat", "name": "VAT", "rate": Decimal("18")}
    values.update(overrides)
    return TaxRateDefinition(**values)


class TestCategoryCode:
    """Detection of the fiscal category."""

    def test_standard(self):
        assert tax_category_code(_rate()) == TaxCategory.STANDARD.value

    def test_zero_rated(self):
        assert tax_category_code(_rate(rate=Decimal("0"))) == "02"

    def test_exempt(self):
        assert tax_category_code(_rate(tax_type=TaxType.EXEMPT, rate=Decimal("0"))) == "03"

    def test_deemed(self):
        assert tax_category_code(_rate(tax_type=TaxType.DEEMED)) == "04"

    def test_excise(self):
        assert tax_category_code(_rate(tax_type=TaxType.EXCISE)) == "05"

    def test_explicit_code_wins(self):
        assert tax_category_code(_rate(category_code="08")) == "08"

    def test_names(self):
        assert tax_category_name("01") == "Standard"
        assert tax_category_name("99") == "Unknown"


class TestClassify:
    """Per-item classification flags."""

    def test_standard_rate_string(self):
        classification = classify(_rate(), has_discount=True)

        assert classification.category_code == "01"
        assert classification.tax_rate == "0.18"
        assert classification.discount_flag == "1"
        assert classification.deemed_flag == "2"
        assert classification.excise_flag == "2"
        assert classification.vat_applicable_flag == "1"

    def test_no_definition_is_exempt(self):
        classification = classify(None)

        assert classification.category_code == "03"
        assert classification.category_name == "Exempt"
        assert classification.tax_rate == "-"

    def test_zero_rated_string(self):
        assert classify(_rate(rate=Decimal("0"))).tax_rate == "0"

    def test_deemed_flag(self):
        classification = classify(_rate(tax_type=TaxType.DEEMED))
        assert classification.deemed_flag == "1"
        assert classification.tax_rate == "-"

    def test_excise_flag_from_duty_code(self):
        assert classify(_rate(), excise_duty_code="LED190100").excise_flag == "1"

    def test_out_of_scope(self):
        classification = classify(_rate(category_code="11"))
        assert classification.vat_applicable_flag == "0"


class TestExciseRateName:
    def test_percentage(self):
        assert format_excise_rate_name(Decimal("0.30"), ExciseRule.PERCENTAGE) == "30%"

    def test_quantity(self):
        name = format_excise_rate_name(Decimal("1400"), ExciseRule.QUANTITY, "102", "UGX")
        assert name == "UGX1400 per litre"

    def test_unknown_unit(self):
        name = format_excise_rate_name(Decimal("60"), ExciseRule.QUANTITY, "999")
        assert name == "UGX60 per unit"


class TestBuildTaxDetails:
    """Grouped tax-details summary."""

    def test_groups_by_category(self):
        vat = _rate()
        details = build_tax_details([
            TaxDetailItem(Decimal("100"), Decimal("18"), Decimal("118"), rate=vat),
            TaxDetailItem(Decimal("200"), Decimal("36"), Decimal("236"), rate=vat),
            TaxDetailItem(Decimal("50"), Decimal("0"), Decimal("50"), rate=None),
        ])

        assert [d.category_code for d in details] == ["01", "03"]
        standard = details[0]
        assert standard.net_amount == Decimal("300.00")
        assert standard.tax_amount == Decimal("54.00")
        assert standard.gross_amount == Decimal("354.00")
        assert standard.tax_rate == "0.18"

    def test_excise_row(self):
        details = build_tax_details([
            TaxDetailItem(
                net_amount=Decimal("1000"),
                tax_amount=Decimal("180"),
                total=Decimal("1180"),
                rate=_rate(),
                excise_duty_code="LED190100",
                excise_tax=Decimal("230.77"),
                excise_rate=Decimal("0.30"),
                excise_rule=ExciseRule.PERCENTAGE,
            ),
        ])

        assert [d.category_code for d in details] == ["01", "05"]
        excise = details[1]
        assert excise.net_amount == Decimal("769.23")
        assert excise.tax_amount == Decimal("230.77")
        assert excise.gross_amount == Decimal("1000.00")
        assert excise.tax_rate == "0.3"
        assert excise.tax_rate_name == "30%"

    def test_excise_rule_defaults_to_percentage(self):
        details = build_tax_details([
            TaxDetailItem(
                net_amount=Decimal("1000"),
                tax_amount=Decimal("180"),
                total=Decimal("1180"),
                rate=_rate(),
                excise_duty_code="LED190100",
                excise_tax=Decimal("230.77"),
                excise_rate=Decimal("0.30"),
            ),
        ])

        excise = details[1]
        assert excise.tax_rate == "0.3"
        assert excise.tax_rate_name == "30%"

    def test_standard_sorted_first(self):
        details = build_tax_details([
            TaxDetailItem(Decimal("10"), Decimal("0"), Decimal("10"), rate=_rate(rate=Decimal("0"))),
            TaxDetailItem(Decimal("10"), Decimal("1.8"), Decimal("11.8"), rate=_rate()),
        ])
        assert [d.category_code for d in details] == ["01", "02"]
