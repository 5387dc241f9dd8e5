"""
Pytest fixtures for the tax engine test suite.

Provides:
- Structured logging configured for every test session
- LogContext isolation between tests
- A ``captured_logs`` fixture returning parsed JSON log records
- Shared tax rate reference data
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from tax_engines.rates import CalculationType, TaxRateDefinition, TaxType
from tax_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture tax_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            LineCalculator().compute_line(...)
            logs = captured_logs()
            assert any(r["message"] == "line_computed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("tax_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Reference data
# =============================================================================


@pytest.fixture
def vat_standard() -> TaxRateDefinition:
    return TaxRateDefinition(
        id="vat-std",
        name="VAT 18%",
        calculation_type=CalculationType.PERCENTAGE,
        rate=Decimal("18"),
    )


@pytest.fixture
def hotel_levy() -> TaxRateDefinition:
    return TaxRateDefinition(
        id="levy",
        name="Hotel levy",
        calculation_type=CalculationType.FIXED_AMOUNT,
        fixed_amount=Decimal("50"),
        tax_type=TaxType.OTHER,
        category_code="08",
    )


@pytest.fixture
def known_rates(vat_standard, hotel_levy) -> dict[str, TaxRateDefinition]:
    """Rate table keyed by id."""
    return {vat_standard.id: vat_standard, hotel_levy.id: hotel_levy}
