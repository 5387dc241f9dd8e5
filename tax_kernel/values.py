"""
Values -- Decimal coercion and monetary rounding helpers.

Responsibility:
    Provides the single place where raw numeric input becomes ``Decimal``
    and where derived monetary amounts are rounded.  Every engine routes
    amounts through these helpers instead of doing its own conversion.

Architecture position:
    Kernel -- pure functional core, zero I/O.
    Imported by every engine module.  No outward dependencies.

Invariants enforced:
    - Decimal-only arithmetic: floats are rejected at the coercion
      boundary (binary floats cannot represent prices exactly).
    - Monetary rounding is always 2 decimal places, ROUND_HALF_UP.
    - Rounding is applied by callers once per derived value, never per unit.

Failure modes:
    - TypeError when a float (or any other unsupported type) is coerced.
    - ValueError when a string is not a valid decimal literal.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_PLACES = Decimal("0.01")
PRICE_PLACES = Decimal("0.000001")

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

# Tolerance used when comparing monetary identities after rounding.
ROUNDING_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | str, field: str = "value") -> Decimal:
    """
    Coerce an input value to Decimal.

    Preconditions:
        - ``value`` is a Decimal, int, or decimal string.  Floats are refused.

    Postconditions:
        - Returns a finite Decimal.

    Raises:
        TypeError: if ``value`` is a float, bool, or unsupported type.
        ValueError: if ``value`` is a string that is not a decimal literal,
            or the resulting Decimal is NaN/infinite.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise TypeError(f"{field} must be Decimal, int or str, got bool")
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid {field}: {value!r}") from e
    else:
        raise TypeError(
            f"{field} must be Decimal, int or str, got {type(value).__name__}"
        )

    if not result.is_finite():
        raise ValueError(f"Invalid {field}: {value!r}")
    return result


def round_money(amount: Decimal) -> Decimal:
    """Round a monetary amount to 2 decimal places (half-up)."""
    return amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_price(amount: Decimal) -> Decimal:
    """Round a unit price base to 6 decimal places (half-up)."""
    return amount.quantize(PRICE_PLACES, rounding=ROUND_HALF_UP)


def percent_to_fraction(percent: Decimal) -> Decimal:
    """Convert a percentage (18) to a fraction (0.18)."""
    return percent / HUNDRED


def within_tolerance(
    left: Decimal,
    right: Decimal,
    tolerance: Decimal = ROUNDING_TOLERANCE,
) -> bool:
    """True when two amounts differ by no more than ``tolerance``."""
    return abs(left - right) <= tolerance
