"""
Silai POS - Money & Quantity Arithmetic
========================================
Fixed-precision decimals for every amount the billing engine touches.
Money carries 2 fraction digits, quantities 3 (fabric is sold by the
metre). Rounding is always ROUND_HALF_UP.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable


TWO_PLACES = Decimal("0.01")
THREE_PLACES = Decimal("0.001")
ZERO = Decimal("0.00")

# Largest magnitudes the Numeric(12, 2) and Numeric(12, 3) columns hold
MAX_MONEY = Decimal("9999999999.99")
MAX_QUANTITY = Decimal("999999999.999")


def _to_decimal(value) -> Decimal:
    if value is None:
        raise ValueError("amount is required")
    if isinstance(value, float):
        # via str() so 0.1 stays 0.1 instead of its binary expansion
        value = str(value)
    try:
        d = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"not a number: {value!r}")
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return d


def _quantize(value, places: Decimal) -> Decimal:
    try:
        return _to_decimal(value).quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"too many digits: {value!r}")


def to_money(value) -> Decimal:
    """Quantize any numeric input to 2 decimal places (half up)."""
    return _quantize(value, TWO_PLACES)


def to_quantity(value) -> Decimal:
    """Quantize a quantity to 3 decimal places (half up)."""
    return _quantize(value, THREE_PLACES)


def money_sum(values: Iterable) -> Decimal:
    total = ZERO
    for v in values:
        total += to_money(v)
    return total


def line_amount(unit_price, quantity) -> Decimal:
    """unit_price x quantity, rounded once at the end."""
    return to_money(_to_decimal(unit_price) * _to_decimal(quantity))


def percent_of(amount, percent) -> Decimal:
    """Percentage of an amount, e.g. percent_of(800, 18) == Decimal('144.00')."""
    return to_money(_to_decimal(amount) * _to_decimal(percent) / Decimal(100))


def clamp_non_negative(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def format_money(value, symbol: str = "") -> str:
    """Format with thousands separators: 12345.5 -> '12,345.50'."""
    if value is None:
        value = ZERO
    return f"{symbol}{to_money(value):,.2f}"
