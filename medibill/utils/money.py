"""
Monetary helpers.

All externally visible amounts are Decimals with exactly two places,
rounded half-up.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """
    Quantize a value to two decimal places using half-up rounding.

    Floats are converted through str() so 0.1 stays 0.1.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Decimal]) -> Decimal:
    """Sum amounts and quantize the result."""
    return to_money(sum(values, Decimal("0")))


def min_optional(a: Decimal | None, b: Decimal | None) -> Decimal | None:
    """Smaller of two optional ceilings, where None means unlimited."""
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)
