"""Money helpers.

Amounts are kept as ``Decimal`` quantized to cents and stored as text so
SQLite never rounds them through a float.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENTS = Decimal('0.01')

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Convert a number or numeric string to a cent-quantized Decimal."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def money_str(value: Number) -> str:
    """Format an amount for storage and JSON (``'10.00'``)."""
    return str(to_money(value))
