"""
Fixed-precision money helpers.

Amounts are integer minor units (cents). Intermediate products such as
``subtotal * tax_rate`` are exact Decimals and are rounded exactly once,
half-up, when they become a stored field.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[int, str, Decimal]

CENTS = Decimal(100)


def _as_decimal(value: Number) -> Decimal:
    if isinstance(value, float):
        raise TypeError("Money values must not be floats")
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {value!r}")


def round_half_up(value: Number) -> int:
    """Round to the nearest minor unit, halves away from zero."""
    return int(_as_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent: Number) -> int:
    return round_half_up(Decimal(amount) * _as_decimal(percent) / CENTS)


def apply_rate(amount: int, rate: Number) -> int:
    return round_half_up(Decimal(amount) * _as_decimal(rate))


def to_minor_units(amount: Number) -> int:
    """'10.00' -> 1000"""
    cents = _as_decimal(amount) * CENTS
    if cents < 0:
        raise ValueError("Amounts must be non-negative")
    return round_half_up(cents)


def format_minor_units(cents: int, symbol: str = "$") -> str:
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{symbol}{whole:,}.{frac:02d}"
