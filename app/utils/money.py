# app/utils/money.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, float, int, str]

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")


def d(value: Number) -> Decimal:
    """Coerce to Decimal going through str so floats keep their printed value."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Round half-up to cents (not banker's rounding)."""
    return d(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def round_rate(value: Number) -> Decimal:
    return d(value).quantize(FOURPLACES, rounding=ROUND_HALF_UP)
