# app/tax/fx.py
"""
Static exchange rates (units of currency per 1 USD).

Thresholds are defined in each jurisdiction's own currency, carts arrive in
the merchant's currency. Rates are a startup snapshot, not a live feed.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict

from app.utils.money import Number, d

EXCHANGE_RATES: Dict[str, Decimal] = {
    "USD": Decimal("1.00"),
    "EUR": Decimal("0.85"),
    "GBP": Decimal("0.75"),
    "CNY": Decimal("7.20"),
    "CAD": Decimal("1.37"),
    "AUD": Decimal("1.52"),
    "CHF": Decimal("0.88"),
    "NOK": Decimal("10.75"),
    "SEK": Decimal("10.85"),
    "DKK": Decimal("6.85"),
    "PLN": Decimal("4.05"),
    "CZK": Decimal("22.80"),
    "JPY": Decimal("149.50"),
    "HKD": Decimal("7.82"),
}


def is_supported_currency(code: str) -> bool:
    return (code or "").upper() in EXCHANGE_RATES


def convert(amount: Number, from_currency: str, to_currency: str) -> Decimal:
    """Convert through USD. Unrounded; callers round at the edge."""
    src = (from_currency or "").upper()
    dst = (to_currency or "").upper()
    value = d(amount)
    if src == dst:
        return value
    try:
        return value / EXCHANGE_RATES[src] * EXCHANGE_RATES[dst]
    except KeyError as e:
        raise KeyError(f"no exchange rate for {e.args[0]!r}") from None
