# app/tax/jurisdictions.py
"""
Per-destination tax records. One immutable record per ISO country code;
thresholds are expressed in the record's own currency.

The seed table can be overridden at startup from a JSON file
(settings.tax_table_path), either a list of records or {"items": [...]}.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from app.utils.logging_setup import get_logger
from app.utils.money import d

log = get_logger("tax_table")


@dataclass(frozen=True)
class DestinationTaxConfig:
    country: str
    vat_rate: Decimal
    currency: str
    reduced_rates: Mapping[str, Decimal] = field(default_factory=dict)
    duty_free_threshold: Optional[Decimal] = None
    vat_free_threshold: Optional[Decimal] = None
    low_value_scheme: Optional[str] = None
    low_value_threshold: Optional[Decimal] = None
    de_minimis_name: Optional[str] = None
    de_minimis_threshold: Optional[Decimal] = None
    vat_on_duty_inclusive: bool = True
    vat_label: str = "VAT"
    # customs handling fee: rate of the goods value, capped in the record's currency
    handling_fee_rate: Optional[Decimal] = None
    handling_fee_cap: Optional[Decimal] = None


# Category -> ad valorem duty rate. Absent or unknown categories use "default".
DUTY_RATES: Dict[str, Decimal] = {
    "electronics": Decimal("0.06"),
    "clothing": Decimal("0.16"),
    "footwear": Decimal("0.17"),
    "accessories": Decimal("0.08"),
    "home": Decimal("0.04"),
    "beauty": Decimal("0.02"),
    "sports": Decimal("0.12"),
    "toys": Decimal("0.00"),
    "books": Decimal("0.00"),
    "stationery": Decimal("0.00"),
    "food": Decimal("0.10"),
    "jewelry": Decimal("0.04"),
    "default": Decimal("0.05"),
}

EU_VAT_RATES: Dict[str, str] = {
    "DE": "0.19", "FR": "0.20", "IT": "0.22", "ES": "0.21", "NL": "0.21",
    "BE": "0.21", "AT": "0.20", "PL": "0.23", "IE": "0.23", "PT": "0.23",
    "SE": "0.25", "DK": "0.25", "FI": "0.24", "CZ": "0.21",
}

EU_REDUCED: Dict[str, Dict[str, Decimal]] = {
    "DE": {"books": Decimal("0.07"), "food": Decimal("0.10")},
    "FR": {"books": Decimal("0.07"), "food": Decimal("0.10")},
    "IT": {"books": Decimal("0.07")},
    "ES": {"food": Decimal("0.10")},
}


def _eu(country: str) -> DestinationTaxConfig:
    return DestinationTaxConfig(
        country=country,
        vat_rate=Decimal(EU_VAT_RATES[country]),
        currency="EUR",
        reduced_rates=EU_REDUCED.get(country, {}),
        duty_free_threshold=Decimal("150"),
        low_value_scheme="IOSS",
        low_value_threshold=Decimal("150"),
        vat_on_duty_inclusive=True,
    )


def _seed() -> Dict[str, DestinationTaxConfig]:
    recs: List[DestinationTaxConfig] = [
        DestinationTaxConfig(
            country="US",
            vat_rate=Decimal("0"),
            currency="USD",
            de_minimis_name="section_321",
            de_minimis_threshold=Decimal("800"),
            vat_on_duty_inclusive=False,
            vat_label="Sales tax",
        ),
        DestinationTaxConfig(
            country="GB",
            vat_rate=Decimal("0.20"),
            currency="GBP",
            reduced_rates={"books": Decimal("0"), "food": Decimal("0")},
            duty_free_threshold=Decimal("135"),
            low_value_scheme="UK low value",
            low_value_threshold=Decimal("135"),
        ),
        DestinationTaxConfig(
            country="NO",
            vat_rate=Decimal("0.25"),
            currency="NOK",
            low_value_scheme="VOEC",
            low_value_threshold=Decimal("3000"),
        ),
        DestinationTaxConfig(
            country="CH",
            vat_rate=Decimal("0.081"),
            currency="CHF",
            duty_free_threshold=Decimal("65"),
            vat_free_threshold=Decimal("65"),
            handling_fee_rate=Decimal("0.001"),
            handling_fee_cap=Decimal("10"),
        ),
        DestinationTaxConfig(
            country="CA",
            vat_rate=Decimal("0.05"),
            currency="CAD",
            de_minimis_name="cusma_de_minimis",
            de_minimis_threshold=Decimal("150"),
            vat_free_threshold=Decimal("40"),
            vat_label="GST",
        ),
        DestinationTaxConfig(
            country="AU",
            vat_rate=Decimal("0.10"),
            currency="AUD",
            low_value_scheme="AU low value GST",
            low_value_threshold=Decimal("1000"),
            de_minimis_name="au_de_minimis",
            de_minimis_threshold=Decimal("1000"),
            vat_label="GST",
        ),
    ]
    recs.extend(_eu(c) for c in EU_VAT_RATES)
    return {r.country: r for r in recs}


DEFAULT_CONFIGS: Dict[str, DestinationTaxConfig] = _seed()


def _opt_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None or value == "" else d(value)


def record_from_dict(row: Mapping[str, Any]) -> DestinationTaxConfig:
    country = str(row["country"]).strip().upper()
    return DestinationTaxConfig(
        country=country,
        vat_rate=d(row.get("vat_rate", 0)),
        currency=str(row.get("currency") or "USD").upper(),
        reduced_rates={str(k).lower(): d(v) for k, v in (row.get("reduced_rates") or {}).items()},
        duty_free_threshold=_opt_decimal(row.get("duty_free_threshold")),
        vat_free_threshold=_opt_decimal(row.get("vat_free_threshold")),
        low_value_scheme=row.get("low_value_scheme"),
        low_value_threshold=_opt_decimal(row.get("low_value_threshold")),
        de_minimis_name=row.get("de_minimis_name"),
        de_minimis_threshold=_opt_decimal(row.get("de_minimis_threshold")),
        vat_on_duty_inclusive=bool(row.get("vat_on_duty_inclusive", True)),
        vat_label=row.get("vat_label") or "VAT",
        handling_fee_rate=_opt_decimal(row.get("handling_fee_rate")),
        handling_fee_cap=_opt_decimal(row.get("handling_fee_cap")),
    )


def load_tax_table(input_path: str) -> Dict[str, DestinationTaxConfig]:
    p = Path(input_path)
    if not p.exists():
        raise FileNotFoundError(p)
    data = json.loads(p.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items") or data.get("countries") or []
    out = {}
    for row in data:
        rec = record_from_dict(row)
        out[rec.country] = rec
    log.info("Loaded %s tax records from %s", len(out), input_path)
    return out
