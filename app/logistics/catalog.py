# app/logistics/catalog.py
"""
Static catalog of cross-border shipping services. Prices are USD list rates
(base + per billable kg). Can be replaced at startup from JSON
(settings.catalog_path).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, FrozenSet, List, Mapping, Tuple

from app.utils.logging_setup import get_logger
from app.utils.money import d

log = get_logger("catalog")

EU = ("DE", "FR", "IT", "ES", "NL", "BE", "AT", "PL", "IE", "PT", "SE", "DK", "FI", "CZ")


@dataclass(frozen=True)
class ServiceSpec:
    provider: str
    service: str
    name: str
    countries: FrozenSet[str]
    max_weight_kg: float
    max_dimension_cm: float
    max_declared_value: Decimal
    base_cost: Decimal
    per_kg_cost: Decimal
    transit_days_min: int
    transit_days_max: int
    tracking: bool
    insurance: bool
    ddp: bool
    reliability: float
    currency: str = "USD"

    @property
    def option_id(self) -> str:
        return f"{self.provider}:{self.service}"

    @property
    def transit_midpoint(self) -> float:
        return (self.transit_days_min + self.transit_days_max) / 2.0


def _countries(*codes: str) -> FrozenSet[str]:
    return frozenset(codes)


DEFAULT_CATALOG: Tuple[ServiceSpec, ...] = (
    ServiceSpec(
        provider="DHL_ECOM", service="ECOMMERCE", name="DHL eCommerce Packet",
        countries=_countries("US", "GB", "CA", "AU", "NO", "CH", *EU),
        max_weight_kg=31.5, max_dimension_cm=120, max_declared_value=Decimal("2500"),
        base_cost=Decimal("8.50"), per_kg_cost=Decimal("6.20"),
        transit_days_min=6, transit_days_max=12,
        tracking=True, insurance=False, ddp=False, reliability=0.9,
    ),
    ServiceSpec(
        provider="DHL_ECOM", service="EXPRESS", name="DHL Express Worldwide",
        countries=_countries("US", "GB", "CA", "AU", "NO", "CH", *EU),
        max_weight_kg=30, max_dimension_cm=120, max_declared_value=Decimal("2500"),
        base_cost=Decimal("24.00"), per_kg_cost=Decimal("9.80"),
        transit_days_min=2, transit_days_max=4,
        tracking=True, insurance=True, ddp=True, reliability=0.97,
    ),
    ServiceSpec(
        provider="YUNEXPRESS", service="DDP", name="YunExpress Global Direct Line (DDP)",
        countries=_countries("US", "GB", "AU", "NO", *EU),
        max_weight_kg=30, max_dimension_cm=100, max_declared_value=Decimal("2000"),
        base_cost=Decimal("7.80"), per_kg_cost=Decimal("7.40"),
        transit_days_min=7, transit_days_max=14,
        tracking=True, insurance=False, ddp=True, reliability=0.85,
    ),
    ServiceSpec(
        provider="YUNEXPRESS", service="DAP", name="YunExpress Global Direct Line (DAP)",
        countries=_countries("US", "GB", "CA", "AU", "NO", "CH", *EU),
        max_weight_kg=30, max_dimension_cm=100, max_declared_value=Decimal("2000"),
        base_cost=Decimal("5.90"), per_kg_cost=Decimal("6.60"),
        transit_days_min=8, transit_days_max=15,
        tracking=True, insurance=False, ddp=False, reliability=0.84,
    ),
    ServiceSpec(
        provider="YANWEN", service="ECONOMIC", name="Yanwen Economic Air Mail",
        countries=_countries("US", "GB", "CA", "AU", *EU),
        max_weight_kg=30, max_dimension_cm=90, max_declared_value=Decimal("2000"),
        base_cost=Decimal("3.20"), per_kg_cost=Decimal("5.10"),
        transit_days_min=12, transit_days_max=25,
        tracking=False, insurance=False, ddp=False, reliability=0.75,
    ),
    ServiceSpec(
        provider="SHUNFRIEND", service="STANDARD", name="ShunFriend Standard Line",
        countries=_countries("US", "GB", "DE", "FR", "IT", "ES", "NL"),
        max_weight_kg=30, max_dimension_cm=100, max_declared_value=Decimal("2000"),
        base_cost=Decimal("6.50"), per_kg_cost=Decimal("6.90"),
        transit_days_min=8, transit_days_max=16,
        tracking=True, insurance=False, ddp=True, reliability=0.8,
    ),
)


def spec_from_dict(row: Mapping[str, Any]) -> ServiceSpec:
    return ServiceSpec(
        provider=str(row["provider"]),
        service=str(row["service"]),
        name=str(row.get("name") or f"{row['provider']} {row['service']}"),
        countries=frozenset(str(c).upper() for c in row.get("countries") or ()),
        max_weight_kg=float(row.get("max_weight_kg", 30)),
        max_dimension_cm=float(row.get("max_dimension_cm", 100)),
        max_declared_value=d(row.get("max_declared_value", 2000)),
        base_cost=d(row.get("base_cost", 0)),
        per_kg_cost=d(row.get("per_kg_cost", 0)),
        transit_days_min=int(row.get("transit_days_min", 0)),
        transit_days_max=int(row.get("transit_days_max", 0)),
        tracking=bool(row.get("tracking", False)),
        insurance=bool(row.get("insurance", False)),
        ddp=bool(row.get("ddp", False)),
        reliability=float(row.get("reliability", 0.8)),
        currency=str(row.get("currency") or "USD").upper(),
    )


def load_catalog(input_path: str) -> List[ServiceSpec]:
    p = Path(input_path)
    if not p.exists():
        raise FileNotFoundError(p)
    data = json.loads(p.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items") or data.get("services") or []
    out = [spec_from_dict(row) for row in data]
    log.info("Loaded %s shipping services from %s", len(out), input_path)
    return out
