# app/logistics/recommender.py
"""
Filter, score and rank shipping services for one package.

score = (wc * cost_s + wt * time_s + wr * reliability) / (wc + wt + wr)
        + ddp_bonus   (only when DDP is preferred and the service is DDP)

cost_s and time_s are inverted min-max scores over the surviving candidates
(cheapest / fastest = 1.0). A prioritize_* flag multiplies its weight by the
boost. Weights, boost and bonus come from settings.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np

from app.config import settings
from app.core.domain import QuotePreferences, ShippingOption, ShippingPackage
from app.logistics.catalog import DEFAULT_CATALOG, ServiceSpec, load_catalog
from app.tax.fx import convert
from app.utils.money import d, round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreWeights:
    cost: float
    speed: float
    reliability: float
    boost: float
    ddp_bonus: float

    @classmethod
    def from_settings(cls) -> "ScoreWeights":
        return cls(
            cost=settings.WEIGHT_COST,
            speed=settings.WEIGHT_SPEED,
            reliability=settings.WEIGHT_RELIABILITY,
            boost=settings.PRIORITY_BOOST,
            ddp_bonus=settings.DDP_BONUS,
        )


def _inverted_minmax(values: np.ndarray) -> np.ndarray:
    """Lower is better: lo -> 1.0, hi -> 0.0. All-equal -> all 1.0."""
    if values.size == 0:
        return values
    lo, hi = float(values.min()), float(values.max())
    if np.isclose(hi, lo):
        return np.ones_like(values)
    return 1.0 - (values - lo) / (hi - lo)


class LogisticsRecommender:
    def __init__(
        self,
        catalog: Optional[Iterable[ServiceSpec]] = None,
        *,
        volumetric_divisor: Optional[float] = None,
        weights: Optional[ScoreWeights] = None,
    ) -> None:
        if catalog is None:
            catalog = load_catalog(settings.catalog_path) if settings.catalog_path else DEFAULT_CATALOG
        self.catalog: Sequence[ServiceSpec] = tuple(catalog)
        self.volumetric_divisor = volumetric_divisor or settings.VOLUMETRIC_DIVISOR
        self.weights = weights or ScoreWeights.from_settings()

    def volumetric_weight(self, package: ShippingPackage) -> float:
        vol = package.length_cm * package.width_cm * package.height_cm / self.volumetric_divisor
        return round(vol, 3)

    def billable_weight(self, package: ShippingPackage) -> float:
        return max(round(package.weight_kg, 3), self.volumetric_weight(package))

    def eligible(self, package: ShippingPackage) -> List[ServiceSpec]:
        country = package.destination_country.upper()
        billable = self.billable_weight(package)
        longest = max(package.length_cm, package.width_cm, package.height_cm)
        out = []
        for spec in self.catalog:
            if country not in spec.countries:
                continue
            if billable > spec.max_weight_kg or longest > spec.max_dimension_cm:
                continue
            if convert(package.declared_value, package.currency, spec.currency) > spec.max_declared_value:
                continue
            out.append(spec)
        return out

    def cost_for(self, spec: ServiceSpec, billable: float, currency: str) -> Decimal:
        cost = round_money(spec.base_cost + spec.per_kg_cost * d(billable))
        return round_money(convert(cost, spec.currency, currency))

    def recommend(
        self,
        package: ShippingPackage,
        preferences: Optional[QuotePreferences] = None,
        currency: Optional[str] = None,
    ) -> List[ShippingOption]:
        prefs = preferences or QuotePreferences()
        currency = (currency or package.currency or settings.QUOTE_CURRENCY).upper()
        candidates = self.eligible(package)
        if not candidates:
            logger.info(
                "no shipping candidates for %s (billable %.3f kg)",
                package.destination_country, self.billable_weight(package),
            )
            return []

        billable = self.billable_weight(package)
        costs = [self.cost_for(s, billable, currency) for s in candidates]
        cost_s = _inverted_minmax(np.array([float(c) for c in costs], dtype=np.float64))
        time_s = _inverted_minmax(np.array([s.transit_midpoint for s in candidates], dtype=np.float64))
        rel = np.array([s.reliability for s in candidates], dtype=np.float64)

        w = self.weights
        wc = w.cost * (w.boost if prefs.prioritize_cost else 1.0)
        wt = w.speed * (w.boost if prefs.prioritize_speed else 1.0)
        wr = w.reliability * (w.boost if prefs.prioritize_reliability else 1.0)
        total = (wc + wt + wr) or 1.0
        scores = (wc * cost_s + wt * time_s + wr * rel) / total
        if prefs.ddp_preferred:
            scores = scores + np.array([w.ddp_bonus if s.ddp else 0.0 for s in candidates])

        rows = sorted(
            zip(candidates, costs, scores.tolist()),
            key=lambda r: (-round(r[2], 6), r[1], r[0].transit_days_max, r[0].provider, r[0].service),
        )

        options: List[ShippingOption] = []
        recommended_set = False
        for spec, cost, score in rows:
            ok = (
                (prefs.max_transit_days is None or spec.transit_days_max <= prefs.max_transit_days)
                and (not prefs.require_tracking or spec.tracking)
            )
            rec = ok and not recommended_set
            recommended_set = recommended_set or rec
            options.append(ShippingOption(
                option_id=spec.option_id,
                provider=spec.provider,
                service=spec.service,
                name=spec.name,
                cost=cost,
                currency=currency,
                transit_days_min=spec.transit_days_min,
                transit_days_max=spec.transit_days_max,
                tracking=spec.tracking,
                insurance=spec.insurance,
                ddp=spec.ddp,
                score=round(score, 4),
                recommended=rec,
            ))
        return options
