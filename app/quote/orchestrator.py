# app/quote/orchestrator.py
"""
Cart + destination -> Quote.

validate -> classify each line -> rank shipping -> tax the order -> summary.
Shipping is ranked first so the chosen freight can join the tax base.

Output depends only on the request (no clocks, no randomness), so the same
request yields the same quote_id and the same body.
"""
from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
import math
import re
import time
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence, Tuple

from app.classify.classifier import ProductClassifier
from app.config import settings
from app.core.domain import (
    COUNTRY_RE,
    CartLine,
    Destination,
    HSClassification,
    ProductDescriptor,
    Quote,
    QuoteLine,
    QuotePreferences,
    QuoteSummary,
    ShippingOption,
    ShippingPackage,
    TaxableLineItem,
)
from app.core.errors import ComputationError, QuoteError, QuoteValidationError
from app.ingest.hs_table import normalize_code
from app.logistics.recommender import LogisticsRecommender
from app.metrics.cb import MetricsCallback
from app.quote.advisories import build_advisories
from app.tax.compliance import assess_compliance
from app.tax.engine import TaxRuleEngine
from app.tax.fx import convert, is_supported_currency
from app.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)

HSCODE_TAG = "hscode:"
WEIGHT_TAG = "weight:"
_WEIGHT_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(kg)?\s*$", re.IGNORECASE)


def _tag_value(tags: Sequence[str], prefix: str) -> Optional[str]:
    for tag in tags:
        t = (tag or "").strip()
        if t.lower().startswith(prefix):
            return t[len(prefix):].strip()
    return None


def tag_hs_code(line: CartLine) -> Optional[str]:
    raw = _tag_value(line.tags, HSCODE_TAG)
    return normalize_code(raw) if raw is not None else None


def tag_weight(line: CartLine) -> Optional[float]:
    raw = _tag_value(line.tags, WEIGHT_TAG)
    if raw is None:
        return None
    m = _WEIGHT_RE.match(raw)
    if not m:
        logger.debug("ignoring unparseable weight tag %r on %r", raw, line.name)
        return None
    return float(m.group(1))


def _json_default(o: Any) -> Any:
    if isinstance(o, Decimal):
        return str(o)
    raise TypeError(f"not serializable: {type(o).__name__}")


def quote_id_for(
    cart: Sequence[CartLine],
    destination: Destination,
    preferences: QuotePreferences,
    currency: str,
) -> str:
    canonical = json.dumps(
        {
            "cart": [dataclasses.asdict(c) for c in cart],
            "destination": dataclasses.asdict(destination),
            "preferences": dataclasses.asdict(preferences),
            "currency": currency,
        },
        sort_keys=True,
        separators=(",", ":"),
        default=_json_default,
    )
    return "q_" + hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:16]


class QuoteOrchestrator:
    def __init__(
        self,
        classifier: Optional[ProductClassifier] = None,
        tax_engine: Optional[TaxRuleEngine] = None,
        recommender: Optional[LogisticsRecommender] = None,
        *,
        metrics_cb: Optional[MetricsCallback] = None,
        confidence_floor: Optional[float] = None,
    ) -> None:
        self.classifier = classifier or ProductClassifier()
        self.tax_engine = tax_engine or TaxRuleEngine()
        self.recommender = recommender or LogisticsRecommender()
        self.metrics_cb = metrics_cb
        self.confidence_floor = settings.CONFIDENCE_FLOOR if confidence_floor is None else confidence_floor

    # -------------------------------------------------------- validation ---
    def validate(
        self,
        cart: Sequence[CartLine],
        destination: Destination,
        preferences: QuotePreferences,
        currency: str,
    ) -> None:
        """Raise QuoteValidationError (with a field path) on the first bad field."""
        if not COUNTRY_RE.match(destination.country_code or ""):
            raise QuoteValidationError(
                f"country code must be two upper-case letters, got {destination.country_code!r}",
                field="destination.country_code",
            )
        if not is_supported_currency(currency):
            raise QuoteValidationError(f"unsupported currency {currency!r}", field="currency")
        if not cart:
            raise QuoteValidationError("cart must contain at least one line", field="cart")

        for i, line in enumerate(cart):
            where = f"cart[{i}]"
            if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity <= 0:
                raise QuoteValidationError("quantity must be a positive integer", field=f"{where}.quantity")
            try:
                price = Decimal(line.unit_price)
                price_ok = price.is_finite() and price > 0
            except (InvalidOperation, TypeError, ValueError):
                price_ok = False
            if not price_ok:
                raise QuoteValidationError("unit price must be a positive finite number", field=f"{where}.unit_price")
            if line.currency is not None and not is_supported_currency(line.currency):
                raise QuoteValidationError(f"unsupported currency {line.currency!r}", field=f"{where}.currency")
            if line.weight_kg is not None and not (math.isfinite(line.weight_kg) and line.weight_kg >= 0):
                raise QuoteValidationError("weight must be a finite, non-negative number", field=f"{where}.weight_kg")
            tagged = tag_weight(line)
            if tagged is not None and not math.isfinite(tagged):
                raise QuoteValidationError("weight tag must be a finite number", field=f"{where}.tags")
            code = tag_hs_code(line)
            if code is not None:
                check = self.classifier.validate_format(code)
                if not check.valid:
                    raise QuoteValidationError(f"hscode tag: {check.reason}", field=f"{where}.tags")

        dims = preferences.package_dimensions_cm
        if dims is not None and (len(dims) != 3 or not all(math.isfinite(v) and v > 0 for v in dims)):
            raise QuoteValidationError(
                "package dimensions must be three positive finite numbers (cm)",
                field="preferences.package_dimensions",
            )
        if preferences.max_transit_days is not None and preferences.max_transit_days <= 0:
            raise QuoteValidationError("max transit days must be positive", field="preferences.max_transit_days")

    # ---------------------------------------------------- classification ---
    def classify_line(self, line: CartLine) -> Tuple[HSClassification, bool]:
        """(classification, fallback_used)."""
        code = tag_hs_code(line)
        if code is not None:
            return self.classifier.classification_for(code, matched=(f"{HSCODE_TAG}{code}",)), False

        top = self.classifier.get_recommended_code(ProductDescriptor(
            name=line.name,
            description=line.description,
            category=line.category,
            brand=line.brand,
            material=line.material,
            usage=line.usage,
        ))
        if top is None or top.confidence < self.confidence_floor:
            return self.classifier.misc_classification(), True
        return top, False

    def _weight_of(self, line: CartLine) -> float:
        if line.weight_kg is not None:
            return float(line.weight_kg)
        tagged = tag_weight(line)
        if tagged is not None:
            return tagged
        return settings.DEFAULT_ITEM_WEIGHT_KG

    # ------------------------------------------------------------- quote ---
    def build_quote(
        self,
        cart: Sequence[CartLine],
        destination: Destination,
        preferences: Optional[QuotePreferences] = None,
        currency: Optional[str] = None,
    ) -> Quote:
        prefs = preferences or QuotePreferences()
        quote_currency = (currency or (cart[0].currency if cart else None) or settings.QUOTE_CURRENCY).upper()
        self.validate(cart, destination, prefs, quote_currency)

        started = time.perf_counter()
        try:
            quote = self._build(cart, destination, prefs, quote_currency)
        except QuoteError:
            raise
        except Exception as e:
            logger.exception("quote computation failed for %s", destination.country_code)
            raise ComputationError(f"quote computation failed: {e}") from e

        if self.metrics_cb is not None:
            self.metrics_cb("quote", {
                "quote_id": quote.quote_id,
                "country": destination.country_code,
                "lines": len(cart),
                "total_tax": str(quote.summary.total_tax),
                "options": len(quote.logistics),
                "advisories": len(quote.advisories),
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            })
        return quote

    def _build(
        self,
        cart: Sequence[CartLine],
        destination: Destination,
        prefs: QuotePreferences,
        currency: str,
    ) -> Quote:
        country = destination.country_code

        items: List[TaxableLineItem] = []
        resolved: List[Tuple[HSClassification, bool]] = []
        total_weight = 0.0
        for line in cart:
            cls, fallback = self.classify_line(line)
            resolved.append((cls, fallback))
            unit = round_money(convert(line.unit_price, line.currency or currency, currency))
            weight = self._weight_of(line)
            total_weight += weight * line.quantity
            items.append(TaxableLineItem(
                quantity=line.quantity,
                unit_price=unit,
                currency=currency,
                weight_kg=weight,
                classification=cls,
                destination_country=country,
            ))

        subtotal = round_money(sum((it.line_value for it in items), ZERO))

        length, width, height = prefs.package_dimensions_cm or (
            settings.DEFAULT_PACKAGE_LENGTH_CM,
            settings.DEFAULT_PACKAGE_WIDTH_CM,
            settings.DEFAULT_PACKAGE_HEIGHT_CM,
        )
        package = ShippingPackage(
            weight_kg=round(total_weight, 3),
            declared_value=subtotal,
            currency=currency,
            length_cm=float(length),
            width_cm=float(width),
            height_cm=float(height),
            destination_country=country,
        )
        options = self.recommender.recommend(package, prefs, currency=currency)

        chosen: Optional[ShippingOption] = next((o for o in options if o.recommended), None)
        selected_missing = False
        if prefs.selected_logistics_id:
            picked = next((o for o in options if o.option_id == prefs.selected_logistics_id), None)
            if picked is not None:
                chosen = picked
            else:
                selected_missing = True

        shipping = chosen.cost if chosen is not None else ZERO
        taxes = self.tax_engine.compute_order(
            items,
            low_value_scheme_enabled=prefs.low_value_scheme_enabled,
            currency=currency,
            shipping=shipping if prefs.include_shipping_in_tax_base else None,
        )
        summary = QuoteSummary(
            subtotal=subtotal,
            total_tax=taxes.total_tax,
            recommended_logistics=chosen,
            estimated_total=round_money(subtotal + taxes.total_tax + shipping),
        )

        lines = tuple(
            QuoteLine(
                index=i,
                name=line.name,
                quantity=line.quantity,
                line_value=round_money(item.line_value),
                classification=cls,
                classification_fallback=fallback,
                tax=taxes.lines[i],
            )
            for i, (line, item, (cls, fallback)) in enumerate(zip(cart, items, resolved))
        )

        tax_config = self.tax_engine.config_for(country)
        compliance = assess_compliance(
            tax_config,
            subtotal,
            currency,
            low_value_scheme_enabled=prefs.low_value_scheme_enabled,
            fallback_lines=sum(1 for _, fallback in resolved if fallback),
            low_price_lines=sum(1 for it in items if it.unit_price < 1),
        )
        advisories = build_advisories(
            lines=lines,
            taxes=taxes,
            options=options,
            preferences=prefs,
            subtotal=subtotal,
            tax_config=tax_config,
            selected_missing=selected_missing,
            compliance=compliance,
        )

        return Quote(
            quote_id=quote_id_for(cart, destination, prefs, currency),
            currency=currency,
            destination=destination,
            taxes=taxes,
            logistics=tuple(options),
            summary=summary,
            lines=lines,
            advisories=tuple(advisories),
            compliance=compliance,
        )
