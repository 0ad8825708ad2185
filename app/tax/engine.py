# app/tax/engine.py
"""
Duty and VAT per line and per order.

Thresholds gate on the ORDER value (converted into the destination's
threshold currency), never on a single line. Amounts are Decimal and rounded
half-up to cents per line; order totals are sums of the rounded line amounts
so that duty + vat == total on every line, and duty + vat + handling fee ==
total for the order.
"""
from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from app.config import settings
from app.core.domain import OrderTaxBreakdown, TaxableLineItem, TaxBreakdown
from app.core.settings import UNSUPPORTED_DISCLOSURE
from app.tax.fx import convert
from app.tax.jurisdictions import DEFAULT_CONFIGS, DUTY_RATES, DestinationTaxConfig, load_tax_table
from app.utils.money import ZERO, round_money, round_rate

logger = logging.getLogger(__name__)


def _zero_line(currency: str) -> TaxBreakdown:
    return TaxBreakdown(
        duty_amount=round_money(ZERO),
        vat_amount=round_money(ZERO),
        total_tax=round_money(ZERO),
        duty_rate=ZERO,
        vat_rate=ZERO,
        taxable_base=round_money(ZERO),
        currency=currency,
    )


def _allocate(total: Decimal, weights: Sequence[Decimal]) -> List[Decimal]:
    """Split `total` across `weights` pro rata in cents; the largest line takes the rounding remainder."""
    zero = round_money(ZERO)
    whole = sum(weights, ZERO)
    if not total or not whole:
        return [zero for _ in weights]
    shares = [round_money(total * w / whole) for w in weights]
    biggest = max(range(len(weights)), key=lambda i: weights[i])
    shares[biggest] += total - sum(shares, zero)
    return shares


class TaxRuleEngine:
    def __init__(
        self,
        configs: Optional[Mapping[str, DestinationTaxConfig]] = None,
        duty_rates: Optional[Mapping[str, Decimal]] = None,
    ) -> None:
        self._configs: Dict[str, DestinationTaxConfig] = dict(configs or DEFAULT_CONFIGS)
        self._duty_rates: Dict[str, Decimal] = dict(duty_rates or DUTY_RATES)
        if configs is None and settings.tax_table_path:
            self._configs.update(load_tax_table(settings.tax_table_path))

    # ---------------------------------------------------------- lookups ---
    def config_for(self, country: str) -> Optional[DestinationTaxConfig]:
        return self._configs.get((country or "").upper())

    def supported_countries(self) -> List[str]:
        return sorted(self._configs)

    def duty_rate_for(self, category: Optional[str]) -> Decimal:
        key = (category or "").strip().lower()
        return self._duty_rates.get(key, self._duty_rates.get("default", Decimal("0.05")))

    def vat_rate_for(self, country: str, category: Optional[str]) -> Decimal:
        cfg = self.config_for(country)
        if cfg is None:
            return ZERO
        key = (category or "").strip().lower()
        if key in cfg.reduced_rates:
            return cfg.reduced_rates[key]
        return cfg.vat_rate

    # ------------------------------------------------------------- line ---
    def compute_line(
        self,
        item: TaxableLineItem,
        *,
        order_value: Optional[Decimal] = None,
        low_value_scheme_enabled: bool = True,
        shipping: Optional[Decimal] = None,
    ) -> TaxBreakdown:
        """
        Tax one line. `order_value` (in the item's currency) gates thresholds;
        defaults to the line's own value for single-line use. `shipping` is
        this line's share of freight added to the base, never to the gate.
        """
        cfg = self.config_for(item.destination_country)
        if cfg is None:
            return _zero_line(item.currency)

        value = round_money(item.line_value)
        freight = round_money(shipping or ZERO)
        goods = value + freight
        gate = convert(order_value if order_value is not None else value, item.currency, cfg.currency)
        category = item.classification.category
        duty_rate = self.duty_rate_for(category)
        vat_rate = self.vat_rate_for(cfg.country, category)
        exemptions: List[str] = []

        scheme = (
            low_value_scheme_enabled
            and cfg.low_value_scheme is not None
            and cfg.low_value_threshold is not None
            and gate <= cfg.low_value_threshold
        )
        if scheme:
            # VAT collected at checkout by the seller; disclosed, not charged at import.
            exemptions.append(cfg.low_value_scheme)
            return TaxBreakdown(
                duty_amount=round_money(ZERO),
                vat_amount=round_money(ZERO),
                total_tax=round_money(ZERO),
                duty_rate=duty_rate,
                vat_rate=vat_rate,
                taxable_base=goods,
                low_value_scheme_applied=True,
                vat_included_amount=round_money(goods * vat_rate),
                exemptions=tuple(exemptions),
                currency=item.currency,
                shipping_amount=freight,
            )

        duty = goods * duty_rate
        de_minimis = cfg.de_minimis_threshold is not None and gate <= cfg.de_minimis_threshold
        if de_minimis:
            duty = ZERO
            exemptions.append(cfg.de_minimis_name or "de_minimis")
        elif cfg.duty_free_threshold is not None and gate <= cfg.duty_free_threshold:
            duty = ZERO
            exemptions.append("duty_free_threshold")
        duty = round_money(duty)

        base = goods + duty if cfg.vat_on_duty_inclusive else goods
        vat = base * vat_rate
        if cfg.vat_free_threshold is not None and gate <= cfg.vat_free_threshold:
            vat = ZERO
            exemptions.append("vat_free_threshold")
        vat = round_money(vat)

        return TaxBreakdown(
            duty_amount=duty,
            vat_amount=vat,
            total_tax=duty + vat,
            duty_rate=duty_rate,
            vat_rate=vat_rate,
            taxable_base=round_money(base),
            exemptions=tuple(exemptions),
            currency=item.currency,
            de_minimis_applied=de_minimis,
            shipping_amount=freight,
        )

    # ------------------------------------------------------------ order ---
    def handling_fee_for(self, cfg: DestinationTaxConfig, order_value: Decimal, currency: str) -> Decimal:
        if not cfg.handling_fee_rate:
            return round_money(ZERO)
        fee = order_value * cfg.handling_fee_rate
        if cfg.handling_fee_cap is not None:
            fee = min(fee, convert(cfg.handling_fee_cap, cfg.currency, currency))
        return round_money(fee)

    def compute_order(
        self,
        items: Sequence[TaxableLineItem],
        *,
        low_value_scheme_enabled: bool = True,
        currency: Optional[str] = None,
        shipping: Optional[Decimal] = None,
    ) -> OrderTaxBreakdown:
        """
        Tax a whole order. `shipping` (in `currency`) joins the taxable base,
        split across lines by value; thresholds still gate on goods value.
        """
        currency = (currency or (items[0].currency if items else settings.QUOTE_CURRENCY)).upper()
        items = [
            it if it.currency.upper() == currency
            else dataclasses.replace(it, unit_price=convert(it.unit_price, it.currency, currency), currency=currency)
            for it in items
        ]
        country = items[0].destination_country.upper() if items else ""
        order_value = round_money(sum((it.line_value for it in items), ZERO))
        cfg = self.config_for(country)

        if cfg is None:
            logger.info(
                "unsupported destination %r, zero tax with disclosure (supported: %s)",
                country, ", ".join(self.supported_countries()),
            )
            zero = round_money(ZERO)
            return OrderTaxBreakdown(
                country=country,
                currency=currency,
                lines=tuple(_zero_line(currency) for _ in items),
                duty_amount=zero,
                vat_amount=zero,
                vat_included_amount=zero,
                total_tax=zero,
                taxable_base=zero,
                order_value=order_value,
                supported=False,
                disclosure=UNSUPPORTED_DISCLOSURE,
            )

        shares = _allocate(round_money(shipping or ZERO), [it.line_value for it in items])
        lines = tuple(
            self.compute_line(
                it,
                order_value=order_value,
                low_value_scheme_enabled=low_value_scheme_enabled,
                shipping=share,
            )
            for it, share in zip(items, shares)
        )
        duty = sum((ln.duty_amount for ln in lines), round_money(ZERO))
        vat = sum((ln.vat_amount for ln in lines), round_money(ZERO))
        included = sum((ln.vat_included_amount for ln in lines), round_money(ZERO))
        base = sum((ln.taxable_base for ln in lines), round_money(ZERO))
        freight = sum((ln.shipping_amount for ln in lines), round_money(ZERO))
        applied = any(ln.low_value_scheme_applied for ln in lines)

        # the fee rides on an import charge; nothing payable, no fee
        fee = self.handling_fee_for(cfg, order_value, currency) if duty + vat > 0 else round_money(ZERO)

        exemptions: List[str] = []
        for ln in lines:
            for name in ln.exemptions:
                if name not in exemptions:
                    exemptions.append(name)

        return OrderTaxBreakdown(
            country=country,
            currency=currency,
            lines=lines,
            duty_amount=duty,
            vat_amount=vat,
            vat_included_amount=included,
            total_tax=duty + vat + fee,
            taxable_base=base,
            order_value=order_value,
            duty_rate=round_rate(duty / (order_value + freight)) if order_value else ZERO,
            vat_rate=round_rate((vat + included) / base) if base else ZERO,
            low_value_scheme_applied=applied,
            low_value_scheme_name=cfg.low_value_scheme if applied else None,
            exemptions=tuple(exemptions),
            vat_label=cfg.vat_label,
            de_minimis_applied=any(ln.de_minimis_applied for ln in lines),
            shipping_in_base=freight,
            handling_fee=fee,
            handling_fee_rate=cfg.handling_fee_rate or ZERO,
        )
