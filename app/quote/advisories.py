# app/quote/advisories.py
"""
Merchant-facing notes attached to a quote. Advisories never change amounts;
they point at things worth a second look (weak classifications, thresholds
the order just missed, shipping choices that would simplify delivery).
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Sequence

from app.config import settings
from app.core.domain import (
    Advisory,
    ComplianceReport,
    OrderTaxBreakdown,
    QuoteLine,
    QuotePreferences,
    ShippingOption,
)
from app.tax.fx import convert
from app.tax.jurisdictions import DestinationTaxConfig
from app.utils.money import d, round_money

LOW_CONFIDENCE_CLASSIFICATION = "LOW_CONFIDENCE_CLASSIFICATION"
UNSUPPORTED_DESTINATION = "UNSUPPORTED_DESTINATION"
NO_LOGISTICS_CANDIDATE = "NO_LOGISTICS_CANDIDATE"
SELECTED_LOGISTICS_UNAVAILABLE = "SELECTED_LOGISTICS_UNAVAILABLE"
HIGH_TAX_RATE = "HIGH_TAX_RATE"
SPLIT_ORDER = "SPLIT_ORDER"
LOW_VALUE_SCHEME_AVAILABLE = "LOW_VALUE_SCHEME_AVAILABLE"
DDP_SUGGESTED = "DDP_SUGGESTED"
COMPLIANCE_SUMMARY = "COMPLIANCE_SUMMARY"


def build_advisories(
    *,
    lines: Sequence[QuoteLine],
    taxes: OrderTaxBreakdown,
    options: Sequence[ShippingOption],
    preferences: QuotePreferences,
    subtotal: Decimal,
    tax_config: Optional[DestinationTaxConfig],
    selected_missing: bool = False,
    compliance: Optional[ComplianceReport] = None,
) -> List[Advisory]:
    out: List[Advisory] = []

    for ln in lines:
        if ln.classification_fallback:
            out.append(Advisory(
                code=LOW_CONFIDENCE_CLASSIFICATION,
                severity="warning",
                message=(
                    f"'{ln.name}' could not be classified with confidence; "
                    f"HS {ln.classification.hs_code} used. Add an hscode tag or a custom mapping."
                ),
                line_index=ln.index,
            ))

    if not taxes.supported:
        out.append(Advisory(
            code=UNSUPPORTED_DESTINATION,
            severity="warning",
            message=taxes.disclosure or f"No tax rules for {taxes.country}.",
        ))

    if not options:
        out.append(Advisory(
            code=NO_LOGISTICS_CANDIDATE,
            severity="warning",
            message="No shipping service accepts this package for the destination.",
        ))
    elif selected_missing:
        out.append(Advisory(
            code=SELECTED_LOGISTICS_UNAVAILABLE,
            severity="warning",
            message=f"Selected shipping option '{preferences.selected_logistics_id}' is not available; recommended option used.",
        ))

    if subtotal > 0 and taxes.total_tax / subtotal > d(settings.HIGH_TAX_RATIO):
        pct = round_money(taxes.total_tax / subtotal * 100)
        out.append(Advisory(
            code=HIGH_TAX_RATE,
            severity="warning",
            message=f"Duties and taxes are {pct}% of the order subtotal.",
        ))

    if tax_config is not None:
        gate = convert(taxes.order_value, taxes.currency, tax_config.currency)

        threshold = tax_config.de_minimis_threshold or tax_config.duty_free_threshold
        if threshold is not None and gate > threshold and taxes.duty_amount > 0:
            out.append(Advisory(
                code=SPLIT_ORDER,
                severity="info",
                message=(
                    f"Order exceeds the {threshold} {tax_config.currency} duty threshold; "
                    "shipping in separate parcels could avoid duty."
                ),
                potential_savings=taxes.duty_amount,
            ))

        if (
            not preferences.low_value_scheme_enabled
            and tax_config.low_value_scheme is not None
            and tax_config.low_value_threshold is not None
            and gate <= tax_config.low_value_threshold
        ):
            out.append(Advisory(
                code=LOW_VALUE_SCHEME_AVAILABLE,
                severity="info",
                message=(
                    f"Order qualifies for {tax_config.low_value_scheme}; collecting VAT at checkout "
                    "removes the import charge for the buyer."
                ),
                potential_savings=taxes.duty_amount,
            ))

    if (
        not preferences.ddp_preferred
        and taxes.total_tax > d(settings.DDP_SUGGEST_TAX)
        and any(o.ddp for o in options)
    ):
        out.append(Advisory(
            code=DDP_SUGGESTED,
            severity="info",
            message="Import charges are significant; a DDP service lets the buyer pay them at checkout.",
        ))

    if compliance is not None:
        schemes = ", ".join(f"{c.scheme} {c.status}" for c in compliance.checks) or "no scheme checks"
        out.append(Advisory(
            code=COMPLIANCE_SUMMARY,
            severity="warning" if compliance.risk_level in ("HIGH", "CRITICAL") else "info",
            message=f"Compliance risk {compliance.risk_level} (score {compliance.risk_score}): {schemes}.",
        ))

    return out
