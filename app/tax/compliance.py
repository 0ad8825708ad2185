# app/tax/compliance.py
"""
Per-order compliance summary: which import schemes the order qualifies for
and an overall risk level.

    FAIL +30, WARNING +15, N/A +5, PASS 0; order above 5000 USD +20
    score >= 60 CRITICAL, >= 40 HIGH, >= 20 MEDIUM, else LOW
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from app.core.domain import ComplianceReport, SchemeCheck
from app.tax.fx import convert
from app.tax.jurisdictions import DestinationTaxConfig
from app.utils.money import round_money

logger = logging.getLogger(__name__)

STATUS_POINTS = {"FAIL": 30, "WARNING": 15, "N/A": 5, "PASS": 0}
HIGH_VALUE_USD = Decimal("5000")
HIGH_VALUE_POINTS = 20


def risk_level_for(score: int) -> str:
    if score >= 60:
        return "CRITICAL"
    if score >= 40:
        return "HIGH"
    if score >= 20:
        return "MEDIUM"
    return "LOW"


def _low_value_check(cfg: DestinationTaxConfig, gate: Decimal, enabled: bool) -> SchemeCheck:
    threshold = cfg.low_value_threshold
    if gate <= threshold:
        detail = f"Order value {gate} {cfg.currency} is within the {threshold} {cfg.currency} {cfg.low_value_scheme} limit"
        if not enabled:
            detail += " (scheme not enabled by the merchant)"
        status = "PASS"
    else:
        detail = (
            f"Order value {gate} {cfg.currency} exceeds the {threshold} {cfg.currency} "
            f"{cfg.low_value_scheme} limit; standard customs clearance applies"
        )
        status = "WARNING"
    return SchemeCheck(cfg.low_value_scheme, status, detail, threshold, gate, cfg.currency)


def _de_minimis_check(cfg: DestinationTaxConfig, gate: Decimal) -> SchemeCheck:
    name = cfg.de_minimis_name or "de_minimis"
    threshold = cfg.de_minimis_threshold
    if gate <= threshold:
        return SchemeCheck(
            name, "PASS", f"Order value {gate} {cfg.currency} is duty free under {name}",
            threshold, gate, cfg.currency,
        )
    return SchemeCheck(
        name, "FAIL", f"Order value {gate} {cfg.currency} exceeds the {threshold} {cfg.currency} {name} limit",
        threshold, gate, cfg.currency,
    )


def assess_compliance(
    cfg: Optional[DestinationTaxConfig],
    order_value: Decimal,
    currency: str,
    *,
    low_value_scheme_enabled: bool = True,
    fallback_lines: int = 0,
    low_price_lines: int = 0,
) -> ComplianceReport:
    """Check the destination's schemes against the goods value (in `currency`) and score the risk."""
    checks: List[SchemeCheck] = []

    if cfg is None:
        checks.append(SchemeCheck("tax_rules", "N/A", "No import rules on file; charges are assessed on delivery"))
    else:
        gate = round_money(convert(order_value, currency, cfg.currency))
        if cfg.low_value_scheme is not None and cfg.low_value_threshold is not None:
            checks.append(_low_value_check(cfg, gate, low_value_scheme_enabled))
        if cfg.de_minimis_threshold is not None:
            checks.append(_de_minimis_check(cfg, gate))

    if fallback_lines:
        checks.append(SchemeCheck(
            "hs_classification", "WARNING",
            f"{fallback_lines} line(s) use the miscellaneous HS code; clearance may be slower",
        ))
    if low_price_lines:
        checks.append(SchemeCheck(
            "value_declaration", "WARNING",
            f"{low_price_lines} line(s) are declared below 1 {currency}; make sure the values are accurate",
        ))

    score = sum(STATUS_POINTS[c.status] for c in checks)
    if convert(order_value, currency, "USD") > HIGH_VALUE_USD:
        score += HIGH_VALUE_POINTS
    level = risk_level_for(score)
    logger.debug("compliance %s score=%s checks=%s", level, score, [(c.scheme, c.status) for c in checks])
    return ComplianceReport(risk_level=level, risk_score=score, checks=tuple(checks))
