# app/api/serializers.py
"""Domain objects -> response schemas. Decimal money leaves as float here."""
from __future__ import annotations

from typing import List, Optional

from app.api.schemas import (
    AdvisoryOut,
    ComplianceOut,
    ErrorOut,
    HSResultOut,
    ItemOut,
    LogisticsOptionOut,
    QuoteResponse,
    SchemeCheckOut,
    SummaryOut,
    TaxLineOut,
)
from app.core.domain import ComplianceReport, HSClassification, OrderTaxBreakdown, Quote, ShippingOption
from app.core.errors import QuoteError
from app.core.settings import DISCLAIMER_TEXT


def hs_out(c: HSClassification) -> HSResultOut:
    return HSResultOut(
        hs_code=c.hs_code,
        description=c.description,
        confidence=c.confidence,
        source=c.source,
        matched_keywords=list(c.matched_keywords),
        duty_rate=c.duty_rate,
        vat_rate=c.vat_rate,
        category=c.category,
    )


def option_out(o: ShippingOption) -> LogisticsOptionOut:
    return LogisticsOptionOut(
        id=o.option_id,
        provider=o.provider,
        service=o.service,
        name=o.name,
        cost=float(o.cost),
        currency=o.currency,
        transit_days_min=o.transit_days_min,
        transit_days_max=o.transit_days_max,
        tracking_included=o.tracking,
        insurance_included=o.insurance,
        ddp_supported=o.ddp,
        score=o.score,
        recommended=o.recommended,
    )


def tax_lines(t: OrderTaxBreakdown) -> List[TaxLineOut]:
    """
    Order-level duty, VAT and handling fee entries. Under a low-value scheme
    the VAT entry carries the amount collected at checkout and is flagged, so
    the unflagged amounts always add up to summary.total_tax.
    """
    if not t.supported:
        return []
    base_note = " (base includes shipping)" if t.shipping_in_base else ""
    duty_desc = "Customs duty" + base_note
    if t.exemptions and not t.duty_amount and not t.low_value_scheme_applied:
        duty_desc += f" (exempt: {', '.join(t.exemptions)})"
    out = [TaxLineOut(
        name="Import duty",
        type="duty",
        rate=float(t.duty_rate),
        amount=float(t.duty_amount),
        description=duty_desc,
        low_value_scheme=False,
        de_minimis=t.de_minimis_applied,
    )]
    if t.low_value_scheme_applied:
        out.append(TaxLineOut(
            name=t.vat_label,
            type="vat",
            rate=float(t.vat_rate),
            amount=float(t.vat_included_amount),
            description=f"{t.vat_label} collected at checkout under {t.low_value_scheme_name}{base_note}",
            low_value_scheme=True,
        ))
    else:
        out.append(TaxLineOut(
            name=t.vat_label,
            type="vat",
            rate=float(t.vat_rate),
            amount=float(t.vat_amount),
            description=f"Import {t.vat_label}{base_note}",
            low_value_scheme=False,
        ))
    if t.handling_fee:
        out.append(TaxLineOut(
            name="Customs handling fee",
            type="handling_fee",
            rate=float(t.handling_fee_rate),
            amount=float(t.handling_fee),
            description="Clearance handling fee on the goods value",
            low_value_scheme=False,
        ))
    return out


def compliance_out(c: Optional[ComplianceReport]) -> Optional[ComplianceOut]:
    if c is None:
        return None
    return ComplianceOut(
        risk_level=c.risk_level,
        risk_score=c.risk_score,
        checks=[
            SchemeCheckOut(
                scheme=ch.scheme,
                status=ch.status,
                detail=ch.detail,
                threshold=float(ch.threshold) if ch.threshold is not None else None,
                order_value=float(ch.order_value) if ch.order_value is not None else None,
                currency=ch.currency,
            )
            for ch in c.checks
        ],
    )


def quote_to_response(q: Quote) -> QuoteResponse:
    rec: Optional[LogisticsOptionOut] = None
    if q.summary.recommended_logistics is not None:
        rec = option_out(q.summary.recommended_logistics)
    items = [
        ItemOut(
            index=ln.index,
            name=ln.name,
            quantity=ln.quantity,
            line_value=float(ln.line_value),
            hs=hs_out(ln.classification),
            classification_fallback=ln.classification_fallback,
            duty_amount=float(ln.tax.duty_amount),
            vat_amount=float(ln.tax.vat_amount),
            vat_included_amount=float(ln.tax.vat_included_amount),
            total_tax=float(ln.tax.total_tax),
            duty_rate=float(ln.tax.duty_rate),
            vat_rate=float(ln.tax.vat_rate),
            exemptions=list(ln.tax.exemptions),
            de_minimis_applied=ln.tax.de_minimis_applied,
            shipping_amount=float(ln.tax.shipping_amount),
        )
        for ln in q.lines
    ]
    advisories = [
        AdvisoryOut(
            code=a.code,
            severity=a.severity,
            message=a.message,
            potential_savings=float(a.potential_savings) if a.potential_savings is not None else None,
            line_index=a.line_index,
        )
        for a in q.advisories
    ]
    return QuoteResponse(
        success=True,
        quote_id=q.quote_id,
        currency=q.currency,
        taxes=tax_lines(q.taxes),
        logistics=[option_out(o) for o in q.logistics],
        summary=SummaryOut(
            subtotal=float(q.summary.subtotal),
            total_tax=float(q.summary.total_tax),
            recommended_logistics=rec,
            estimated_total=float(q.summary.estimated_total),
        ),
        items=items,
        advisories=advisories,
        low_value_scheme=q.taxes.low_value_scheme_name,
        disclosure=q.taxes.disclosure,
        disclaimer=DISCLAIMER_TEXT,
        compliance=compliance_out(q.compliance),
    )


def error_out(err: QuoteError) -> ErrorOut:
    return ErrorOut(**err.to_dict())


def failure_response(err: QuoteError, currency: Optional[str] = None) -> QuoteResponse:
    """Same shape as success: empty taxes/logistics, zeroed summary."""
    return QuoteResponse(success=False, currency=currency, error=error_out(err))
