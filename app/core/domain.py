# app/core/domain.py
"""
Immutable value types shared by the classifier, tax engine, logistics
recommender and quote orchestrator.

Money is Decimal end to end; the API layer converts to float on the way out.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, Optional, Tuple

MatchSource = Literal["exact", "fuzzy", "category", "heuristic"]

HS_CODE_RE = re.compile(r"^\d{4,10}$")
COUNTRY_RE = re.compile(r"^[A-Z]{2}$")


@dataclass(frozen=True)
class ProductDescriptor:
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    material: Optional[str] = None
    usage: Optional[str] = None

    @property
    def search_text(self) -> str:
        """Lower-cased name + description, the text every match pass reads."""
        return f"{self.name} {self.description or ''}".strip().lower()


@dataclass(frozen=True)
class HSClassification:
    hs_code: str
    description: str
    confidence: float
    source: MatchSource
    matched_keywords: Tuple[str, ...] = ()
    duty_rate: Optional[float] = None
    vat_rate: Optional[float] = None
    category: Optional[str] = None

    def __post_init__(self) -> None:
        if not HS_CODE_RE.match(self.hs_code or ""):
            raise ValueError(f"HS code must be 4-10 digits, got {self.hs_code!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")


@dataclass(frozen=True)
class HSValidation:
    valid: bool
    reason: Optional[str] = None
    known: bool = False


# ---------------------------------------------------------------- tax -----

@dataclass(frozen=True)
class TaxableLineItem:
    quantity: int
    unit_price: Decimal
    currency: str
    weight_kg: float
    classification: HSClassification
    destination_country: str

    @property
    def line_value(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class TaxBreakdown:
    duty_amount: Decimal
    vat_amount: Decimal
    total_tax: Decimal
    duty_rate: Decimal
    vat_rate: Decimal
    taxable_base: Decimal
    low_value_scheme_applied: bool = False
    vat_included_amount: Decimal = Decimal("0.00")
    exemptions: Tuple[str, ...] = ()
    currency: str = "USD"
    # duty waived under a de-minimis rule (US section 321, CA, AU); distinct from a low-value scheme
    de_minimis_applied: bool = False
    # share of the shipping cost added to this line's base
    shipping_amount: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class OrderTaxBreakdown:
    country: str
    currency: str
    lines: Tuple[TaxBreakdown, ...]
    duty_amount: Decimal
    vat_amount: Decimal
    vat_included_amount: Decimal
    total_tax: Decimal
    taxable_base: Decimal
    order_value: Decimal
    # Effective order-level rates; lines may carry different (reduced) rates.
    duty_rate: Decimal = Decimal("0")
    vat_rate: Decimal = Decimal("0")
    low_value_scheme_applied: bool = False
    low_value_scheme_name: Optional[str] = None
    exemptions: Tuple[str, ...] = ()
    supported: bool = True
    disclosure: Optional[str] = None
    vat_label: str = "VAT"
    de_minimis_applied: bool = False
    shipping_in_base: Decimal = Decimal("0.00")
    # charged only when duty or VAT is payable at import; part of total_tax
    handling_fee: Decimal = Decimal("0.00")
    handling_fee_rate: Decimal = Decimal("0")


# ----------------------------------------------------------- logistics -----

@dataclass(frozen=True)
class ShippingPackage:
    weight_kg: float
    declared_value: Decimal
    currency: str
    length_cm: float
    width_cm: float
    height_cm: float
    destination_country: str


@dataclass(frozen=True)
class ShippingOption:
    option_id: str
    provider: str
    service: str
    name: str
    cost: Decimal
    currency: str
    transit_days_min: int
    transit_days_max: int
    tracking: bool
    insurance: bool
    ddp: bool
    score: float = 0.0
    recommended: bool = False


# --------------------------------------------------------------- quote -----

@dataclass(frozen=True)
class Destination:
    country_code: str
    province_code: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None


@dataclass(frozen=True)
class CartLine:
    quantity: int
    unit_price: Decimal
    name: str
    currency: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Tuple[str, ...] = ()
    weight_kg: Optional[float] = None
    brand: Optional[str] = None
    material: Optional[str] = None
    usage: Optional[str] = None


@dataclass(frozen=True)
class QuotePreferences:
    ddp_preferred: bool = False
    low_value_scheme_enabled: bool = True
    prioritize_cost: bool = False
    prioritize_speed: bool = False
    prioritize_reliability: bool = False
    max_transit_days: Optional[int] = None
    require_tracking: bool = False
    selected_logistics_id: Optional[str] = None
    package_dimensions_cm: Optional[Tuple[float, float, float]] = None
    include_shipping_in_tax_base: bool = False


@dataclass(frozen=True)
class Advisory:
    code: str
    severity: Literal["info", "warning"]
    message: str
    potential_savings: Optional[Decimal] = None
    line_index: Optional[int] = None


@dataclass(frozen=True)
class SchemeCheck:
    """One import rule checked against the order: PASS, WARNING, FAIL or N/A."""
    scheme: str
    status: Literal["PASS", "WARNING", "FAIL", "N/A"]
    detail: str
    threshold: Optional[Decimal] = None
    order_value: Optional[Decimal] = None
    currency: Optional[str] = None


@dataclass(frozen=True)
class ComplianceReport:
    risk_level: Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
    risk_score: int
    checks: Tuple[SchemeCheck, ...] = ()


@dataclass(frozen=True)
class QuoteLine:
    index: int
    name: str
    quantity: int
    line_value: Decimal
    classification: HSClassification
    classification_fallback: bool
    tax: TaxBreakdown


@dataclass(frozen=True)
class QuoteSummary:
    subtotal: Decimal
    total_tax: Decimal
    recommended_logistics: Optional[ShippingOption]
    estimated_total: Decimal


@dataclass(frozen=True)
class Quote:
    quote_id: str
    currency: str
    destination: Destination
    taxes: OrderTaxBreakdown
    logistics: Tuple[ShippingOption, ...]
    summary: QuoteSummary
    lines: Tuple[QuoteLine, ...] = ()
    advisories: Tuple[Advisory, ...] = field(default_factory=tuple)
    compliance: Optional[ComplianceReport] = None
