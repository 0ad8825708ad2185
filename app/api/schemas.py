# app/api/schemas.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Literal
from pydantic import BaseModel, Field, ConfigDict


# ------------------------------------------------------------- requests ---

class CartLineIn(BaseModel):
    """One cart line as sent by the storefront."""
    model_config = ConfigDict(extra="forbid")

    quantity: int
    unit_price: Decimal
    name: str
    currency: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    # "hscode:8517120000" overrides classification, "weight:1.2" supplies a missing weight
    tags: List[str] = Field(default_factory=list)
    weight_kg: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    brand: Optional[str] = None
    material: Optional[str] = None
    usage: Optional[str] = None


class DestinationIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    country_code: str
    province_code: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None


class PackageDimensions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    length: float = Field(..., gt=0, allow_inf_nan=False)
    width: float = Field(..., gt=0, allow_inf_nan=False)
    height: float = Field(..., gt=0, allow_inf_nan=False)


class PreferencesIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ddp_preferred: bool = False
    low_value_scheme_enabled: bool = True
    prioritize_cost: bool = False
    prioritize_speed: bool = False
    prioritize_reliability: bool = False
    max_transit_days: Optional[int] = None
    require_tracking: bool = False
    selected_logistics_id: Optional[str] = None
    package_dimensions: Optional[PackageDimensions] = None
    # add the chosen shipping cost to the duty/VAT base
    include_shipping_in_tax_base: bool = False


class QuoteRequest(BaseModel):
    """Incoming quote request."""
    model_config = ConfigDict(extra="forbid")

    cart: List[CartLineIn]
    destination: DestinationIn
    preferences: PreferencesIn = Field(default_factory=PreferencesIn)
    currency: Optional[str] = None


class ClassifyRequest(BaseModel):
    """Incoming classification request."""
    model_config = ConfigDict(extra="forbid")

    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    material: Optional[str] = None
    usage: Optional[str] = None
    # Optional so callers can ask for fewer candidates; capped by MAX_CLASSIFICATIONS.
    top_k: Optional[int] = Field(default=None, ge=1, le=10)


class MappingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    hs_code: str
    category: Optional[str] = None


class PackageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    weight_kg: float = Field(..., ge=0, allow_inf_nan=False)
    declared_value: Decimal = Field(..., ge=0)
    currency: str = "USD"
    length_cm: float = Field(..., gt=0, allow_inf_nan=False)
    width_cm: float = Field(..., gt=0, allow_inf_nan=False)
    height_cm: float = Field(..., gt=0, allow_inf_nan=False)
    destination_country: str
    preferences: PreferencesIn = Field(default_factory=PreferencesIn)


# ------------------------------------------------------------ responses ---

class ErrorOut(BaseModel):
    code: str
    message: str
    field: Optional[str] = None


class HSResultOut(BaseModel):
    """One candidate HS code."""
    model_config = ConfigDict(extra="forbid")

    hs_code: str = Field(..., pattern=r"^\d{4,10}$")
    description: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: Literal["exact", "fuzzy", "category", "heuristic"]
    matched_keywords: List[str] = Field(default_factory=list)
    duty_rate: Optional[float] = None
    vat_rate: Optional[float] = None
    category: Optional[str] = None


class TaxLineOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    type: Literal["duty", "vat", "handling_fee"]
    rate: float
    amount: float
    description: str
    # True when the amount is VAT collected at checkout (not payable at import)
    low_value_scheme: bool = False
    # True on the duty entry when a de-minimis rule waived duty
    de_minimis: bool = False


class LogisticsOptionOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    provider: str
    service: str
    name: str
    cost: float
    currency: str
    transit_days_min: int
    transit_days_max: int
    tracking_included: bool
    insurance_included: bool
    ddp_supported: bool
    score: float
    recommended: bool


class SummaryOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    subtotal: float = 0.0
    total_tax: float = 0.0
    recommended_logistics: Optional[LogisticsOptionOut] = None
    estimated_total: float = 0.0


class ItemOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int
    name: str
    quantity: int
    line_value: float
    hs: HSResultOut
    classification_fallback: bool
    duty_amount: float
    vat_amount: float
    vat_included_amount: float
    total_tax: float
    duty_rate: float
    vat_rate: float
    exemptions: List[str] = Field(default_factory=list)
    de_minimis_applied: bool = False
    shipping_amount: float = 0.0


class AdvisoryOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    severity: Literal["info", "warning"]
    message: str
    potential_savings: Optional[float] = None
    line_index: Optional[int] = None


class SchemeCheckOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scheme: str
    status: Literal["PASS", "WARNING", "FAIL", "N/A"]
    detail: str
    threshold: Optional[float] = None
    order_value: Optional[float] = None
    currency: Optional[str] = None


class ComplianceOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    risk_level: Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
    risk_score: int
    checks: List[SchemeCheckOut] = Field(default_factory=list)


class QuoteResponse(BaseModel):
    """Quote or failure; the shape is the same either way."""
    model_config = ConfigDict(extra="forbid")

    success: bool
    quote_id: Optional[str] = None
    currency: Optional[str] = None
    taxes: List[TaxLineOut] = Field(default_factory=list)
    logistics: List[LogisticsOptionOut] = Field(default_factory=list)
    summary: SummaryOut = Field(default_factory=SummaryOut)
    items: List[ItemOut] = Field(default_factory=list)
    advisories: List[AdvisoryOut] = Field(default_factory=list)
    low_value_scheme: Optional[str] = None
    disclosure: Optional[str] = None
    disclaimer: Optional[str] = None
    compliance: Optional[ComplianceOut] = None
    error: Optional[ErrorOut] = None


class ClassifyResponse(BaseModel):
    """Ranked candidate codes for a product."""
    model_config = ConfigDict(extra="forbid")

    success: bool = True
    disclaimer: str
    classifications: List[HSResultOut] = Field(default_factory=list)
    error: Optional[ErrorOut] = None


class HSValidationOut(BaseModel):
    code: str
    valid: bool
    reason: Optional[str] = None
    known: bool = False


class MappingResponse(BaseModel):
    success: bool
    hs_code: Optional[str] = None
    keyword: Optional[str] = None
    error: Optional[ErrorOut] = None


class LogisticsResponse(BaseModel):
    success: bool
    volumetric_weight: float = 0.0
    billable_weight: float = 0.0
    options: List[LogisticsOptionOut] = Field(default_factory=list)
    error: Optional[ErrorOut] = None


class TaxCountryOut(BaseModel):
    country: str
    currency: str
    vat_rate: float
    vat_label: str
    low_value_scheme: Optional[str] = None
    low_value_threshold: Optional[float] = None
    de_minimis_name: Optional[str] = None
    de_minimis_threshold: Optional[float] = None
    handling_fee_rate: Optional[float] = None


class TaxCountriesResponse(BaseModel):
    countries: List[TaxCountryOut] = Field(default_factory=list)
