# app/api/routes/logistics.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from app.api import deps
from app.api.schemas import LogisticsResponse, PackageRequest
from app.api.serializers import error_out, option_out
from app.core.domain import COUNTRY_RE, QuotePreferences, ShippingPackage
from app.core.errors import QuoteValidationError
from app.core.json_safety import validate_payload
from app.tax.fx import is_supported_currency

router = APIRouter()


def _bad(message: str, field: Optional[str] = None) -> JSONResponse:
    body = LogisticsResponse(success=False, error=error_out(QuoteValidationError(message, field=field)))
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


@router.post("/logistics/options", response_model=LogisticsResponse)
def logistics_options(req: Any = Body(default=None)):
    """Rank shipping services for a single package, outside of a full quote."""
    parsed, problem = validate_payload(PackageRequest, req)
    if problem is not None:
        field, message = problem
        return _bad(message, field)
    country = parsed.destination_country.strip()
    if not COUNTRY_RE.match(country):
        return _bad("country code must be two upper-case letters", "destination_country")
    currency = parsed.currency.upper()
    if not is_supported_currency(currency):
        return _bad(f"unsupported currency {parsed.currency!r}", "currency")

    package = ShippingPackage(
        weight_kg=parsed.weight_kg,
        declared_value=parsed.declared_value,
        currency=currency,
        length_cm=parsed.length_cm,
        width_cm=parsed.width_cm,
        height_cm=parsed.height_cm,
        destination_country=country,
    )
    p = parsed.preferences
    prefs = QuotePreferences(
        ddp_preferred=p.ddp_preferred,
        prioritize_cost=p.prioritize_cost,
        prioritize_speed=p.prioritize_speed,
        prioritize_reliability=p.prioritize_reliability,
        max_transit_days=p.max_transit_days,
        require_tracking=p.require_tracking,
    )
    rec = deps.get_recommender()
    options = rec.recommend(package, prefs, currency=currency)
    return LogisticsResponse(
        success=True,
        volumetric_weight=rec.volumetric_weight(package),
        billable_weight=rec.billable_weight(package),
        options=[option_out(o) for o in options],
    )
