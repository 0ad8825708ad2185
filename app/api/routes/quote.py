# app/api/routes/quote.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from app.api import deps
from app.api.schemas import QuoteRequest, QuoteResponse
from app.api.serializers import failure_response, quote_to_response
from app.core.domain import CartLine, Destination, QuotePreferences
from app.core.errors import ComputationError, QuoteError, QuoteValidationError
from app.core.json_safety import validate_payload

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_for(err: QuoteError) -> int:
    return 400 if isinstance(err, QuoteValidationError) else 500


def _fail(err: QuoteError, currency: Optional[str] = None) -> JSONResponse:
    body = failure_response(err, currency)
    return JSONResponse(status_code=_status_for(err), content=body.model_dump(mode="json"))


def to_domain(req: QuoteRequest):
    cart = [
        CartLine(
            quantity=ln.quantity,
            unit_price=ln.unit_price,
            name=ln.name,
            currency=ln.currency.upper() if ln.currency else None,
            description=ln.description,
            category=ln.category,
            tags=tuple(ln.tags),
            weight_kg=ln.weight_kg,
            brand=ln.brand,
            material=ln.material,
            usage=ln.usage,
        )
        for ln in req.cart
    ]
    destination = Destination(
        country_code=req.destination.country_code.strip(),
        province_code=req.destination.province_code,
        city=req.destination.city,
        postal_code=req.destination.postal_code,
    )
    p = req.preferences
    dims = p.package_dimensions
    prefs = QuotePreferences(
        ddp_preferred=p.ddp_preferred,
        low_value_scheme_enabled=p.low_value_scheme_enabled,
        prioritize_cost=p.prioritize_cost,
        prioritize_speed=p.prioritize_speed,
        prioritize_reliability=p.prioritize_reliability,
        max_transit_days=p.max_transit_days,
        require_tracking=p.require_tracking,
        selected_logistics_id=p.selected_logistics_id,
        package_dimensions_cm=(dims.length, dims.width, dims.height) if dims else None,
        include_shipping_in_tax_base=p.include_shipping_in_tax_base,
    )
    return cart, destination, prefs


@router.post("/quote", response_model=QuoteResponse)
def quote(req: Any = Body(default=None)):
    """
    Lenient route: any body is accepted and every outcome is a QuoteResponse.
      - malformed payload or field  -> 400, error.code VALIDATION_ERROR
      - unexpected fault            -> 500, error.code COMPUTATION_ERROR
    """
    parsed, problem = validate_payload(QuoteRequest, req)
    if problem is not None:
        field, message = problem
        return _fail(QuoteValidationError(message, field=field))

    currency = parsed.currency.upper() if parsed.currency else None
    try:
        cart, destination, prefs = to_domain(parsed)
        q = deps.get_orchestrator().build_quote(cart, destination, prefs, currency)
    except QuoteError as e:
        return _fail(e, currency)
    except Exception as e:
        logger.exception("quote route failed: %s", e)
        return _fail(ComputationError("internal error while computing the quote"), currency)

    return quote_to_response(q)
