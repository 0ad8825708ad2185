# app/api/routes/tax.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter

from app.api import deps
from app.api.schemas import TaxCountriesResponse, TaxCountryOut

router = APIRouter()


def _f(value) -> Optional[float]:
    return float(value) if value is not None else None


@router.get("/tax/countries", response_model=TaxCountriesResponse)
def tax_countries():
    """Destinations with tax rules on file; anything else gets the delivery disclosure."""
    engine = deps.get_tax_engine()
    out = []
    for code in engine.supported_countries():
        cfg = engine.config_for(code)
        out.append(TaxCountryOut(
            country=cfg.country,
            currency=cfg.currency,
            vat_rate=float(cfg.vat_rate),
            vat_label=cfg.vat_label,
            low_value_scheme=cfg.low_value_scheme,
            low_value_threshold=_f(cfg.low_value_threshold),
            de_minimis_name=cfg.de_minimis_name,
            de_minimis_threshold=_f(cfg.de_minimis_threshold),
            handling_fee_rate=_f(cfg.handling_fee_rate),
        ))
    return TaxCountriesResponse(countries=out)
