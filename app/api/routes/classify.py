# app/api/routes/classify.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from app.api import deps
from app.api.schemas import (
    ClassifyRequest,
    ClassifyResponse,
    ErrorOut,
    HSValidationOut,
    MappingRequest,
    MappingResponse,
)
from app.api.serializers import error_out, hs_out
from app.core.domain import ProductDescriptor
from app.core.errors import QuoteValidationError
from app.core.json_safety import validate_payload
from app.core.settings import DISCLAIMER_TEXT

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/classify", response_model=ClassifyResponse)
def classify(req: Any = Body(default=None)):
    """
    Lenient route:
      - Accepts a ClassifyRequest-shaped dict; anything else is a 400 with the same schema
      - Whitespace-only names abstain (200, empty list) rather than guessing
    """
    parsed, problem = validate_payload(ClassifyRequest, req)
    if problem is not None:
        field, message = problem
        body = ClassifyResponse(
            success=False,
            disclaimer=DISCLAIMER_TEXT,
            error=ErrorOut(code=QuoteValidationError.code, message=message, field=field),
        )
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))

    name = (parsed.name or "").strip()
    if not name:
        return ClassifyResponse(disclaimer=DISCLAIMER_TEXT, classifications=[])

    ranked = deps.get_classifier().classify(ProductDescriptor(
        name=name,
        description=parsed.description,
        category=parsed.category,
        brand=parsed.brand,
        material=parsed.material,
        usage=parsed.usage,
    ))
    if parsed.top_k:
        ranked = ranked[: parsed.top_k]
    return ClassifyResponse(disclaimer=DISCLAIMER_TEXT, classifications=[hs_out(c) for c in ranked])


@router.get("/hs/validate/{code}", response_model=HSValidationOut)
def validate_code(code: str) -> HSValidationOut:
    v = deps.get_classifier().validate_format(code)
    return HSValidationOut(code=code, valid=v.valid, reason=v.reason, known=v.known)


@router.post("/hs/mappings", response_model=MappingResponse)
def add_mapping(req: Any = Body(default=None)):
    parsed, problem = validate_payload(MappingRequest, req)
    if problem is not None:
        field, message = problem
        err = QuoteValidationError(message, field=field)
        body = MappingResponse(success=False, error=error_out(err))
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))
    try:
        keyword = deps.get_classifier().register_custom_mapping(
            ProductDescriptor(name=parsed.name, category=parsed.category),
            parsed.hs_code,
        )
    except QuoteValidationError as e:
        body = MappingResponse(success=False, error=error_out(e))
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))
    return MappingResponse(success=True, hs_code=parsed.hs_code.strip(), keyword=keyword)


@router.get("/hs/stats")
def hs_stats() -> Dict[str, int]:
    return deps.get_classifier().stats()
