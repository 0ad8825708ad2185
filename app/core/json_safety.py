# app/core/json_safety.py
from __future__ import annotations

import json
from typing import Any, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


def error_path(loc: Tuple[Any, ...]) -> str:
    """('cart', 0, 'quantity') -> 'cart[0].quantity'"""
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def first_error(ve: ValidationError) -> Tuple[Optional[str], str]:
    """(field path, message) for the first pydantic error."""
    errs = ve.errors()
    if not errs:
        return None, str(ve)
    e = errs[0]
    return (error_path(tuple(e.get("loc") or ())) or None), e.get("msg", "invalid value")


def validate_payload(model: Type[M], data: Any) -> Tuple[Optional[M], Optional[Tuple[Optional[str], str]]]:
    """
    Return (instance, None) or (None, (field, message)). Never raises for bad input.
    """
    if data is None:
        return None, (None, "request body is required")
    try:
        return model.model_validate(data), None
    except ValidationError as ve:
        return None, first_error(ve)


def try_parse_and_validate(model: Type[M], text: str) -> Tuple[Optional[M], Optional[Tuple[Optional[str], str]]]:
    """Same as validate_payload, starting from raw JSON text (CLI input)."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return None, (None, f"JSON parse error: {e}")
    return validate_payload(model, data)
