# app/core/errors.py
from __future__ import annotations

from typing import Optional


class QuoteError(Exception):
    """Base class for errors that cross a component boundary."""

    code = "QUOTE_ERROR"

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


class QuoteValidationError(QuoteError):
    """Malformed caller input (HS code, country code, currency, quantity, price)."""

    code = "VALIDATION_ERROR"


class ComputationError(QuoteError):
    """Unexpected internal fault while building a quote."""

    code = "COMPUTATION_ERROR"
