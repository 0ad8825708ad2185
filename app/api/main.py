# app/api/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes.classify import router as classify_router
from app.api.routes.logistics import router as logistics_router
from app.api.routes.quote import router as quote_router
from app.api.routes.tax import router as tax_router
from app.config import settings
from app.core.settings import CORS_ORIGINS
from app.utils.logging_setup import get_logger

log = get_logger("app")

app = FastAPI(
    title="Cross-Border Quote",
    version="0.3.0",
    description="Classifies cart items into HS codes, estimates duty/VAT and ranks shipping options in one quote.",
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] if settings.cors_origins else CORS_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
def health():
    return {"status": "ok"}

# REST routes
app.include_router(classify_router)
app.include_router(logistics_router)
app.include_router(quote_router)
app.include_router(tax_router)
