# app/api/deps.py
"""Process-wide engine singletons. Tables load once, on first use."""
from __future__ import annotations

from functools import lru_cache

from app.classify.classifier import ProductClassifier
from app.logistics.recommender import LogisticsRecommender
from app.metrics.cb import build_metrics_cb
from app.quote.orchestrator import QuoteOrchestrator
from app.tax.engine import TaxRuleEngine


@lru_cache(maxsize=1)
def get_classifier() -> ProductClassifier:
    return ProductClassifier()


@lru_cache(maxsize=1)
def get_tax_engine() -> TaxRuleEngine:
    return TaxRuleEngine()


@lru_cache(maxsize=1)
def get_recommender() -> LogisticsRecommender:
    return LogisticsRecommender()


@lru_cache(maxsize=1)
def get_orchestrator() -> QuoteOrchestrator:
    return QuoteOrchestrator(
        get_classifier(),
        get_tax_engine(),
        get_recommender(),
        metrics_cb=build_metrics_cb(),
    )


def reset_engines() -> None:
    """Drop cached engines (tests that change settings or register mappings)."""
    for fn in (get_classifier, get_tax_engine, get_recommender, get_orchestrator):
        fn.cache_clear()
