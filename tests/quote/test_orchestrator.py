# tests/quote/test_orchestrator.py
from decimal import ROUND_HALF_UP, Decimal

import pytest

from app.api.serializers import quote_to_response
from app.core.domain import CartLine, Destination, QuotePreferences
from app.core.errors import ComputationError, QuoteValidationError
from app.logistics.recommender import LogisticsRecommender
from app.quote.orchestrator import QuoteOrchestrator, quote_id_for, tag_hs_code, tag_weight
from app.tax.engine import TaxRuleEngine


def line(name="iPhone 15", price="120.00", qty=1, **kw):
    return CartLine(quantity=qty, unit_price=Decimal(price), name=name, **kw)


@pytest.fixture
def orch():
    return QuoteOrchestrator()


def test_eu_quote_under_ioss(orch):
    q = orch.build_quote([line()], Destination("DE"), currency="EUR")
    assert q.currency == "EUR"
    assert q.lines[0].classification.hs_code == "8517120000"
    assert q.lines[0].classification.source == "exact"
    assert q.taxes.low_value_scheme_applied is True
    assert q.taxes.vat_included_amount == Decimal("22.80")
    assert q.summary.total_tax == Decimal("0.00")
    assert q.summary.subtotal == Decimal("120.00")
    rec = q.summary.recommended_logistics
    assert rec is not None and rec.recommended
    assert q.summary.estimated_total == Decimal("120.00") + rec.cost
    assert q.quote_id.startswith("q_")


def test_quote_is_idempotent(orch):
    cart = [line(), line("Cotton t-shirt", "25.00", qty=3)]
    prefs = QuotePreferences(prioritize_speed=True)
    a = orch.build_quote(cart, Destination("FR", city="Lyon"), prefs, currency="EUR")
    b = orch.build_quote(cart, Destination("FR", city="Lyon"), prefs, currency="EUR")
    assert a.quote_id == b.quote_id
    assert quote_to_response(a).model_dump_json() == quote_to_response(b).model_dump_json()

    c = orch.build_quote(cart, Destination("FR", city="Paris"), prefs, currency="EUR")
    assert c.quote_id != a.quote_id


def test_quote_id_ignores_nothing_in_request():
    base = quote_id_for([line()], Destination("DE"), QuotePreferences(), "EUR")
    assert base == quote_id_for([line()], Destination("DE"), QuotePreferences(), "EUR")
    assert base != quote_id_for([line(qty=2)], Destination("DE"), QuotePreferences(), "EUR")


def test_hscode_tag_overrides_classification(orch):
    q = orch.build_quote(
        [line("Mystery item", "40.00", tags=("sale", "hscode:6109.10.00.00"))],
        Destination("US"),
        currency="USD",
    )
    cls = q.lines[0].classification
    assert cls.hs_code == "6109100000"
    assert cls.confidence == 1.0
    assert cls.source == "exact"
    assert cls.category == "clothing"
    assert q.lines[0].classification_fallback is False


def test_tag_parsing():
    assert tag_hs_code(line(tags=("HSCODE: 8517.12",))) == "851712"
    assert tag_hs_code(line()) is None
    assert tag_weight(line(tags=("weight:1.25kg",))) == 1.25
    assert tag_weight(line(tags=("weight:heavy",))) is None


class RecordingRecommender(LogisticsRecommender):
    def __init__(self):
        super().__init__()
        self.packages = []

    def recommend(self, package, preferences=None, currency=None):
        self.packages.append(package)
        return super().recommend(package, preferences, currency)


def test_package_weight_from_tags_and_defaults():
    rec = RecordingRecommender()
    orch = QuoteOrchestrator(recommender=rec)
    orch.build_quote(
        [
            line("Desk lamp", "30.00", qty=2, tags=("weight:1.5",)),
            line("Soap bar", "5.00", qty=4),
            line("Novel", "12.00", weight_kg=0.3, tags=("weight:9",)),
        ],
        Destination("GB"),
        QuotePreferences(package_dimensions_cm=(30.0, 20.0, 10.0)),
        currency="GBP",
    )
    p = rec.packages[0]
    # 2 * 1.5 + 4 * 0.5 (default) + 1 * 0.3 (explicit weight beats tag)
    assert p.weight_kg == pytest.approx(5.3)
    assert (p.length_cm, p.width_cm, p.height_cm) == (30.0, 20.0, 10.0)
    assert p.declared_value == Decimal("92.00")
    assert p.currency == "GBP"


def test_low_confidence_uses_misc_and_advises(orch):
    q = orch.build_quote([line("Handmade ceramic vase", "60.00")], Destination("DE"), currency="EUR")
    ln = q.lines[0]
    assert ln.classification.hs_code == "9999999999"
    assert ln.classification_fallback is True
    codes = [a.code for a in q.advisories]
    assert "LOW_CONFIDENCE_CLASSIFICATION" in codes
    adv = next(a for a in q.advisories if a.code == "LOW_CONFIDENCE_CLASSIFICATION")
    assert adv.line_index == 0


def test_unsupported_destination_is_not_an_error(orch):
    q = orch.build_quote([line(price="80.00")], Destination("BR"), currency="USD")
    assert q.taxes.supported is False
    assert q.summary.total_tax == Decimal("0.00")
    assert q.logistics == ()
    assert q.summary.recommended_logistics is None
    assert q.summary.estimated_total == Decimal("80.00")
    codes = {a.code for a in q.advisories}
    assert {"UNSUPPORTED_DESTINATION", "NO_LOGISTICS_CANDIDATE"} <= codes


def test_us_order_over_de_minimis_gets_split_and_ddp_advice(orch):
    q = orch.build_quote([line("Laptop 14 inch", "900.00")], Destination("US"), currency="USD")
    assert q.taxes.duty_amount == Decimal("54.00")
    split = next(a for a in q.advisories if a.code == "SPLIT_ORDER")
    assert split.potential_savings == Decimal("54.00")
    assert "DDP_SUGGESTED" in {a.code for a in q.advisories}
    assert "HIGH_TAX_RATE" not in {a.code for a in q.advisories}


def test_low_value_scheme_disabled_advisory(orch):
    prefs = QuotePreferences(low_value_scheme_enabled=False)
    q = orch.build_quote([line(price="100.00")], Destination("DE"), prefs, currency="EUR")
    assert q.taxes.low_value_scheme_applied is False
    assert q.summary.total_tax == Decimal("19.00")
    assert "LOW_VALUE_SCHEME_AVAILABLE" in {a.code for a in q.advisories}


def test_selected_logistics_overrides_recommendation(orch):
    prefs = QuotePreferences(selected_logistics_id="DHL_ECOM:EXPRESS")
    q = orch.build_quote([line()], Destination("DE"), prefs, currency="EUR")
    chosen = q.summary.recommended_logistics
    assert chosen.option_id == "DHL_ECOM:EXPRESS"
    assert q.summary.estimated_total == q.summary.subtotal + q.summary.total_tax + chosen.cost


def test_unknown_selected_logistics_falls_back(orch):
    prefs = QuotePreferences(selected_logistics_id="NOPE:NONE")
    q = orch.build_quote([line()], Destination("DE"), prefs, currency="EUR")
    assert q.summary.recommended_logistics.recommended is True
    assert "SELECTED_LOGISTICS_UNAVAILABLE" in {a.code for a in q.advisories}


def test_lines_converted_to_quote_currency(orch):
    q = orch.build_quote([line(price="100.00", currency="USD")], Destination("DE"), currency="EUR")
    assert q.summary.subtotal == Decimal("85.00")
    assert q.lines[0].line_value == Decimal("85.00")


@pytest.mark.parametrize("cart,dest,currency,field", [
    ([line(qty=0)], "DE", "EUR", "cart[0].quantity"),
    ([line(price="0")], "DE", "EUR", "cart[0].unit_price"),
    ([line(), line(price="-3")], "DE", "EUR", "cart[1].unit_price"),
    ([line(currency="XYZ")], "DE", "EUR", "cart[0].currency"),
    ([line(tags=("hscode:77",))], "DE", "EUR", "cart[0].tags"),
    ([line(weight_kg=-1.0)], "DE", "EUR", "cart[0].weight_kg"),
    ([line()], "Germany", "EUR", "destination.country_code"),
    ([line()], "de", "EUR", "destination.country_code"),
    ([line()], "DE", "XYZ", "currency"),
    ([], "DE", "EUR", "cart"),
])
def test_validation_errors_carry_field_path(orch, cart, dest, currency, field):
    with pytest.raises(QuoteValidationError) as ei:
        orch.build_quote(cart, Destination(dest), currency=currency)
    assert ei.value.field == field
    assert ei.value.code == "VALIDATION_ERROR"


def test_bad_package_dimensions(orch):
    with pytest.raises(QuoteValidationError) as ei:
        orch.build_quote([line()], Destination("DE"), QuotePreferences(package_dimensions_cm=(10.0, 0.0, 5.0)))
    assert ei.value.field == "preferences.package_dimensions"


class ExplodingTaxEngine(TaxRuleEngine):
    def compute_order(self, *a, **kw):
        raise RuntimeError("boom")


def test_unexpected_fault_becomes_computation_error():
    orch = QuoteOrchestrator(tax_engine=ExplodingTaxEngine())
    with pytest.raises(ComputationError) as ei:
        orch.build_quote([line()], Destination("DE"), currency="EUR")
    assert ei.value.code == "COMPUTATION_ERROR"
    assert isinstance(ei.value.__cause__, RuntimeError)


def test_metrics_event_per_quote():
    events = []
    orch = QuoteOrchestrator(metrics_cb=lambda ev, payload: events.append((ev, payload)))
    q = orch.build_quote([line()], Destination("DE"), currency="EUR")
    assert len(events) == 1
    ev, payload = events[0]
    assert ev == "quote"
    assert payload["quote_id"] == q.quote_id
    assert payload["country"] == "DE"
    assert payload["lines"] == 1


@pytest.mark.parametrize("kw,field", [
    ({"weight_kg": float("nan")}, "cart[0].weight_kg"),
    ({"weight_kg": float("inf")}, "cart[0].weight_kg"),
    ({"tags": ("weight:" + "9" * 400,)}, "cart[0].tags"),
])
def test_non_finite_weights_rejected(orch, kw, field):
    with pytest.raises(QuoteValidationError) as ei:
        orch.build_quote([line(**kw)], Destination("US"), currency="USD")
    assert ei.value.field == field


@pytest.mark.parametrize("dims", [(10.0, float("nan"), 5.0), (float("inf"), 10.0, 5.0)])
def test_non_finite_package_dimensions_rejected(orch, dims):
    with pytest.raises(QuoteValidationError) as ei:
        orch.build_quote([line()], Destination("DE"), QuotePreferences(package_dimensions_cm=dims), currency="EUR")
    assert ei.value.field == "preferences.package_dimensions"


def test_non_finite_price_rejected(orch):
    with pytest.raises(QuoteValidationError) as ei:
        orch.build_quote([line(price="Infinity")], Destination("DE"), currency="EUR")
    assert ei.value.field == "cart[0].unit_price"


def test_shipping_in_tax_base_uses_chosen_option(orch):
    plain = orch.build_quote([line(price="200.00")], Destination("DE"), currency="EUR")
    prefs = QuotePreferences(include_shipping_in_tax_base=True)
    q = orch.build_quote([line(price="200.00")], Destination("DE"), prefs, currency="EUR")
    rec = q.summary.recommended_logistics
    assert q.taxes.shipping_in_base == rec.cost
    expected_duty = ((Decimal("200.00") + rec.cost) * Decimal("0.06")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    assert q.taxes.duty_amount == expected_duty
    assert q.summary.total_tax > plain.summary.total_tax
    assert q.summary.estimated_total == q.summary.subtotal + q.summary.total_tax + rec.cost


def test_compliance_summary_attached(orch):
    q = orch.build_quote([line("Laptop 14 inch", "900.00")], Destination("US"), currency="USD")
    assert q.compliance.risk_level == "MEDIUM"
    assert [(c.scheme, c.status) for c in q.compliance.checks] == [("section_321", "FAIL")]
    adv = next(a for a in q.advisories if a.code == "COMPLIANCE_SUMMARY")
    assert "section_321 FAIL" in adv.message
    assert adv.severity == "info"
