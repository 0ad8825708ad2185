# tests/tax/test_tax_engine.py
from decimal import Decimal

import pytest

from app.core.domain import HSClassification, TaxableLineItem
from app.core.settings import UNSUPPORTED_DISCLOSURE
from app.tax.compliance import assess_compliance, risk_level_for
from app.tax.engine import TaxRuleEngine
from app.tax.jurisdictions import DEFAULT_CONFIGS, load_tax_table

CENT = Decimal("0.01")

engine = TaxRuleEngine()


def item(country, price, qty=1, category="electronics", currency="EUR", code="8517120000"):
    cls = HSClassification(code, "test", 0.95, "exact", category=category)
    return TaxableLineItem(
        quantity=qty,
        unit_price=Decimal(str(price)),
        currency=currency,
        weight_kg=0.5,
        classification=cls,
        destination_country=country,
    )


def assert_components_sum(order):
    for ln in order.lines:
        assert abs(ln.duty_amount + ln.vat_amount - ln.total_tax) <= CENT
        assert ln.duty_amount >= 0 and ln.vat_amount >= 0 and ln.total_tax >= 0
    assert abs(order.duty_amount + order.vat_amount + order.handling_fee - order.total_tax) <= CENT
    assert order.total_tax == sum(ln.total_tax for ln in order.lines) + order.handling_fee


def test_ioss_under_150_eur_zero_duty_vat_included():
    order = engine.compute_order([item("DE", "100.00")], currency="EUR")
    assert order.low_value_scheme_applied is True
    assert order.low_value_scheme_name == "IOSS"
    assert order.duty_amount == Decimal("0.00")
    assert order.vat_amount == Decimal("0.00")
    assert order.total_tax == Decimal("0.00")
    assert order.vat_included_amount == Decimal("19.00")
    line = order.lines[0]
    assert line.low_value_scheme_applied is True
    assert line.vat_included_amount == Decimal("19.00")
    assert "IOSS" in line.exemptions
    assert_components_sum(order)


def test_ioss_disabled_charges_import_vat_with_duty_relief():
    order = engine.compute_order([item("DE", "100.00")], low_value_scheme_enabled=False, currency="EUR")
    assert order.low_value_scheme_applied is False
    assert order.duty_amount == Decimal("0.00")
    assert order.vat_amount == Decimal("19.00")
    assert order.total_tax == Decimal("19.00")
    assert "duty_free_threshold" in order.exemptions
    assert_components_sum(order)


def test_de_over_threshold_vat_on_duty_inclusive():
    order = engine.compute_order([item("DE", "200.00")], currency="EUR")
    assert order.low_value_scheme_applied is False
    assert order.duty_amount == Decimal("12.00")
    # (200 + 12) * 0.19
    assert order.vat_amount == Decimal("40.28")
    assert order.total_tax == Decimal("52.28")
    assert_components_sum(order)


def test_order_value_gates_every_line():
    # each line is under 150 EUR, the order is not
    order = engine.compute_order([item("DE", "100.00"), item("DE", "80.00")], currency="EUR")
    assert order.low_value_scheme_applied is False
    assert order.order_value == Decimal("180.00")
    assert [ln.duty_amount for ln in order.lines] == [Decimal("6.00"), Decimal("4.80")]
    assert_components_sum(order)


@pytest.mark.parametrize("price,duty,exempt", [
    ("799.00", Decimal("0.00"), True),
    ("800.00", Decimal("0.00"), True),
    ("801.00", Decimal("48.06"), False),
])
def test_us_de_minimis_800(price, duty, exempt):
    order = engine.compute_order([item("US", price, currency="USD")], currency="USD")
    assert order.duty_amount == duty
    assert order.vat_amount == Decimal("0.00")
    assert ("section_321" in order.exemptions) is exempt
    assert_components_sum(order)


def test_us_de_minimis_uses_order_total():
    order = engine.compute_order(
        [item("US", "500.00", currency="USD"), item("US", "400.00", currency="USD")],
        currency="USD",
    )
    assert order.duty_amount == Decimal("54.00")
    assert order.exemptions == ()


def test_reduced_vat_for_books():
    order = engine.compute_order(
        [item("DE", "200.00", category="books", code="4901990000")], currency="EUR"
    )
    assert order.duty_amount == Decimal("0.00")
    assert order.vat_amount == Decimal("14.00")
    assert order.lines[0].vat_rate == Decimal("0.07")


def test_gb_zero_rated_food_and_standard_rate():
    food = engine.compute_order([item("GB", "200.00", category="food", currency="GBP")], currency="GBP")
    assert food.vat_amount == Decimal("0.00")
    assert food.duty_amount == Decimal("20.00")

    toys = engine.compute_order([item("GB", "200.00", category="toys", currency="GBP")], currency="GBP")
    assert toys.duty_amount == Decimal("0.00")
    assert toys.vat_amount == Decimal("40.00")


def test_default_duty_for_unknown_category():
    assert engine.duty_rate_for(None) == Decimal("0.05")
    assert engine.duty_rate_for("spaceships") == Decimal("0.05")
    order = engine.compute_order([item("DE", "300.00", category=None)], currency="EUR")
    assert order.duty_amount == Decimal("15.00")
    assert order.vat_amount == Decimal("59.85")


def test_threshold_checked_in_destination_currency():
    # 170 USD is 144.50 EUR, inside IOSS
    order = engine.compute_order([item("DE", "170.00", currency="USD")], currency="USD")
    assert order.low_value_scheme_applied is True
    assert order.vat_included_amount == Decimal("32.30")
    assert order.currency == "USD"


def test_canada_vat_free_and_de_minimis():
    order = engine.compute_order([item("CA", "30.00", currency="CAD")], currency="CAD")
    assert order.total_tax == Decimal("0.00")
    assert set(order.exemptions) == {"cusma_de_minimis", "vat_free_threshold"}
    assert order.vat_label == "GST"


def test_unsupported_destination_discloses_instead_of_raising():
    order = engine.compute_order([item("BR", "250.00", currency="USD")], currency="USD")
    assert order.supported is False
    assert order.disclosure == UNSUPPORTED_DISCLOSURE
    assert order.total_tax == Decimal("0.00")
    assert all(ln.total_tax == Decimal("0.00") for ln in order.lines)
    assert order.order_value == Decimal("250.00")


def test_rounding_half_up_per_line():
    # 10.10 * 0.05 = 0.505 -> 0.51
    order = engine.compute_order([item("US", "10.10", currency="USD", category=None)], currency="USD")
    line = engine.compute_line(item("US", "10.10", currency="USD", category=None), order_value=Decimal("900"))
    assert line.duty_amount == Decimal("0.51")
    assert order.duty_amount == Decimal("0.00")


def test_vat_rate_lookup():
    assert engine.vat_rate_for("FR", "books") == Decimal("0.07")
    assert engine.vat_rate_for("FR", "electronics") == Decimal("0.20")
    assert engine.vat_rate_for("ZZ", "books") == Decimal("0")
    assert engine.config_for("de").country == "DE"


def test_tax_table_override(tmp_path):
    p = tmp_path / "tax.json"
    p.write_text(
        '{"items": [{"country": "BR", "vat_rate": "0.17", "currency": "USD",'
        ' "de_minimis_name": "remessa", "de_minimis_threshold": 50, "vat_on_duty_inclusive": true}]}',
        encoding="utf-8",
    )
    configs = load_tax_table(str(p))
    custom = TaxRuleEngine(configs={**DEFAULT_CONFIGS, **configs})
    order = custom.compute_order([item("BR", "100.00", currency="USD")], currency="USD")
    assert order.supported is True
    assert order.duty_amount == Decimal("6.00")
    assert order.vat_amount == Decimal("18.02")


# ---------------------------------------------------------- shipping base ---

def test_shipping_joins_duty_and_vat_base():
    order = engine.compute_order([item("DE", "200.00")], currency="EUR", shipping=Decimal("20.00"))
    assert order.shipping_in_base == Decimal("20.00")
    # (200 + 20) * 0.06
    assert order.duty_amount == Decimal("13.20")
    # (220 + 13.20) * 0.19 = 44.308
    assert order.vat_amount == Decimal("44.31")
    assert order.total_tax == Decimal("57.51")
    assert order.lines[0].taxable_base == Decimal("233.20")
    assert_components_sum(order)


def test_shipping_does_not_move_the_threshold_gate():
    order = engine.compute_order([item("DE", "140.00")], currency="EUR", shipping=Decimal("20.00"))
    assert order.low_value_scheme_applied is True
    assert order.vat_included_amount == Decimal("30.40")

    us = engine.compute_order([item("US", "700.00", currency="USD")], currency="USD", shipping=Decimal("200"))
    assert us.de_minimis_applied is True
    assert us.duty_amount == Decimal("0.00")


def test_shipping_split_by_line_value():
    order = engine.compute_order(
        [item("DE", "100.00"), item("DE", "80.00")], currency="EUR", shipping=Decimal("18.00")
    )
    assert [ln.shipping_amount for ln in order.lines] == [Decimal("10.00"), Decimal("8.00")]

    even = engine.compute_order(
        [item("DE", "10.00"), item("DE", "10.00"), item("DE", "10.00")], currency="EUR", shipping=Decimal("10.00")
    )
    shares = [ln.shipping_amount for ln in even.lines]
    assert sum(shares) == Decimal("10.00")
    assert sorted(shares) == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]


def test_no_shipping_leaves_base_unchanged():
    plain = engine.compute_order([item("DE", "200.00")], currency="EUR")
    zero = engine.compute_order([item("DE", "200.00")], currency="EUR", shipping=Decimal("0"))
    assert plain.total_tax == zero.total_tax == Decimal("52.28")
    assert plain.shipping_in_base == Decimal("0.00")


# ----------------------------------------------------------- handling fee ---

def test_handling_fee_is_a_share_of_goods_value():
    order = engine.compute_order([item("CH", "5000.00", currency="CHF")], currency="CHF")
    assert order.duty_amount == Decimal("300.00")
    # (5000 + 300) * 0.081
    assert order.vat_amount == Decimal("429.30")
    assert order.handling_fee == Decimal("5.00")
    assert order.total_tax == Decimal("734.30")
    assert_components_sum(order)


def test_handling_fee_capped_in_destination_currency():
    chf = engine.compute_order([item("CH", "20000.00", currency="CHF")], currency="CHF")
    assert chf.handling_fee == Decimal("10.00")
    # 10 CHF cap is 11.36 USD
    usd = engine.compute_order([item("CH", "20000.00", currency="USD")], currency="USD")
    assert usd.handling_fee == Decimal("11.36")
    assert_components_sum(usd)


def test_no_handling_fee_when_nothing_is_charged():
    order = engine.compute_order([item("CH", "50.00", currency="CHF")], currency="CHF")
    assert order.total_tax == Decimal("0.00")
    assert order.handling_fee == Decimal("0.00")

    # destinations without a fee on file never charge one
    de = engine.compute_order([item("DE", "200.00")], currency="EUR")
    assert de.handling_fee == Decimal("0.00")


def test_handling_fee_from_tax_table(tmp_path):
    p = tmp_path / "tax.json"
    p.write_text(
        '[{"country": "BR", "vat_rate": "0.17", "currency": "USD",'
        ' "handling_fee_rate": "0.001", "handling_fee_cap": "10"}]',
        encoding="utf-8",
    )
    custom = TaxRuleEngine(configs=load_tax_table(str(p)))
    order = custom.compute_order([item("BR", "3000.00", currency="USD")], currency="USD")
    assert order.handling_fee == Decimal("3.00")
    assert_components_sum(order)


# -------------------------------------------------------------- de minimis ---

def test_de_minimis_flag_separate_from_low_value_scheme():
    us = engine.compute_order([item("US", "799.00", currency="USD")], currency="USD")
    assert us.de_minimis_applied is True
    assert us.lines[0].de_minimis_applied is True
    assert us.low_value_scheme_applied is False

    over = engine.compute_order([item("US", "801.00", currency="USD")], currency="USD")
    assert over.de_minimis_applied is False

    ioss = engine.compute_order([item("DE", "100.00")], currency="EUR")
    assert ioss.low_value_scheme_applied is True
    assert ioss.de_minimis_applied is False


# -------------------------------------------------------------- compliance ---

def test_ioss_pass_and_warning():
    ok = assess_compliance(DEFAULT_CONFIGS["DE"], Decimal("100"), "EUR")
    assert [(c.scheme, c.status) for c in ok.checks] == [("IOSS", "PASS")]
    assert ok.risk_level == "LOW" and ok.risk_score == 0

    over = assess_compliance(DEFAULT_CONFIGS["DE"], Decimal("200"), "EUR")
    assert [(c.scheme, c.status) for c in over.checks] == [("IOSS", "WARNING")]
    assert over.risk_score == 15
    assert over.checks[0].threshold == Decimal("150")


def test_section_321_fail_and_high_value_risk():
    mid = assess_compliance(DEFAULT_CONFIGS["US"], Decimal("900"), "USD")
    assert [(c.scheme, c.status) for c in mid.checks] == [("section_321", "FAIL")]
    assert mid.risk_level == "MEDIUM"

    big = assess_compliance(DEFAULT_CONFIGS["US"], Decimal("6000"), "USD")
    assert big.risk_score == 50
    assert big.risk_level == "HIGH"

    worst = assess_compliance(DEFAULT_CONFIGS["US"], Decimal("6000"), "USD", fallback_lines=1)
    assert worst.risk_level == "CRITICAL"
    assert ("hs_classification", "WARNING") in [(c.scheme, c.status) for c in worst.checks]


def test_uk_low_value_checked_in_gbp():
    # 170 USD is 127.50 GBP
    rep = assess_compliance(DEFAULT_CONFIGS["GB"], Decimal("170"), "USD", low_value_scheme_enabled=False)
    check = rep.checks[0]
    assert (check.scheme, check.status) == ("UK low value", "PASS")
    assert check.order_value == Decimal("127.50")
    assert "not enabled" in check.detail


def test_unsupported_destination_is_not_applicable():
    rep = assess_compliance(None, Decimal("80"), "USD", low_price_lines=1)
    assert [(c.scheme, c.status) for c in rep.checks] == [("tax_rules", "N/A"), ("value_declaration", "WARNING")]
    assert rep.risk_score == 20
    assert rep.risk_level == "MEDIUM"


@pytest.mark.parametrize("score,level", [(0, "LOW"), (19, "LOW"), (20, "MEDIUM"), (40, "HIGH"), (60, "CRITICAL")])
def test_risk_level_bands(score, level):
    assert risk_level_for(score) == level
