# tests/test_tax_api.py
from fastapi.testclient import TestClient

from app.api.main import app
from app.tax.engine import TaxRuleEngine

client = TestClient(app)


def test_tax_countries_lists_supported_destinations():
    r = client.get("/tax/countries")
    assert r.status_code == 200
    rows = r.json()["countries"]
    codes = [c["country"] for c in rows]
    assert codes == sorted(codes)
    assert codes == TaxRuleEngine().supported_countries()
    assert "BR" not in codes

    de = next(c for c in rows if c["country"] == "DE")
    assert de["low_value_scheme"] == "IOSS"
    assert de["low_value_threshold"] == 150.0
    us = next(c for c in rows if c["country"] == "US")
    assert us["de_minimis_name"] == "section_321"
    assert us["vat_label"] == "Sales tax"
    ch = next(c for c in rows if c["country"] == "CH")
    assert ch["handling_fee_rate"] == 0.001
