# tests/test_classify_api.py
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.api.main import app

client = TestClient(app)


@pytest.fixture
def fresh_engines():
    deps.reset_engines()
    yield
    deps.reset_engines()


def test_classify_returns_ranked_codes():
    r = client.post("/classify", json={"name": "iPhone 15", "description": "128GB, black"})
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert isinstance(data["disclaimer"], str)
    top = data["classifications"][0]
    assert top["hs_code"] == "8517120000"
    assert top["source"] == "exact"
    assert 0.0 <= top["confidence"] <= 1.0


def test_classify_top_k():
    r = client.post("/classify", json={"name": "Wireless headphones", "top_k": 1})
    assert len(r.json()["classifications"]) == 1


def test_classify_blank_name_abstains():
    r = client.post("/classify", json={"name": "   "})
    assert r.status_code == 200
    assert r.json()["classifications"] == []


def test_classify_bad_payload():
    r = client.post("/classify", json={"query": "laptop"})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "VALIDATION_ERROR"


@pytest.mark.parametrize("code,valid", [("8517120000", True), ("7700", False), ("12", False)])
def test_validate_endpoint(code, valid):
    r = client.get(f"/hs/validate/{code}")
    assert r.status_code == 200
    data = r.json()
    assert data["valid"] is valid
    assert data["code"] == code
    if not valid:
        assert data["reason"]


def test_register_mapping_changes_classification(fresh_engines):
    before = client.get("/hs/stats").json()
    r = client.post("/hs/mappings", json={"name": "Cat tree deluxe", "hs_code": "9403600000"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "hs_code": "9403600000", "keyword": "cat tree deluxe", "error": None}

    after = client.get("/hs/stats").json()
    assert after["custom_mappings"] == before["custom_mappings"] + 1

    top = client.post("/classify", json={"name": "Cat tree deluxe 180cm"}).json()["classifications"][0]
    assert top["hs_code"] == "9403600000"
    assert top["description"] == "Custom: Cat tree deluxe"


def test_register_mapping_rejects_bad_code(fresh_engines):
    r = client.post("/hs/mappings", json={"name": "Thing", "hs_code": "7712"})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "VALIDATION_ERROR"
    assert err["field"] == "hs_code"
