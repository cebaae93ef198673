"""
HTTP API tests
"""

import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.api.v1.deps import get_analysis_cache, get_llm_analyzer
from app.main import app
from app.schemas.contract import ContractFacts
from app.services.analysis_cache import AnalysisCache
from app.services.llm_analyzer import LLMAnalyzer

CONTRACT = {
    "contract_id": "CN-2024-0042",
    "title": "Achiziție echipamente medicale",
    "buyer_name": "Spitalul Județean Cluj",
    "winner_name": "MedTech SRL",
    "contract_value": 650000,
    "estimated_value": 640000,
    "num_bidders": 1,
    "procedure_type": "open",
    "award_date": "2024-05-10",
}


@pytest.fixture
def api(store, clock, fake_llm, llm_response_text):
    client = fake_llm.client(fake_llm.completion(llm_response_text, total_tokens=300))
    app.dependency_overrides[get_analysis_cache] = lambda: AnalysisCache(store, clock=clock)
    app.dependency_overrides[get_llm_analyzer] = lambda: LLMAnalyzer(client=client, model="deepseek/deepseek-chat")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestAnalyzeEndpoint:

    def test_analyze_escalated_contract(self, api):
        response = api.post("/api/v1/analyze", json={"contract": CONTRACT})

        assert response.status_code == 200
        body = response.json()
        assert body["ai_powered"] is True
        assert body["from_cache"] is False
        assert body["tokens_used"] == 300
        assert body["risk_score"] == 70
        assert [f["flag_type"] for f in body["red_flags"]] == ["single_bidder", "repeated_winner"]

    def test_analyze_repeat_is_cached(self, api):
        api.post("/api/v1/analyze", json={"contract": CONTRACT})

        body = api.post("/api/v1/analyze", json={"contract": CONTRACT}).json()

        assert body["from_cache"] is True
        assert body["tokens_used"] == 0

    def test_analyze_rules_only(self, api):
        contract = {**CONTRACT, "num_bidders": 4, "contract_value": 100000, "estimated_value": 98000}

        body = api.post("/api/v1/analyze", json={"contract": contract}).json()

        assert body == {"risk_score": 0, "red_flags": [], "ai_powered": False}

    def test_force_ai_false_option(self, api):
        body = api.post(
            "/api/v1/analyze",
            json={"contract": CONTRACT, "options": {"force_ai": False}},
        ).json()

        assert body["ai_powered"] is False
        assert body["risk_score"] == 30

    @pytest.mark.parametrize("field,value", [
        ("contract_id", "X"),
        ("title", "abc"),
        ("buyer_name", "AB"),
        ("buyer_name", "  ab  "),
        ("contract_value", -1),
        ("contract_value", "inf"),
        ("estimated_value", "Infinity"),
        ("num_bidders", -2),
    ])
    def test_invalid_contract_is_rejected(self, api, field, value):
        response = api.post("/api/v1/analyze", json={"contract": {**CONTRACT, field: value}})

        assert response.status_code == 422

    def test_corrupt_cache_entry_returns_500(self, api, store, clock):
        contract_hash = AnalysisCache.contract_hash(ContractFacts(**CONTRACT))
        cache = AnalysisCache(store, clock=clock)
        asyncio.run(cache.put(contract_hash, {"risk_score": 500, "summary": "s"}, "m", 1))

        response = api.post("/api/v1/analyze", json={"contract": CONTRACT})

        assert response.status_code == 500
        assert "Inconsistent analysis data" in response.json()["detail"]


class TestBatchEndpoint:

    def test_batch_summary(self, api):
        quiet = {**CONTRACT, "contract_id": "CN-2024-0043", "num_bidders": 5,
                 "contract_value": 90000, "estimated_value": 90000}

        response = api.post("/api/v1/analyze/batch", json={"contracts": [CONTRACT, quiet]})

        assert response.status_code == 200
        body = response.json()
        assert [r["contract_id"] for r in body["results"]] == ["CN-2024-0042", "CN-2024-0043"]
        assert body["summary"] == {"total": 2, "analyzed": 2, "ai_powered": 1, "from_cache": 0, "errors": 0}

    def test_empty_batch_is_rejected(self, api):
        response = api.post("/api/v1/analyze/batch", json={"contracts": []})

        assert response.status_code == 422


class TestCacheEndpoints:

    def test_stats_after_analysis(self, api):
        api.post("/api/v1/analyze", json={"contract": CONTRACT})

        body = api.get("/api/v1/cache/stats").json()

        assert body["total_cached"] == 1
        assert body["total_tokens_saved"] == 300
        assert set(body) == {"total_cached", "total_tokens_saved", "oldest_entry_timestamp", "newest_entry_timestamp"}
        assert body["oldest_entry_timestamp"] == body["newest_entry_timestamp"]
        assert body["oldest_entry_timestamp"].startswith("2026-01-15T12:00:00")

    def test_purge_removes_expired(self, api, clock):
        api.post("/api/v1/analyze", json={"contract": CONTRACT})
        clock.advance(timedelta(days=31))

        assert api.post("/api/v1/cache/purge").json() == {"deleted": 1}
        assert api.get("/api/v1/cache/stats").json()["total_cached"] == 0


def test_health(api):
    body = api.get("/api/v1/health").json()

    assert body["status"] == "healthy"
    assert body["llm_configured"] is True
    assert body["llm_model"] == "deepseek/deepseek-chat"
