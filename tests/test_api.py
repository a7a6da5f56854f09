import pytest
from fastapi.testclient import TestClient

import citescope.main as main
from citescope.db.database import Database
from citescope.models.citation import ProviderId, UnifiedCitation
from citescope.models.result import ProviderResult


class StubProvider:
    def __init__(self, provider_id, domains, answer):
        self.provider_id = provider_id
        self.model = "stub"
        self.api_key = "key"
        self.domains = domains
        self.answer = answer
        self.configured = True

    async def call(self, query):
        citations = [
            UnifiedCitation(
                source_provider=self.provider_id,
                position=i,
                url=f"https://{d}/",
                clean_url=f"https://{d}/",
                domain=d,
            )
            for i, d in enumerate(self.domains, start=1)
        ]
        return ProviderResult(
            success=True,
            provider_id=self.provider_id,
            model_name=self.model,
            answer_text=self.answer,
            citations=citations,
            response_time_ms=10,
        )


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "db", Database(str(tmp_path / "api.db")))
    monkeypatch.setattr(
        main,
        "build_adapters",
        lambda settings: [
            StubProvider(ProviderId.PERPLEXITY, ["acme.com", "rival.com"], "Acme leads."),
            StubProvider(ProviderId.CLAUDE, ["rival.com"], "Rival and ACME compete."),
        ],
    )
    with TestClient(main.app) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_analyze_runs_pipeline_and_stores_result(client):
    response = client.post(
        "/api/analyze",
        json={"query": "who makes rockets?", "domain": "acme.com", "brand": "Acme"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"]
    assert body["results"]["chatgpt"] is None
    assert body["results"]["perplexity"]["success"]
    assert body["summary"]["my_domain_cited"]
    assert body["summary"]["brand_mention_count"] == 2
    assert body["summary"]["successful_llms"] == ["perplexity", "claude"]
    assert body["competitors"][0]["domain"] == "rival.com"
    assert body["cross_validation"]["my_domain_grade"] == "C"

    stored = client.get(f"/api/analyses/{body['analysis_id']}").json()
    assert stored["status"] == "completed"
    assert stored["summary"]["total_citations"] == 3
    assert stored["extras"]["competitors"][0]["domain"] == "rival.com"

    listed = client.get("/api/analyses").json()
    assert [a["id"] for a in listed] == [body["analysis_id"]]


def test_analyze_skip_save(client):
    response = client.post("/api/analyze", json={"query": "q", "skip_save": True})

    assert response.status_code == 200
    assert response.json()["analysis_id"] == ""
    assert client.get("/api/analyses").json() == []


def test_blank_query_is_rejected(client):
    response = client.post("/api/analyze", json={"query": "   "})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": {"message": "Query is required", "code": "INVALID_INPUT"},
    }


def test_unknown_analysis_is_404(client):
    assert client.get("/api/analyses/nope").status_code == 404
