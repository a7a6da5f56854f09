"""Shared fixtures: citation/result factories and a mock HTTP transport builder."""

import httpx
import pytest

from citescope.models.citation import ProviderId, UnifiedCitation
from citescope.models.result import ProviderResult


@pytest.fixture
def make_citation():
    def _make(domain, position=1, provider=ProviderId.PERPLEXITY, mention_count=1):
        url = f"https://{domain}/page-{position}"
        return UnifiedCitation(
            source_provider=provider,
            position=position,
            url=url,
            clean_url=url,
            domain=domain,
            mention_count=mention_count,
        )

    return _make


@pytest.fixture
def make_result(make_citation):
    def _make(
        provider,
        domains=(),
        answer="",
        success=True,
        response_time_ms=100,
        error=None,
    ):
        citations = [
            make_citation(domain, position, provider)
            for position, domain in enumerate(domains, start=1)
        ]
        return ProviderResult(
            success=success,
            provider_id=provider,
            model_name="test-model",
            answer_text=answer,
            citations=citations if success else [],
            response_time_ms=response_time_ms,
            error=error,
        )

    return _make


@pytest.fixture
def json_transport():
    """Build an ``httpx.MockTransport`` that answers every request with a fixed body."""

    def _build(body, status_code=200, seen=None):
        def handler(request: httpx.Request) -> httpx.Response:
            if seen is not None:
                seen.append(request)
            if isinstance(body, (dict, list)):
                return httpx.Response(status_code, json=body)
            return httpx.Response(status_code, text=body)

        return httpx.MockTransport(handler)

    return _build