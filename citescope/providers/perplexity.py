"""Perplexity provider: numbered source list referenced by ``[n]`` markers."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from citescope.canonical import (
    count_marker_occurrences,
    extract_domain,
    is_excluded_domain,
    marker_windows,
)
from citescope.models.citation import ProviderId, TextSpan, UnifiedCitation, optional_text
from citescope.providers.base import CitationCollector, HttpProvider

logger = logging.getLogger(__name__)

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
DEFAULT_MODEL = "sonar"

# Characters kept on each side of a marker when building provenance spans.
MARKER_WINDOW = 60


class PerplexitySearchResult(BaseModel):
    url: str
    title: str | None = None
    snippet: str | None = None
    date: str | None = None


class PerplexityMessage(BaseModel):
    content: str | None = None


class PerplexityChoice(BaseModel):
    message: PerplexityMessage


class PerplexityResponse(BaseModel):
    choices: list[PerplexityChoice] = Field(min_length=1)
    search_results: list[PerplexitySearchResult] | None = None
    citations: list[str] | None = None


class PerplexityProvider(HttpProvider):
    """Strategy A: the n-th listed source is referenced by ``[n]`` in the answer."""

    provider_id = ProviderId.PERPLEXITY
    name = "Perplexity"
    api_url = PERPLEXITY_API_URL
    default_model = DEFAULT_MODEL
    payload_schema = PerplexityResponse

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_request(self, query: str) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": query}],
            "search_context_size": "high",
        }

    def normalize(self, payload: PerplexityResponse) -> tuple[str, list[UnifiedCitation]]:
        answer = payload.choices[0].message.content or ""

        # search_results carry titles and dates; the bare URL list is a fallback
        if payload.search_results:
            sources = payload.search_results
        else:
            sources = [PerplexitySearchResult(url=url) for url in payload.citations or []]

        collector = CitationCollector(self.provider_id)
        filtered = 0
        for index, source in enumerate(sources, start=1):
            if not source.url:
                continue
            domain = extract_domain(source.url)
            if not domain or is_excluded_domain(domain):
                filtered += 1
                continue
            spans = [
                TextSpan(start=start, end=end, text=text)
                for start, end, text in marker_windows(answer, index, MARKER_WINDOW)
            ]
            collector.add(
                source.url,
                domain=domain,
                title=optional_text(source.title),
                snippet=optional_text(source.snippet),
                published_date=optional_text(source.date),
                mentions=count_marker_occurrences(answer, index),
                text_spans=spans,
            )

        if filtered:
            logger.debug("Perplexity: dropped %d sources without a usable domain", filtered)
        logger.debug("Perplexity: %d sources -> %d citations", len(sources), len(collector))
        return answer, collector.build()
